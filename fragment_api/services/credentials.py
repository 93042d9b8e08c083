import base64
from enum import Enum
from typing import Dict, Optional

from ..config import settings
from ..exceptions import InvalidSeedError, InvalidCookiesError, MissingCredentialError
from ..models import PayerCredentials, ProductFlow

SESSION_COOKIE_MARKER = "stel_ssid="
SEED_WORD_COUNTS = (12, 24)


class CredentialEncoding(Enum):
    BASE64 = "base64"
    RAW = "raw"


class CredentialPreparer:
    """Validates seed phrases and Fragment cookies and encodes them for the wire"""

    def __init__(
        self,
        encoding: Optional[CredentialEncoding] = None,
        default_seed: Optional[str] = None,
        default_cookies: Optional[str] = None,
        default_auth_key: Optional[str] = None
    ):
        self.encoding = encoding or CredentialEncoding(settings.credential_encoding)
        self.default_seed = default_seed if default_seed is not None else settings.seed
        self.default_cookies = default_cookies if default_cookies is not None else settings.cookies
        self.default_auth_key = default_auth_key if default_auth_key is not None else settings.auth_key

    @staticmethod
    def validate_seed(seed: str) -> str:
        seed = seed.strip()
        word_count = len(seed.split(" "))
        if word_count not in SEED_WORD_COUNTS:
            raise InvalidSeedError(f"Seed must be 12 or 24 space-separated words, got {word_count}")
        return seed

    @staticmethod
    def validate_cookies(cookies: str) -> str:
        cookies = cookies.strip()
        if SESSION_COOKIE_MARKER not in cookies:
            raise InvalidCookiesError(
                "Fragment cookies must be a Cookie header string containing the stel_ssid session cookie"
            )
        return cookies

    def encode(self, value: str) -> str:
        if self.encoding is CredentialEncoding.BASE64:
            return base64.b64encode(value.encode('utf-8')).decode('ascii')
        return value

    def prepare_seed(self, seed: Optional[str] = None) -> str:
        used = (seed or '').strip() or (self.default_seed or '').strip()
        if not used:
            raise MissingCredentialError("Seed not provided and no default seed set")
        return self.encode(self.validate_seed(used))

    def prepare_cookies(self, cookies: Optional[str] = None) -> str:
        used = (cookies or '').strip() or (self.default_cookies or '').strip()
        if not used:
            raise MissingCredentialError("Fragment cookies not provided and no default set")
        return self.encode(self.validate_cookies(used))

    def resolve_auth_key(self, auth_key: Optional[str] = None) -> Optional[str]:
        used = (auth_key or '').strip() or (self.default_auth_key or '').strip()
        return used or None

    def create_fields(self, flow: ProductFlow, credentials: PayerCredentials) -> Dict[str, str]:
        """Credential fields for a create call; without-KYC flows send none"""
        if not flow.requires_kyc:
            return {}

        auth_key = self.resolve_auth_key(credentials.auth_key)
        if auth_key:
            return {'auth_key': auth_key}
        return {'fragment_cookies': self.prepare_cookies(credentials.cookies)}

    def pay_fields(self, flow: ProductFlow, credentials: PayerCredentials) -> Dict[str, str]:
        """Credential fields for a pay call"""
        auth_key = self.resolve_auth_key(credentials.auth_key)
        if auth_key:
            return {'auth_key': auth_key}

        fields = {'seed': self.prepare_seed(credentials.seed)}
        if flow.requires_kyc:
            fields['fragment_cookies'] = self.prepare_cookies(credentials.cookies)
        return fields
