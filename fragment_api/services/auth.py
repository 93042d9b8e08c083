import asyncio
from typing import Awaitable, Callable, Optional

from ..config import settings
from ..exceptions import AuthKeyError, ConfigError, TransportError
from ..utils.logger import logger
from .credentials import CredentialPreparer
from .transport import HttpTransport

AUTH_PATH = "/v2/auth"


class AuthKeyIssuer:
    """Exchanges Fragment cookies and a seed phrase for a short-lived auth key"""

    def __init__(
        self,
        transport: HttpTransport,
        preparer: CredentialPreparer,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.transport = transport
        self.preparer = preparer
        self.max_attempts = max_attempts if max_attempts is not None else settings.auth_max_attempts
        if self.max_attempts < 1:
            raise ConfigError("Auth key attempts must be at least 1")
        self.base_delay = base_delay if base_delay is not None else settings.auth_base_delay
        self._sleep = sleep

    async def issue(self, cookies: Optional[str] = None, seed: Optional[str] = None) -> str:
        payload = {
            'fragment_cookies': self.preparer.prepare_cookies(cookies),
            'seed': self.preparer.prepare_seed(seed)
        }

        last_exception: Optional[TransportError] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                data = await self.transport.post(AUTH_PATH, payload)
            except TransportError as e:
                # Only a missing response or a 5xx is worth another try
                if e.status is not None and not e.is_server_error:
                    logger.error(f"🔑 Auth key request rejected: {e}")
                    raise

                last_exception = e
                if attempt < self.max_attempts:
                    delay = self.base_delay * attempt
                    logger.warning(
                        f"Auth key request failed (attempt {attempt}/{self.max_attempts}), "
                        f"retrying in {delay:.1f}s: {e}"
                    )
                    await self._sleep(delay)
                continue

            auth_key = data.get('auth_key')
            if not auth_key:
                raise AuthKeyError(f"Auth key not found in response: {data.get('message') or data}")

            logger.info("🔑 Auth key issued")
            return auth_key

        logger.error(f"Auth key request failed after {self.max_attempts} attempts: {last_exception}")
        raise last_exception
