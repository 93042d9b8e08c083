from typing import Any, Optional


class FragmentAPIError(Exception):
    pass


class ConfigError(FragmentAPIError):
    pass


class ValidationError(FragmentAPIError):
    """Bad input detected before any network call"""
    pass


class InvalidSeedError(ValidationError):
    pass


class InvalidCookiesError(ValidationError):
    pass


class MissingCredentialError(ValidationError):
    pass


class TransportError(FragmentAPIError):
    """Non-2xx response or network-level failure"""

    def __init__(self, message: str, status: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status = status
        self.body = body

    @property
    def error_code(self) -> Optional[str]:
        if isinstance(self.body, dict):
            return self.body.get('error_code')
        return None

    @property
    def is_client_error(self) -> bool:
        return self.status is not None and 400 <= self.status < 500

    @property
    def is_server_error(self) -> bool:
        return self.status is not None and self.status >= 500


class OrderCreateFailed(FragmentAPIError):

    def __init__(self, message: str, code: Optional[str] = None, attempts: int = 0):
        super().__init__(message)
        self.code = code
        self.attempts = attempts


class OrderPayFailed(FragmentAPIError):

    def __init__(self, message: str, code: Optional[str] = None, order_id: Optional[str] = None, attempts: int = 0):
        super().__init__(message)
        self.code = code
        self.order_id = order_id
        self.attempts = attempts


class AuthKeyError(FragmentAPIError):
    pass


class PurchaseCancelledError(FragmentAPIError):
    """Raised at a suspension point once the caller cancelled or the deadline passed"""
    pass
