from .services import (
    FragmentAPIClient, CancelToken, CredentialEncoding, FixedPolling, TimedPolling
)
from .models import (
    ProductKind, VerificationMode, OrderStatus, PayerCredentials, PurchaseRequest, RemoteOutcome,
    ORDER_ALREADY_PROCESSING_TIMEOUT
)
from .exceptions import (
    FragmentAPIError, ConfigError, ValidationError, InvalidSeedError, InvalidCookiesError,
    MissingCredentialError, TransportError, OrderCreateFailed, OrderPayFailed, AuthKeyError,
    PurchaseCancelledError
)

__version__ = "2.0.0"

__all__ = [
    "FragmentAPIClient",
    "CancelToken",
    "CredentialEncoding",
    "FixedPolling",
    "TimedPolling",
    "ProductKind",
    "VerificationMode",
    "OrderStatus",
    "PayerCredentials",
    "PurchaseRequest",
    "RemoteOutcome",
    "ORDER_ALREADY_PROCESSING_TIMEOUT",
    "FragmentAPIError",
    "ConfigError",
    "ValidationError",
    "InvalidSeedError",
    "InvalidCookiesError",
    "MissingCredentialError",
    "TransportError",
    "OrderCreateFailed",
    "OrderPayFailed",
    "AuthKeyError",
    "PurchaseCancelledError"
]
