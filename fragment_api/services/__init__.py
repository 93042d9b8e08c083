from .api_client import FragmentAPIClient
from .transport import HttpTransport
from .credentials import CredentialPreparer, CredentialEncoding
from .error_policy import ErrorClass, classify
from .cancellation import CancelToken
from .order_flow import OrderFlowController, ReconciliationPolicy, FixedPolling, TimedPolling
from .orders import ManualOrderService
from .auth import AuthKeyIssuer

__all__ = [
    "FragmentAPIClient",
    "HttpTransport",
    "CredentialPreparer",
    "CredentialEncoding",
    "ErrorClass",
    "classify",
    "CancelToken",
    "OrderFlowController",
    "ReconciliationPolicy",
    "FixedPolling",
    "TimedPolling",
    "ManualOrderService",
    "AuthKeyIssuer"
]
