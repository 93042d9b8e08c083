from enum import Enum
from typing import AbstractSet, Optional

from ..exceptions import TransportError
from ..models import RemoteOutcome


class ErrorClass(Enum):
    RETRYABLE = "retryable"
    FATAL = "fatal"


def classify(
    code: Optional[str],
    status: Optional[int],
    retryable_codes: AbstractSet[str],
    client_errors_fatal: bool = True
) -> ErrorClass:
    """Map an error code and/or HTTP status to retryable or fatal.

    With `client_errors_fatal` (the pay phase) any 4xx is fatal whatever its code.
    Without it (the create phase) a 4xx is retryable only when its code is in the
    given set, since the server reports BAD_REQUEST with a 400. A failure with no
    code at all (lost response, bare 5xx, success=false without error_code) is
    retryable so that the bounded retry loop and reconciliation decide its fate.
    Codes outside the given set are fatal.
    """
    if status is not None and 400 <= status < 500:
        if client_errors_fatal or code not in retryable_codes:
            return ErrorClass.FATAL
    if code is None:
        return ErrorClass.RETRYABLE
    if code in retryable_codes:
        return ErrorClass.RETRYABLE
    return ErrorClass.FATAL


def classify_outcome(outcome: RemoteOutcome, retryable_codes: AbstractSet[str]) -> ErrorClass:
    return classify(outcome.error_code, None, retryable_codes)


def classify_transport_error(
    error: TransportError,
    retryable_codes: AbstractSet[str],
    client_errors_fatal: bool = True
) -> ErrorClass:
    return classify(error.error_code, error.status, retryable_codes, client_errors_fatal)
