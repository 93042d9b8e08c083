from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union


# Error code the check endpoint returns while an order is still settling
ORDER_ALREADY_PROCESSING = "ORDER_ALREADY_PROCESSING"
# Synthetic code for a reconciliation window that ran out before settlement
ORDER_ALREADY_PROCESSING_TIMEOUT = "ORDER_ALREADY_PROCESSING_TIMEOUT"

# Server-quoted cost, kept exactly as received so pay echoes the same value
Cost = Union[str, int, float]


class ProductKind(Enum):
    STARS = "stars"
    PREMIUM = "premium"
    TON = "ton"


class VerificationMode(Enum):
    STANDARD = "standard"
    WITHOUT_KYC = "without_kyc"


class OrderState(Enum):
    CREATED = "created"
    PAYING = "paying"
    SETTLED = "settled"
    UNKNOWN = "unknown"


class OrderStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"
    PROCESSING = "processing"

    @property
    def is_final(self) -> bool:
        return self in (OrderStatus.SUCCESS, OrderStatus.FAILED)


@dataclass(frozen=True)
class PayerCredentials:
    """Secrets used to authorize an order.

    An auth key, when present, is sent in place of the raw seed and cookies.
    Missing values fall back to the configured defaults.
    """
    seed: Optional[str] = None
    cookies: Optional[str] = None
    auth_key: Optional[str] = None

    def __repr__(self) -> str:
        return (
            f"PayerCredentials(seed={'***' if self.seed else None}, "
            f"cookies={'***' if self.cookies else None}, "
            f"auth_key={'***' if self.auth_key else None})"
        )


@dataclass(frozen=True)
class PurchaseRequest:
    kind: ProductKind
    mode: VerificationMode
    recipient: str
    quantity: Optional[int]
    credentials: PayerCredentials = field(default_factory=PayerCredentials)
    wallet_type: Optional[str] = None
    show_sender: bool = False
    custom_order: Optional[Any] = None


@dataclass(frozen=True)
class RemoteOutcome:
    """Result of a single create, pay or check call"""
    success: bool
    order_id: Optional[str] = None
    cost: Optional[Cost] = None
    status: Optional[OrderStatus] = None
    error_code: Optional[str] = None
    message: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_response(cls, data: Mapping[str, Any], order_id: Optional[str] = None) -> "RemoteOutcome":
        status = data.get('status')
        try:
            status = OrderStatus(str(status).lower()) if status is not None else None
        except ValueError:
            status = None

        return cls(
            success=data.get('success') is True,
            order_id=data.get('order_id') or order_id,
            cost=data.get('cost'),
            status=status,
            error_code=data.get('error_code'),
            message=data.get('message'),
            raw=dict(data)
        )

    @classmethod
    def reconciliation_timeout(cls, order_id: str, window: float) -> "RemoteOutcome":
        return cls(
            success=False,
            order_id=order_id,
            error_code=ORDER_ALREADY_PROCESSING_TIMEOUT,
            message=(
                f"Order {order_id} did not settle within {window:.0f}s; "
                f"it may still complete, check its status later"
            )
        )

    @property
    def cost_amount(self) -> Optional[Decimal]:
        """Numeric view of the quoted cost, None when absent or unparseable"""
        return parse_cost(self.cost)

    @property
    def is_settled(self) -> bool:
        """A successful response that carries a final status (or no status at all)"""
        return self.success and (self.status is None or self.status.is_final)

    @property
    def is_processing(self) -> bool:
        if self.error_code == ORDER_ALREADY_PROCESSING:
            return True
        return self.success and self.status in (OrderStatus.PENDING, OrderStatus.PROCESSING)

    @property
    def is_timeout(self) -> bool:
        return self.error_code == ORDER_ALREADY_PROCESSING_TIMEOUT


@dataclass
class Order:
    order_id: str
    cost: Cost
    state: OrderState = OrderState.CREATED


def parse_cost(cost: Optional[Cost]) -> Optional[Decimal]:
    if cost is None or isinstance(cost, bool):
        return None
    try:
        return Decimal(str(cost))
    except InvalidOperation:
        return None
