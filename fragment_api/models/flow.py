from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, Tuple

from .order import ProductKind, VerificationMode


# Server-side transient failures worth another create attempt
CREATE_RETRYABLE_CODES = frozenset({
    "RECIPIENT_SEARCH_FAILED",
    "ORDER_CREATE_FAILED",
    "INTERNAL_ERROR",
    "BAD_REQUEST",
})

# Pay failures that leave the order's fate open
PAY_RETRYABLE_CODES = frozenset({
    "BALANCE_CHECK_FAILED",
    "TRANSFER_FAILED",
    "INTERNAL_ERROR",
})


@dataclass(frozen=True)
class ProductFlow:
    """Endpoint and policy record for one product/verification combination"""
    kind: ProductKind
    mode: VerificationMode
    path: str
    quantity_field: str
    default_quantity: int
    min_quantity: int = 1
    max_quantity: Optional[int] = None
    allowed_quantities: Optional[Tuple[int, ...]] = None
    create_retryable: FrozenSet[str] = field(default=CREATE_RETRYABLE_CODES)
    pay_retryable: FrozenSet[str] = field(default=PAY_RETRYABLE_CODES)

    @property
    def create_path(self) -> str:
        return f"{self.path}/create"

    @property
    def pay_path(self) -> str:
        return f"{self.path}/pay"

    @property
    def check_path(self) -> str:
        return f"{self.path}/check"

    @property
    def requires_kyc(self) -> bool:
        """Standard flows bind the create call to the payer's Fragment account"""
        return self.mode is VerificationMode.STANDARD

    @property
    def name(self) -> str:
        return self.path.rsplit('/', 1)[-1]


def _flows_for(kind: ProductKind, endpoint: str, **options) -> Dict[Tuple[ProductKind, VerificationMode], ProductFlow]:
    return {
        (kind, VerificationMode.STANDARD): ProductFlow(
            kind=kind, mode=VerificationMode.STANDARD, path=f"/v2/{endpoint}", **options
        ),
        (kind, VerificationMode.WITHOUT_KYC): ProductFlow(
            kind=kind, mode=VerificationMode.WITHOUT_KYC, path=f"/v2/{endpoint}WithoutKYC", **options
        ),
    }


FLOWS: Dict[Tuple[ProductKind, VerificationMode], ProductFlow] = {
    **_flows_for(ProductKind.STARS, "buyStars", quantity_field="amount", default_quantity=50,
                 min_quantity=50, max_quantity=1_000_000),
    **_flows_for(ProductKind.PREMIUM, "buyPremium", quantity_field="duration", default_quantity=3,
                 allowed_quantities=(3, 6, 12)),
    **_flows_for(ProductKind.TON, "buyTon", quantity_field="amount", default_quantity=1,
                 min_quantity=1),
}


def get_flow(kind: ProductKind, mode: VerificationMode = VerificationMode.STANDARD) -> ProductFlow:
    return FLOWS[(kind, mode)]
