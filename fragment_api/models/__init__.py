from .order import (
    ProductKind, VerificationMode, OrderState, OrderStatus,
    PayerCredentials, PurchaseRequest, RemoteOutcome, Order,
    ORDER_ALREADY_PROCESSING, ORDER_ALREADY_PROCESSING_TIMEOUT, Cost, parse_cost
)
from .flow import ProductFlow, FLOWS, get_flow, CREATE_RETRYABLE_CODES, PAY_RETRYABLE_CODES

__all__ = [
    "ProductKind",
    "VerificationMode",
    "OrderState",
    "OrderStatus",
    "PayerCredentials",
    "PurchaseRequest",
    "RemoteOutcome",
    "Order",
    "ORDER_ALREADY_PROCESSING",
    "ORDER_ALREADY_PROCESSING_TIMEOUT",
    "Cost",
    "parse_cost",
    "ProductFlow",
    "FLOWS",
    "get_flow",
    "CREATE_RETRYABLE_CODES",
    "PAY_RETRYABLE_CODES"
]
