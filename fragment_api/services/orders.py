from typing import Any, Optional

from ..config import settings
from ..models import Cost, Order, PayerCredentials, ProductFlow, RemoteOutcome
from ..utils.logger import logger
from .credentials import CredentialPreparer
from .order_flow import (
    build_create_body, build_pay_body, validate_quantity, validate_recipient, validate_wallet_type
)
from .transport import HttpTransport


class ManualOrderService:
    """Single-shot create, pay and check calls for callers driving the order lifecycle themselves.

    Each method performs exactly one request. Structured failures come back as a
    RemoteOutcome with success=False; transport failures raise TransportError.
    """

    def __init__(self, transport: HttpTransport, preparer: CredentialPreparer):
        self.transport = transport
        self.preparer = preparer

    async def create_order(
        self,
        flow: ProductFlow,
        recipient: str,
        quantity: Optional[int] = None,
        credentials: Optional[PayerCredentials] = None,
        show_sender: bool = False,
        custom_order: Optional[Any] = None
    ) -> RemoteOutcome:
        credentials = credentials or PayerCredentials()
        body = build_create_body(
            flow,
            validate_recipient(recipient),
            validate_quantity(flow, quantity),
            self.preparer.create_fields(flow, credentials),
            show_sender,
            custom_order
        )

        outcome = RemoteOutcome.from_response(await self.transport.post(flow.create_path, body))
        if outcome.success:
            logger.info(f"Created {flow.name} order {outcome.order_id}, cost {outcome.cost}")
        else:
            logger.warning(f"Create {flow.name} order failed: {outcome.error_code} {outcome.message}")
        return outcome

    async def pay_order(
        self,
        flow: ProductFlow,
        order_id: str,
        cost: Cost,
        credentials: Optional[PayerCredentials] = None,
        wallet_type: Optional[str] = None
    ) -> RemoteOutcome:
        credentials = credentials or PayerCredentials()
        body = build_pay_body(
            Order(order_id=order_id, cost=cost),
            self.preparer.pay_fields(flow, credentials),
            validate_wallet_type(wallet_type or settings.wallet_type)
        )

        outcome = RemoteOutcome.from_response(await self.transport.post(flow.pay_path, body), order_id=order_id)
        if not outcome.success:
            logger.warning(f"Pay {flow.name} order {order_id} failed: {outcome.error_code} {outcome.message}")
        return outcome

    async def get_order_status(self, flow: ProductFlow, order_id: str) -> RemoteOutcome:
        data = await self.transport.get(flow.check_path, params={'uuid': order_id})
        return RemoteOutcome.from_response(data, order_id=order_id)
