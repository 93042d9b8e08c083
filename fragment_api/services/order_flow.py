import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Optional

from ..config import settings
from ..exceptions import ConfigError, OrderCreateFailed, OrderPayFailed, TransportError, ValidationError
from ..models import (
    Order, OrderState, ProductFlow, PurchaseRequest, RemoteOutcome,
    ORDER_ALREADY_PROCESSING
)
from ..utils.logger import logger
from .cancellation import CancelToken, pause
from .credentials import CredentialPreparer
from .error_policy import ErrorClass, classify_outcome, classify_transport_error
from .transport import HttpTransport

WALLET_TYPES = ('v4r2', 'v5r1')


class ReconciliationPolicy(ABC):
    """Read-only polling used once a pay attempt's outcome is unknown"""

    @abstractmethod
    async def reconcile(
        self,
        controller: "OrderFlowController",
        flow: ProductFlow,
        order: Order,
        last_error: OrderPayFailed,
        cancel: Optional[CancelToken] = None
    ) -> RemoteOutcome:
        pass


class FixedPolling(ReconciliationPolicy):
    """Poll a fixed number of times; re-raise the last pay error if nothing settles"""

    def __init__(self, attempts: Optional[int] = None, interval: Optional[float] = None):
        self.attempts = attempts if attempts is not None else settings.check_attempts
        self.interval = interval if interval is not None else settings.check_interval

    async def reconcile(self, controller, flow, order, last_error, cancel=None):
        for poll in range(1, self.attempts + 1):
            await controller.wait(self.interval, cancel)

            try:
                outcome = await controller.check(flow, order.order_id)
            except TransportError as e:
                logger.warning(f"Check {poll}/{self.attempts} for {order.order_id} failed: {e}")
                continue

            if outcome.is_settled:
                logger.info(f"Order {order.order_id} settled on check {poll}: {outcome.status}")
                return outcome

            logger.info(
                f"Order {order.order_id} not settled on check {poll}/{self.attempts}: "
                f"{outcome.error_code or outcome.status}"
            )

        logger.error(f"Order {order.order_id} still unresolved after {self.attempts} checks")
        raise last_error


class TimedPolling(ReconciliationPolicy):
    """Poll at a fixed interval for a wall-clock window.

    A settled result (including a "failed" settlement) or any error other than
    ORDER_ALREADY_PROCESSING ends the loop and is returned. An exhausted window
    returns a synthetic ORDER_ALREADY_PROCESSING_TIMEOUT outcome.
    """

    def __init__(self, window: Optional[float] = None, interval: Optional[float] = None):
        self.window = window if window is not None else settings.reconcile_window
        self.interval = interval if interval is not None else settings.reconcile_interval

    async def reconcile(self, controller, flow, order, last_error, cancel=None):
        started = controller.clock()
        poll = 0

        while True:
            elapsed = controller.clock() - started
            if elapsed >= self.window:
                break

            await controller.wait(min(self.interval, self.window - elapsed), cancel)
            poll += 1

            try:
                outcome = await controller.check(flow, order.order_id)
            except TransportError as e:
                if e.error_code and e.error_code != ORDER_ALREADY_PROCESSING:
                    logger.error(f"Check for {order.order_id} failed with {e.error_code}")
                    return RemoteOutcome(
                        success=False,
                        order_id=order.order_id,
                        error_code=e.error_code,
                        message=str(e),
                        raw=e.body if isinstance(e.body, dict) else {}
                    )
                logger.warning(f"Check {poll} for {order.order_id} failed: {e}")
                continue

            if outcome.is_settled:
                logger.info(f"Order {order.order_id} settled on check {poll}: {outcome.status}")
                return outcome

            if outcome.error_code and outcome.error_code != ORDER_ALREADY_PROCESSING:
                logger.warning(f"Order {order.order_id} check returned {outcome.error_code}")
                return outcome

            logger.info(f"Order {order.order_id} still processing (check {poll})")

        logger.warning(f"Order {order.order_id} did not settle within {self.window:.0f}s")
        return RemoteOutcome.reconciliation_timeout(order.order_id, self.window)


def default_reconciliation() -> ReconciliationPolicy:
    if settings.reconcile_mode == 'fixed':
        return FixedPolling()
    return TimedPolling()


class OrderFlowController:
    """
    Drives one order through create -> pay -> (check) for any ProductFlow.
    Holds no per-purchase state, so one controller serves concurrent purchases.
    """

    def __init__(
        self,
        transport: HttpTransport,
        preparer: CredentialPreparer,
        create_max_attempts: Optional[int] = None,
        pay_max_attempts: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
        reconciliation: Optional[ReconciliationPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic
    ):
        self.transport = transport
        self.preparer = preparer
        self.create_max_attempts = create_max_attempts if create_max_attempts is not None else settings.create_max_attempts
        self.pay_max_attempts = pay_max_attempts if pay_max_attempts is not None else settings.pay_max_attempts
        if self.create_max_attempts < 1 or self.pay_max_attempts < 1:
            raise ConfigError("Create and pay attempts must be at least 1")
        self.retry_base_delay = retry_base_delay if retry_base_delay is not None else settings.retry_base_delay
        self.reconciliation = reconciliation or default_reconciliation()
        self._sleep = sleep
        self.clock = clock

    async def wait(self, delay: float, cancel: Optional[CancelToken] = None):
        await pause(delay, cancel, self._sleep)

    async def purchase(
        self,
        flow: ProductFlow,
        request: PurchaseRequest,
        cancel: Optional[CancelToken] = None
    ) -> RemoteOutcome:
        """Run the full purchase and return the terminal outcome"""
        recipient = validate_recipient(request.recipient)
        quantity = validate_quantity(flow, request.quantity)
        wallet_type = validate_wallet_type(request.wallet_type or settings.wallet_type)

        # Credentials are checked before any request leaves the process
        create_fields = self.preparer.create_fields(flow, request.credentials)
        pay_fields = self.preparer.pay_fields(flow, request.credentials)

        if cancel is not None:
            cancel.raise_if_cancelled()

        logger.info(f"Starting {flow.name} purchase: {quantity} for {recipient}")

        body = build_create_body(flow, recipient, quantity, create_fields, request.show_sender, request.custom_order)
        order = await self._create(flow, body, cancel)

        return await self._pay(flow, order, build_pay_body(order, pay_fields, wallet_type), cancel)

    async def check(self, flow: ProductFlow, order_id: str) -> RemoteOutcome:
        data = await self.transport.get(flow.check_path, params={'uuid': order_id})
        return RemoteOutcome.from_response(data, order_id=order_id)

    async def _create(self, flow: ProductFlow, body: Dict[str, Any], cancel: Optional[CancelToken]) -> Order:
        code = None
        message = None

        for attempt in range(1, self.create_max_attempts + 1):
            try:
                data = await self.transport.post(flow.create_path, body)
            except TransportError as e:
                code, message = e.error_code, str(e)
                error_class = classify_transport_error(e, flow.create_retryable, client_errors_fatal=False)
            else:
                outcome = RemoteOutcome.from_response(data)
                if outcome.success:
                    if not outcome.order_id or outcome.cost_amount is None:
                        raise OrderCreateFailed(
                            f"Create order failed: missing order_id or unusable cost {outcome.cost!r}",
                            attempts=attempt
                        )
                    logger.info(f"Order {outcome.order_id} created, cost {outcome.cost}")
                    return Order(order_id=outcome.order_id, cost=outcome.cost)

                code, message = outcome.error_code, outcome.message
                error_class = classify_outcome(outcome, flow.create_retryable)

            if error_class is ErrorClass.FATAL:
                logger.error(f"Create order failed with non-retryable error {code}: {message}")
                raise OrderCreateFailed(f"Create order failed: {message}", code=code, attempts=attempt)

            if attempt < self.create_max_attempts:
                delay = self.retry_base_delay * attempt
                logger.warning(
                    f"Create attempt {attempt}/{self.create_max_attempts} failed ({code}), "
                    f"retrying in {delay:.1f}s"
                )
                await self.wait(delay, cancel)

        logger.error(f"Create order failed after {self.create_max_attempts} attempts: {code}")
        raise OrderCreateFailed(
            f"Create order failed after {self.create_max_attempts} attempts: {message}",
            code=code,
            attempts=self.create_max_attempts
        )

    async def _pay(
        self,
        flow: ProductFlow,
        order: Order,
        body: Dict[str, Any],
        cancel: Optional[CancelToken]
    ) -> RemoteOutcome:
        order.state = OrderState.PAYING
        last_error: Optional[OrderPayFailed] = None

        for attempt in range(1, self.pay_max_attempts + 1):
            try:
                data = await self.transport.post(flow.pay_path, body)
            except TransportError as e:
                if classify_transport_error(e, flow.pay_retryable) is ErrorClass.FATAL:
                    logger.error(f"Pay for {order.order_id} rejected: {e}")
                    raise OrderPayFailed(
                        f"Pay error: {e}", code=e.error_code, order_id=order.order_id, attempts=attempt
                    ) from e
                last_error = OrderPayFailed(
                    f"Pay error: {e}", code=e.error_code, order_id=order.order_id, attempts=attempt
                )
            else:
                outcome = RemoteOutcome.from_response(data, order_id=order.order_id)
                if outcome.success:
                    order.state = OrderState.SETTLED
                    logger.info(f"✅ Order {order.order_id} paid on attempt {attempt}")
                    return outcome

                if classify_outcome(outcome, flow.pay_retryable) is ErrorClass.FATAL:
                    logger.error(f"Pay for {order.order_id} failed with {outcome.error_code}: {outcome.message}")
                    raise OrderPayFailed(
                        f"Pay error: {outcome.message}",
                        code=outcome.error_code,
                        order_id=order.order_id,
                        attempts=attempt
                    )
                last_error = OrderPayFailed(
                    f"Pay error: {outcome.message}",
                    code=outcome.error_code,
                    order_id=order.order_id,
                    attempts=attempt
                )

            if attempt < self.pay_max_attempts:
                delay = self.retry_base_delay * attempt
                logger.warning(
                    f"Pay attempt {attempt}/{self.pay_max_attempts} for {order.order_id} failed "
                    f"({last_error.code or 'no code'}), retrying in {delay:.1f}s"
                )
                await self.wait(delay, cancel)

        # Retrying pay again could double-charge; from here on only read the order state
        order.state = OrderState.UNKNOWN
        logger.warning(f"Pay outcome for {order.order_id} unknown, reconciling")
        return await self.reconciliation.reconcile(self, flow, order, last_error, cancel)


def validate_recipient(recipient: str) -> str:
    recipient = (recipient or '').strip()
    if not recipient:
        raise ValidationError("Recipient username must not be empty")
    return recipient


def validate_quantity(flow: ProductFlow, quantity: Optional[int]) -> int:
    if quantity is None:
        return flow.default_quantity

    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError(f"Invalid {flow.quantity_field}: {quantity!r}. Must be an integer")

    if flow.allowed_quantities is not None:
        if quantity not in flow.allowed_quantities:
            allowed = ', '.join(str(q) for q in flow.allowed_quantities)
            raise ValidationError(f"Invalid {flow.quantity_field}: {quantity}. Must be one of: {allowed}")
        return quantity

    if quantity < flow.min_quantity:
        raise ValidationError(f"Invalid {flow.quantity_field}: {quantity}. Minimum is {flow.min_quantity}")
    if flow.max_quantity is not None and quantity > flow.max_quantity:
        raise ValidationError(f"Invalid {flow.quantity_field}: {quantity}. Maximum is {flow.max_quantity}")
    return quantity


def validate_wallet_type(wallet_type: str) -> str:
    if wallet_type not in WALLET_TYPES:
        raise ValidationError(f"Invalid wallet type: {wallet_type}. Must be one of: {', '.join(WALLET_TYPES)}")
    return wallet_type


def build_create_body(
    flow: ProductFlow,
    recipient: str,
    quantity: int,
    credential_fields: Dict[str, str],
    show_sender: bool = False,
    custom_order: Optional[Any] = None
) -> Dict[str, Any]:
    body: Dict[str, Any] = {'username': recipient, flow.quantity_field: quantity}
    if flow.requires_kyc:
        body['show_sender'] = show_sender
        body.update(credential_fields)
    if custom_order is not None:
        body['custom_order'] = custom_order
    return body


def build_pay_body(order: Order, credential_fields: Dict[str, str], wallet_type: str) -> Dict[str, Any]:
    return {
        'order_uuid': order.order_id,
        'cost': order.cost,
        'wallet_type': wallet_type,
        **credential_fields
    }
