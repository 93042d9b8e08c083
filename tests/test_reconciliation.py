import pytest

from fragment_api.exceptions import OrderPayFailed, PurchaseCancelledError, TransportError
from fragment_api.models import (
    Order, OrderStatus, ProductKind, get_flow, ORDER_ALREADY_PROCESSING_TIMEOUT
)
from fragment_api.services import CancelToken, FixedPolling, TimedPolling

PREMIUM = get_flow(ProductKind.PREMIUM)

PROCESSING = {'success': False, 'error_code': 'ORDER_ALREADY_PROCESSING'}
SETTLED = {'success': True, 'status': 'success', 'order_id': 'ord-1'}
LAST_ERROR = OrderPayFailed("Pay error: timed out", code=None, order_id='ord-1', attempts=5)


def _order() -> Order:
    return Order(order_id='ord-1', cost=12.5)


@pytest.mark.asyncio
class TestFixedPolling:

    async def test_too_few_polls_surface_last_pay_error(self, controller, transport):
        transport.queue(PREMIUM.check_path, PROCESSING, PROCESSING, PROCESSING, SETTLED)

        with pytest.raises(OrderPayFailed) as exc_info:
            await FixedPolling(attempts=3, interval=1.0).reconcile(controller, PREMIUM, _order(), LAST_ERROR)

        assert exc_info.value is LAST_ERROR
        assert len(transport.calls_to(PREMIUM.check_path)) == 3

    async def test_enough_polls_return_settled_outcome(self, controller, transport, clock):
        transport.queue(PREMIUM.check_path, PROCESSING, PROCESSING, PROCESSING, SETTLED)

        outcome = await FixedPolling(attempts=4, interval=1.0).reconcile(controller, PREMIUM, _order(), LAST_ERROR)

        assert outcome.success
        assert clock.sleeps == [1.0, 1.0, 1.0, 1.0]

    async def test_transport_errors_count_as_unsettled_polls(self, controller, transport):
        transport.queue(PREMIUM.check_path, TransportError("timed out"), SETTLED)

        outcome = await FixedPolling(attempts=5, interval=1.0).reconcile(controller, PREMIUM, _order(), LAST_ERROR)

        assert outcome.order_id == 'ord-1'
        assert len(transport.calls_to(PREMIUM.check_path)) == 2


@pytest.mark.asyncio
class TestTimedPolling:

    async def test_returns_success_as_soon_as_observed(self, controller, transport, clock):
        transport.queue(PREMIUM.check_path, PROCESSING, PROCESSING, SETTLED)
        policy = TimedPolling(window=120, interval=15)

        outcome = await policy.reconcile(controller, PREMIUM, _order(), LAST_ERROR)

        assert outcome.success
        assert outcome.status is OrderStatus.SUCCESS
        assert len(transport.calls_to(PREMIUM.check_path)) == 3
        assert clock.now == 45

    async def test_failed_settlement_is_returned_not_retried(self, controller, transport):
        transport.queue(PREMIUM.check_path, {'success': True, 'status': 'failed', 'message': 'refunded'})

        outcome = await TimedPolling(window=120, interval=15).reconcile(controller, PREMIUM, _order(), LAST_ERROR)

        assert outcome.success
        assert outcome.status is OrderStatus.FAILED
        assert len(transport.calls_to(PREMIUM.check_path)) == 1

    async def test_other_error_code_is_terminal(self, controller, transport):
        transport.queue(PREMIUM.check_path, PROCESSING, {'success': False, 'error_code': 'ORDER_NOT_FOUND'})

        outcome = await TimedPolling(window=120, interval=15).reconcile(controller, PREMIUM, _order(), LAST_ERROR)

        assert not outcome.success
        assert outcome.error_code == 'ORDER_NOT_FOUND'
        assert len(transport.calls_to(PREMIUM.check_path)) == 2

    async def test_pending_status_keeps_polling(self, controller, transport):
        transport.queue(PREMIUM.check_path, {'success': True, 'status': 'pending'}, SETTLED)

        outcome = await TimedPolling(window=120, interval=15).reconcile(controller, PREMIUM, _order(), LAST_ERROR)

        assert outcome.status is OrderStatus.SUCCESS
        assert len(transport.calls_to(PREMIUM.check_path)) == 2

    async def test_window_exhaustion_returns_timeout_outcome(self, controller, transport, clock):
        transport.queue(PREMIUM.check_path, PROCESSING)

        outcome = await TimedPolling(window=120, interval=15).reconcile(controller, PREMIUM, _order(), LAST_ERROR)

        assert not outcome.success
        assert outcome.is_timeout
        assert outcome.error_code == ORDER_ALREADY_PROCESSING_TIMEOUT
        assert outcome.order_id == 'ord-1'
        assert 120 - 15 <= clock.now <= 120 + 15
        assert len(transport.calls_to(PREMIUM.check_path)) == 8

    async def test_window_not_multiple_of_interval(self, controller, transport, clock):
        transport.queue(PREMIUM.check_path, PROCESSING)

        outcome = await TimedPolling(window=40, interval=15).reconcile(controller, PREMIUM, _order(), LAST_ERROR)

        assert outcome.is_timeout
        assert clock.sleeps == [15, 15, 10]

    async def test_codeless_transport_errors_keep_polling(self, controller, transport):
        transport.queue(PREMIUM.check_path, TransportError("timed out"), TransportError("502 | bad gateway", status=502), SETTLED)

        outcome = await TimedPolling(window=120, interval=15).reconcile(controller, PREMIUM, _order(), LAST_ERROR)

        assert outcome.success
        assert len(transport.calls_to(PREMIUM.check_path)) == 3

    async def test_transport_error_with_code_is_terminal(self, controller, transport):
        transport.queue(
            PREMIUM.check_path,
            TransportError("404 | not found", status=404, body={'success': False, 'error_code': 'ORDER_NOT_FOUND'})
        )

        outcome = await TimedPolling(window=120, interval=15).reconcile(controller, PREMIUM, _order(), LAST_ERROR)

        assert outcome.error_code == 'ORDER_NOT_FOUND'
        assert outcome.order_id == 'ord-1'

    async def test_cancel_stops_poll_loop(self, controller, transport, clock):
        cancel = CancelToken(clock=clock)

        def processing_then_cancel():
            cancel.cancel()
            return PROCESSING

        transport.queue(PREMIUM.check_path, processing_then_cancel)

        with pytest.raises(PurchaseCancelledError):
            await TimedPolling(window=120, interval=15).reconcile(controller, PREMIUM, _order(), LAST_ERROR, cancel)

        assert len(transport.calls_to(PREMIUM.check_path)) == 1

    async def test_timed_policy_inside_full_purchase(self, transport, preparer, clock):
        from fragment_api.services import OrderFlowController
        from fragment_api.models import PurchaseRequest, VerificationMode

        controller = OrderFlowController(
            transport, preparer,
            pay_max_attempts=3,
            retry_base_delay=1.0,
            reconciliation=TimedPolling(window=60, interval=15),
            sleep=clock.sleep,
            clock=clock
        )
        transport.queue(PREMIUM.create_path, {'success': True, 'order_id': 'ord-1', 'cost': 12.5})
        transport.queue(PREMIUM.pay_path, TransportError("timed out"))
        transport.queue(PREMIUM.check_path, PROCESSING)

        outcome = await controller.purchase(
            PREMIUM,
            PurchaseRequest(kind=ProductKind.PREMIUM, mode=VerificationMode.STANDARD, recipient="durov", quantity=6)
        )

        assert outcome.is_timeout
        assert len(transport.calls_to(PREMIUM.pay_path)) == 3
        assert clock.sleeps == [1.0, 2.0, 15, 15, 15, 15]
