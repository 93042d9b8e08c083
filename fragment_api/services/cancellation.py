import asyncio
import time
from typing import Awaitable, Callable, Optional

from ..exceptions import PurchaseCancelledError


class CancelToken:
    """Caller-held handle for stopping a purchase at its next wait.

    Optionally carries a deadline `timeout` seconds after creation.
    """

    def __init__(self, timeout: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._event = asyncio.Event()
        self.deadline = clock() + timeout if timeout is not None else None

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and self._clock() >= self.deadline

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self._clock())

    def raise_if_cancelled(self):
        if self.cancelled:
            raise PurchaseCancelledError("Purchase cancelled by caller")
        if self.expired:
            raise PurchaseCancelledError("Purchase deadline exceeded")

    async def wait(self):
        await self._event.wait()


async def pause(
    delay: float,
    cancel: Optional[CancelToken] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
):
    """Sleep for `delay`, waking early and raising if `cancel` fires"""
    if cancel is None:
        await sleep(delay)
        return

    cancel.raise_if_cancelled()
    remaining = cancel.remaining()
    if remaining is not None:
        delay = min(delay, remaining)

    sleeper = asyncio.ensure_future(sleep(delay))
    waiter = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (sleeper, waiter):
            if not task.done():
                task.cancel()
        await asyncio.gather(sleeper, waiter, return_exceptions=True)

    cancel.raise_if_cancelled()
