from collections import defaultdict

import pytest

from fragment_api.services import CredentialEncoding, CredentialPreparer, OrderFlowController, FixedPolling

SEED_12 = "abandon ability able about above absent absorb abstract absurd abuse access accident"
SEED_24 = " ".join([SEED_12, SEED_12])
COOKIES = "stel_ssid=abc123; stel_dt=-180; stel_token=tok; stel_ton_token=ton"


class FakeClock:
    """Monotonic clock whose sleep only advances virtual time"""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float):
        self.sleeps.append(delay)
        self.now += delay


class FakeTransport:
    """Scripted transport: each path replays its queued results, repeating the last one"""

    def __init__(self):
        self.base_url = "https://fragment.test"
        self.calls = []
        self._responses = defaultdict(list)

    def queue(self, path: str, *results):
        self._responses[path].extend(results)

    def calls_to(self, path: str) -> list:
        return [call for call in self.calls if call[1] == path]

    async def get(self, path, params=None):
        return self._next('GET', path, params)

    async def post(self, path, data=None):
        return self._next('POST', path, data)

    def _next(self, method, path, payload):
        self.calls.append((method, path, payload))
        results = self._responses[path]
        if not results:
            raise AssertionError(f"No response queued for {method} {path}")
        result = results.pop(0) if len(results) > 1 else results[0]
        if callable(result):
            result = result()
        if isinstance(result, Exception):
            raise result
        return result

    async def close(self):
        pass


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def preparer():
    return CredentialPreparer(
        encoding=CredentialEncoding.BASE64,
        default_seed=SEED_24,
        default_cookies=COOKIES,
        default_auth_key=""
    )


@pytest.fixture
def controller(transport, preparer, clock):
    return OrderFlowController(
        transport,
        preparer,
        create_max_attempts=5,
        pay_max_attempts=5,
        retry_base_delay=1.0,
        reconciliation=FixedPolling(attempts=5, interval=1.0),
        sleep=clock.sleep,
        clock=clock
    )
