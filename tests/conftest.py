import threading
from datetime import datetime, timedelta, timezone

import pytest

from canary.emitter import MetricEmitter
from canary.models import CanaryContext, Fragment
from canary.worker import BoundedCaller

T0 = datetime(2024, 1, 15, 10, 30, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 0.0, ms: float = 0.0):
        self.now = self.now + timedelta(seconds=seconds, milliseconds=ms)


class FakeLiveStream:
    def __init__(self, data: bytes = b""):
        self._data = data
        self.closed = False

    def read(self, amt=None):
        chunk, self._data = self._data[:amt], self._data[amt:]
        return chunk

    def close(self):
        self.closed = True


class StuckLiveStream:
    """Live stream whose read ignores close() and blocks until released.

    Mirrors a socket read that close() from another thread cannot wake.
    """

    def __init__(self, hold: float = 2.0):
        self.released = threading.Event()
        self.close_called = threading.Event()
        self._hold = hold

    @property
    def closed(self) -> bool:
        return self.close_called.is_set()

    def read(self, amt=None):
        self.released.wait(self._hold)
        return b""

    def close(self):
        self.close_called.set()


class FakeStorage:
    """In-memory storage collaborator.

    ``fragment_results`` and ``stream_results`` are consumed one per call;
    an Exception instance in either list is raised instead of returned.
    """

    def __init__(self):
        self.fragment_results: list = []
        self.stream_results: list = []
        self.calls: list[tuple] = []

    def resolve_endpoint(self, stream_name, api_name):
        self.calls.append(("resolve_endpoint", stream_name, api_name))
        return f"https://{api_name.lower()}.example.com"

    def list_fragments(self, stream_name, endpoint, start, end):
        self.calls.append(("list_fragments", stream_name, endpoint, start, end))
        result = self.fragment_results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def open_live_stream(self, stream_name, endpoint):
        self.calls.append(("open_live_stream", stream_name, endpoint))
        result = self.stream_results.pop(0) if self.stream_results else FakeLiveStream()
        if isinstance(result, Exception):
            raise result
        return result

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)


class FakePublisher:
    def __init__(self):
        self.batches: list[tuple[str, list]] = []
        self.error: Exception | None = None
        self.published = threading.Event()

    def publish(self, namespace, samples):
        if self.error is not None:
            raise self.error
        self.batches.append((namespace, list(samples)))
        self.published.set()

    @property
    def samples(self) -> list:
        return [s for _, batch in self.batches for s in batch]


def make_fragments(n: int) -> list[Fragment]:
    return [
        Fragment(fragment_number=f"9134385233318150{i:04d}", server_timestamp=T0 + timedelta(seconds=2 * i))
        for i in range(n)
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def context():
    return CanaryContext(
        stream_name="canary-stream",
        canary_label="WebrtcLongRunning",
        region="us-west-2",
        start_time=T0,
        duration_seconds=30,
    )


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def emitter(context, publisher):
    e = MetricEmitter(context, publisher)
    yield e
    e.shutdown()


@pytest.fixture
def caller():
    c = BoundedCaller(timeout=2.0, name="test-call")
    yield c
    c.shutdown()
