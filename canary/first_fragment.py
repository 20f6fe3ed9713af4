"""Time-to-first-fragment detection: how long until live data is readable."""

import logging

from canary.emitter import UNIT_MILLISECONDS
from canary.models import CanaryContext, utc_now
from canary.worker import BoundedCaller, read_with_timeout

logger = logging.getLogger(__name__)

METRIC_NAME = "TimeToFirstFragment"
GET_MEDIA_API = "GET_MEDIA"


class TimeToFirstFragmentDetector:
    """Opens a live stream at NOW on every poll and tries to read one byte.

    The first poll that gets a byte emits the elapsed time since canary
    start and marks the detector as fired. A fired detector never calls
    the storage service or the emitter again.
    """

    def __init__(
        self,
        context: CanaryContext,
        storage,
        emitter,
        caller: BoundedCaller,
        read_timeout: float = 1.0,
        clock=utc_now,
    ):
        self._context = context
        self._storage = storage
        self._emitter = emitter
        self._caller = caller
        self._read_timeout = read_timeout
        self._clock = clock
        self._fired = False
        self._elapsed_ms: float | None = None

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def elapsed_ms(self) -> float | None:
        return self._elapsed_ms

    def poll(self) -> bool:
        """Run one poll. Returns True once the measurement has been emitted."""
        if self._fired:
            return True

        try:
            stream = self._caller.call(self._open_stream, discard=_close_stream)
        except Exception as e:
            logger.error("Opening live stream for %s failed: %s", self._context.stream_name, e)
            return False

        if not self._read_first_byte(stream):
            logger.info("New fragment received: False")
            return False

        self._elapsed_ms = self._context.elapsed_ms(self._clock())
        self._fired = True
        logger.info("New fragment received: True after %.0f ms", self._elapsed_ms)
        self._emitter.emit(METRIC_NAME, self._elapsed_ms, UNIT_MILLISECONDS)
        return True

    def _open_stream(self):
        endpoint = self._storage.resolve_endpoint(self._context.stream_name, GET_MEDIA_API)
        return self._storage.open_live_stream(self._context.stream_name, endpoint)

    def _read_first_byte(self, stream) -> bool:
        """Read one byte within read_timeout, then always close the stream."""
        try:
            chunk = read_with_timeout(stream, 1, self._read_timeout)
        except Exception as e:
            logger.error("Reading live stream for %s failed: %s", self._context.stream_name, e)
            return False
        finally:
            _close_stream(stream)
        if chunk is None:
            logger.debug("No data within %.2fs", self._read_timeout)
            return False
        return bool(chunk)


def _close_stream(stream):
    try:
        stream.close()
    except Exception as e:
        logger.warning("Closing live stream failed: %s", e)
