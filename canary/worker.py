"""Bounded execution helpers for blocking collaborator calls."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as CallTimeout

logger = logging.getLogger(__name__)


class BoundedCaller:
    """Runs one blocking call at a time on a worker thread.

    The caller waits synchronously for the result, but never longer than
    the configured timeout. A timed-out call raises
    ``concurrent.futures.TimeoutError``; if it had not started yet it is
    cancelled, otherwise ``discard`` receives whatever it returns later.
    """

    def __init__(self, timeout: float, name: str = "canary-call"):
        self._timeout = timeout
        self._name = name
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)

    @property
    def timeout(self) -> float:
        return self._timeout

    def call(self, fn, *args, timeout: float | None = None, discard=None):
        """Run fn(*args) on the worker and wait up to timeout seconds."""
        future = self._executor.submit(fn, *args)
        try:
            return future.result(timeout=self._timeout if timeout is None else timeout)
        except CallTimeout:
            if not future.cancel() and discard is not None:
                future.add_done_callback(lambda f: _discard_late(f, discard))
            raise

    def shutdown(self):
        """Stop accepting calls; does not wait for a call still running."""
        self._executor.shutdown(wait=False, cancel_futures=True)
        logger.debug("Worker %s shut down", self._name)


def _discard_late(future, discard):
    if future.cancelled() or future.exception() is not None:
        return
    try:
        discard(future.result())
    except Exception as e:
        logger.warning("Cleaning up late result failed: %s", e)


def read_with_timeout(stream, size: int, timeout: float):
    """Read up to size bytes from stream, waiting at most timeout seconds.

    The read runs on a throwaway daemon thread owned by this one stream, so
    a read that never returns blocks nothing else. Returns None on timeout;
    the caller is expected to close the stream. Errors from the read are
    re-raised.
    """
    result = {}
    done = threading.Event()

    def _read():
        try:
            result["data"] = stream.read(size)
        except Exception as e:
            result["error"] = e
        finally:
            done.set()

    threading.Thread(target=_read, name="live-stream-read", daemon=True).start()
    if not done.wait(timeout):
        return None
    if "error" in result:
        raise result["error"]
    return result["data"]
