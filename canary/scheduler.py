"""Fixed-rate poll scheduler driven by a single timer thread."""

import logging
import threading
import time
from enum import Enum

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    POLLING = "polling"
    FIRED = "fired"
    STOPPED = "stopped"


class PollScheduler:
    """Invokes ``task`` at a fixed rate after an initial delay.

    Ticks never overlap: a slow task delays the next tick, and ticks missed
    while it ran are skipped rather than replayed. A task that returns True
    cancels further polling (FIRED). ``stop()`` cancels whatever is left.
    """

    def __init__(self, task, interval: float, initial_delay: float = 0.0, name: str = "poll-scheduler"):
        self._task = task
        self._interval = interval
        self._initial_delay = initial_delay
        self._name = name
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._state = SchedulerState.IDLE
        self._poll_count = 0

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def poll_count(self) -> int:
        return self._poll_count

    def start(self):
        """Start the timer thread."""
        self._state = SchedulerState.SCHEDULED
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()
        logger.info(
            "Scheduler %s started (initial delay: %.2fs, interval: %.2fs)",
            self._name, self._initial_delay, self._interval,
        )

    def stop(self, timeout: float = 5.0):
        """Cancel pending ticks and wait for an in-flight tick to finish."""
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=timeout)
        self._state = SchedulerState.STOPPED
        logger.info("Scheduler %s stopped after %d poll(s)", self._name, self._poll_count)

    def _run(self):
        if self._stop.wait(timeout=self._initial_delay):
            return

        next_tick = time.monotonic()
        while not self._stop.is_set():
            self._state = SchedulerState.POLLING
            try:
                finished = self._task()
            except Exception:
                logger.exception("Poll task %s raised, continuing schedule", self._name)
                finished = False
            self._poll_count += 1

            if finished:
                self._state = SchedulerState.FIRED
                logger.info("Scheduler %s fired, polling cancelled", self._name)
                return

            next_tick += self._interval
            delay = next_tick - time.monotonic()
            if delay < 0:
                missed = int(-delay / self._interval)
                if missed > 0:
                    logger.warning("Scheduler %s missed %d tick(s), resynchronizing", self._name, missed)
                next_tick = time.monotonic()
                delay = 0
            if self._stop.wait(timeout=delay):
                break
