"""Canary lifecycle: builds the detector for the configured mode and runs it
until the run budget elapses or shutdown is requested."""

import logging
import threading

from canary.config import FRAGMENT_CONTINUITY, TIME_TO_FIRST_FRAGMENT, CanaryConfig, ConfigError
from canary.continuity import FragmentContinuityDetector
from canary.emitter import MetricEmitter
from canary.first_fragment import TimeToFirstFragmentDetector
from canary.models import CanaryContext, FragmentSnapshot, utc_now
from canary.scheduler import PollScheduler
from canary.worker import BoundedCaller

logger = logging.getLogger(__name__)


class ContinuityTask:
    """Scheduler task that owns the fragment snapshot between polls."""

    def __init__(self, detector: FragmentContinuityDetector):
        self._detector = detector
        self._snapshot = FragmentSnapshot.empty()

    @property
    def snapshot(self) -> FragmentSnapshot:
        return self._snapshot

    def __call__(self) -> bool:
        self._snapshot = self._detector.poll(self._snapshot)
        return False


class CanaryController:
    def __init__(self, config: CanaryConfig, storage, publisher, shutdown_event: threading.Event, clock=utc_now):
        if config.metric_type not in (FRAGMENT_CONTINUITY, TIME_TO_FIRST_FRAGMENT):
            raise ConfigError(f"Unknown metric type: {config.metric_type}")
        self._config = config
        self._storage = storage
        self._publisher = publisher
        self._shutdown = shutdown_event
        self._clock = clock
        self._context: CanaryContext | None = None
        self._scheduler: PollScheduler | None = None
        self._caller: BoundedCaller | None = None
        self._emitter: MetricEmitter | None = None

    @property
    def context(self) -> CanaryContext | None:
        return self._context

    @property
    def scheduler(self) -> PollScheduler | None:
        return self._scheduler

    def run(self):
        """Poll until the run budget elapses or shutdown is requested."""
        cfg = self._config
        self._context = CanaryContext(
            stream_name=cfg.stream_name,
            canary_label=cfg.canary_label,
            region=cfg.region,
            start_time=self._clock(),
            duration_seconds=cfg.duration_seconds,
        )
        logger.info(
            "Canary %s started for stream %s (label=%s, duration=%ds)",
            cfg.metric_type, cfg.stream_name, cfg.canary_label, cfg.duration_seconds,
        )

        self._caller = BoundedCaller(cfg.call_timeout, name=f"{cfg.metric_type}-call")
        self._scheduler = self._build_scheduler(self._context, self._caller)
        self._scheduler.start()

        try:
            if self._shutdown.wait(timeout=cfg.duration_seconds):
                logger.info("Shutdown requested, stopping canary")
            else:
                logger.info("Run duration of %ds elapsed, stopping canary", cfg.duration_seconds)
        finally:
            self._scheduler.stop()
            self._caller.shutdown()
            self._emitter.shutdown()
            self._shutdown.set()

    def _build_scheduler(self, context: CanaryContext, caller: BoundedCaller) -> PollScheduler:
        cfg = self._config
        emitter = self._emitter = MetricEmitter(
            context, self._publisher,
            namespace=cfg.metric_namespace, publish_timeout=cfg.publish_timeout,
        )

        if cfg.metric_type == FRAGMENT_CONTINUITY:
            detector = FragmentContinuityDetector(context, self._storage, emitter, caller, clock=self._clock)
            return PollScheduler(
                ContinuityTask(detector),
                interval=cfg.continuity_interval,
                initial_delay=cfg.continuity_initial_delay,
                name="fragment-continuity",
            )

        detector = TimeToFirstFragmentDetector(
            context, self._storage, emitter, caller,
            read_timeout=cfg.read_timeout, clock=self._clock,
        )
        return PollScheduler(
            detector.poll,
            interval=cfg.first_fragment_interval,
            initial_delay=0.0,
            name="time-to-first-fragment",
        )
