"""Formats canary signals as dimensioned metric samples and publishes them."""

import logging
from concurrent.futures import TimeoutError as CallTimeout

from canary.models import CanaryContext, MetricSample
from canary.worker import BoundedCaller

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "KinesisVideoSDKCanary"
STREAM_DIMENSION = "StorageWebRTCSDKCanaryStreamName"
LABEL_DIMENSION = "StorageWebRTCSDKCanaryLabel"

UNIT_NONE = "None"
UNIT_MILLISECONDS = "Milliseconds"


class MetricEmitter:
    """Emits every observation twice: once per stream, once per run label.

    The publisher only needs a ``publish(namespace, samples)`` method.
    Publication runs on the emitter's own worker and the caller waits at
    most ``publish_timeout`` seconds. Failures are logged and dropped. A
    batch still in flight after the wait is left to finish in the background.
    """

    def __init__(
        self,
        context: CanaryContext,
        publisher,
        namespace: str = DEFAULT_NAMESPACE,
        publish_timeout: float = 2.0,
    ):
        self._stream_name = context.stream_name
        self._canary_label = context.canary_label
        self._publisher = publisher
        self._namespace = namespace
        self._caller = BoundedCaller(publish_timeout, name="metric-publish")

    @property
    def namespace(self) -> str:
        return self._namespace

    def build_samples(self, name: str, value: float, unit: str) -> list[MetricSample]:
        return [
            MetricSample(name, float(value), unit, STREAM_DIMENSION, self._stream_name),
            MetricSample(name, float(value), unit, LABEL_DIMENSION, self._canary_label),
        ]

    def emit(self, name: str, value: float, unit: str = UNIT_NONE) -> bool:
        """Publish one observation. Returns False unless the publisher accepted it in time."""
        samples = self.build_samples(name, value, unit)
        try:
            self._caller.call(self._publisher.publish, self._namespace, samples)
        except CallTimeout:
            logger.warning(
                "Publishing %s=%s to %s still in flight after %.1fs",
                name, value, self._namespace, self._caller.timeout,
            )
            return False
        except Exception as e:
            logger.error("Failed to publish %s=%s to %s: %s", name, value, self._namespace, e)
            return False
        logger.info("Published %s=%s %s", name, value, unit)
        return True

    def shutdown(self):
        self._caller.shutdown()
