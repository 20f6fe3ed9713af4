"""CloudWatch metrics collaborator backed by boto3."""

import logging

import boto3
from botocore.config import Config

logger = logging.getLogger(__name__)


class CloudWatchPublisher:
    """Sends metric batches with PutMetricData.

    The client carries short connect/read timeouts so a stalled request
    gives up on its own instead of holding the publish worker for botocore's
    default minute.
    """

    def __init__(self, region: str, session=None, timeout: float = 5.0):
        session = session or boto3.session.Session(region_name=region)
        self._config = Config(connect_timeout=timeout, read_timeout=timeout, retries={"max_attempts": 2})
        self._client = session.client("cloudwatch", region_name=region, config=self._config)

    def publish(self, namespace: str, samples):
        """Send all samples in a single PutMetricData request."""
        data = [sample.to_datum() for sample in samples]
        self._client.put_metric_data(Namespace=namespace, MetricData=data)
        logger.debug("Sent %d datum(s) to %s", len(data), namespace)
