"""Entry point for the Kinesis Video storage canary consumer."""

import logging
import signal
import sys
import threading

from canary.cloudwatch import CloudWatchPublisher
from canary.config import ConfigError, load_config
from canary.controller import CanaryController
from canary.kvs_client import KinesisVideoStorage

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def main(argv=None) -> int:
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, stream=sys.stderr)
    logger = logging.getLogger(__name__)

    try:
        config = load_config(argv)
    except ConfigError as e:
        logger.error("Invalid canary configuration: %s", e)
        return 1

    logging.getLogger().setLevel(config.log_level)
    logger.info("Stream name: %s", config.stream_name)
    logger.debug("Config: %s", config)

    shutdown_event = threading.Event()

    def handle_signal(signum, frame):
        logger.info("Received signal %d, shutting down...", signum)
        shutdown_event.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    controller = CanaryController(
        config,
        storage=KinesisVideoStorage(config.region, media_read_timeout=config.call_timeout),
        publisher=CloudWatchPublisher(config.region, timeout=config.publish_timeout),
        shutdown_event=shutdown_event,
    )
    controller.run()
    logger.info("Canary finished")
    return 0


if __name__ == "__main__":
    sys.exit(main())
