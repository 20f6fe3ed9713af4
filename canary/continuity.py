"""Fragment continuity detection: did the last poll see any new fragment?"""

import logging

from canary.emitter import UNIT_NONE
from canary.models import CanaryContext, FragmentSnapshot, utc_now
from canary.worker import BoundedCaller

logger = logging.getLogger(__name__)

METRIC_NAME = "FragmentReceived"
LIST_FRAGMENTS_API = "LIST_FRAGMENTS"


class FragmentContinuityDetector:
    """Compares the fragment count of each poll against the previous one.

    Every poll lists all fragments with a server timestamp in
    [canary start, now), so the window only ever grows. A strictly larger
    count than the previous snapshot means a new fragment arrived.
    """

    def __init__(self, context: CanaryContext, storage, emitter, caller: BoundedCaller, clock=utc_now):
        self._context = context
        self._storage = storage
        self._emitter = emitter
        self._caller = caller
        self._clock = clock
        self._endpoint: str | None = None

    def poll(self, snapshot: FragmentSnapshot) -> FragmentSnapshot:
        """Run one poll and return the snapshot to use for the next one."""
        try:
            fragments = self._caller.call(self._list_fragments)
        except Exception as e:
            logger.error("Fragment list for %s failed, skipping poll: %s", self._context.stream_name, e)
            return snapshot

        current = FragmentSnapshot.of(fragments)
        received = len(current) > len(snapshot)
        if len(current) < len(snapshot):
            logger.warning(
                "Fragment count for %s shrank from %d to %d",
                self._context.stream_name, len(snapshot), len(current),
            )
        logger.info("New fragment received: %s (%d fragments)", received, len(current))

        self._emitter.emit(METRIC_NAME, 1.0 if received else 0.0, UNIT_NONE)
        return current

    def _list_fragments(self):
        if self._endpoint is None:
            self._endpoint = self._storage.resolve_endpoint(self._context.stream_name, LIST_FRAGMENTS_API)
            logger.info("Using %s endpoint %s", LIST_FRAGMENTS_API, self._endpoint)
        return self._storage.list_fragments(
            self._context.stream_name,
            self._endpoint,
            self._context.start_time,
            self._clock(),
        )
