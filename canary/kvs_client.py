"""Kinesis Video Streams storage collaborator backed by boto3."""

import logging
from datetime import datetime

import boto3
from botocore.config import Config

from canary.models import Fragment

logger = logging.getLogger(__name__)


def _fragment_from_response(item: dict) -> Fragment:
    return Fragment(
        fragment_number=item["FragmentNumber"],
        server_timestamp=item.get("ServerTimestamp"),
        producer_timestamp=item.get("ProducerTimestamp"),
        size_bytes=item.get("FragmentSizeInBytes", 0),
        duration_ms=item.get("FragmentLengthInMilliseconds", 0),
    )


def _fragment_order(fragment: Fragment):
    ts = fragment.server_timestamp
    return (ts is None, ts.timestamp() if ts is not None else 0.0, fragment.fragment_number)


class KinesisVideoStorage:
    """Resolves data endpoints, lists fragments, and opens live media streams.

    Data-plane clients are bound to the endpoint returned by
    GetDataEndpoint, so one client is created per endpoint and reused.
    The GetMedia client gets a socket read timeout so a live stream that
    never delivers data fails its read instead of blocking forever.
    """

    def __init__(self, region: str, session=None, media_read_timeout: float = 5.0, connect_timeout: float = 5.0):
        self._session = session or boto3.session.Session(region_name=region)
        self._region = region
        self._control = self._session.client("kinesisvideo", region_name=region)
        self._media_config = Config(connect_timeout=connect_timeout, read_timeout=media_read_timeout)
        self._clients: dict[tuple[str, str], object] = {}

    def _data_client(self, service: str, endpoint: str, config: Config | None = None):
        key = (service, endpoint)
        if key not in self._clients:
            kwargs = {"region_name": self._region, "endpoint_url": endpoint}
            if config is not None:
                kwargs["config"] = config
            self._clients[key] = self._session.client(service, **kwargs)
        return self._clients[key]

    def resolve_endpoint(self, stream_name: str, api_name: str) -> str:
        response = self._control.get_data_endpoint(StreamName=stream_name, APIName=api_name)
        return response["DataEndpoint"]

    def list_fragments(self, stream_name: str, endpoint: str, start: datetime, end: datetime) -> list[Fragment]:
        """All fragments with a server timestamp in [start, end), oldest first."""
        client = self._data_client("kinesis-video-archived-media", endpoint)
        request = {
            "StreamName": stream_name,
            "FragmentSelector": {
                "FragmentSelectorType": "SERVER_TIMESTAMP",
                "TimestampRange": {"StartTimestamp": start, "EndTimestamp": end},
            },
        }
        fragments: list[Fragment] = []
        pages = 0
        while True:
            response = client.list_fragments(**request)
            pages += 1
            fragments.extend(_fragment_from_response(item) for item in response.get("Fragments", []))
            token = response.get("NextToken")
            if not token:
                break
            request["NextToken"] = token
        logger.debug("Listed %d fragments for %s in %d page(s)", len(fragments), stream_name, pages)
        fragments.sort(key=_fragment_order)
        return fragments

    def open_live_stream(self, stream_name: str, endpoint: str):
        """Open GetMedia at NOW and return its streaming payload."""
        client = self._data_client("kinesis-video-media", endpoint, self._media_config)
        response = client.get_media(
            StreamName=stream_name,
            StartSelector={"StartSelectorType": "NOW"},
        )
        return response["Payload"]
