"""Canary data model: run context, fragments, snapshots, and metric samples."""

from dataclasses import dataclass, field
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CanaryContext:
    """Immutable facts about one canary run, shared by every detector."""

    stream_name: str
    canary_label: str
    region: str
    start_time: datetime
    duration_seconds: int

    def elapsed_ms(self, now: datetime) -> float:
        return (now - self.start_time).total_seconds() * 1000.0


@dataclass(frozen=True)
class Fragment:
    fragment_number: str
    server_timestamp: datetime | None = None
    producer_timestamp: datetime | None = None
    size_bytes: int = 0
    duration_ms: int = 0


@dataclass(frozen=True)
class FragmentSnapshot:
    """Every fragment returned by the most recent successful poll."""

    fragments: tuple[Fragment, ...] = field(default_factory=tuple)

    @classmethod
    def empty(cls) -> "FragmentSnapshot":
        return cls()

    @classmethod
    def of(cls, fragments) -> "FragmentSnapshot":
        return cls(fragments=tuple(fragments))

    def __len__(self) -> int:
        return len(self.fragments)


@dataclass(frozen=True)
class MetricSample:
    name: str
    value: float
    unit: str
    dimension_name: str
    dimension_value: str

    def to_datum(self) -> dict:
        """Render as a CloudWatch MetricData entry."""
        return {
            "MetricName": self.name,
            "Dimensions": [{"Name": self.dimension_name, "Value": self.dimension_value}],
            "Value": self.value,
            "Unit": self.unit,
        }
