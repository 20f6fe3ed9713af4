"""Tests for the canary data model."""

import dataclasses
from datetime import timedelta

import pytest

from canary.models import CanaryContext, Fragment, FragmentSnapshot, MetricSample
from conftest import T0, make_fragments


class TestCanaryContext:
    def test_frozen(self, context):
        """The run context is immutable."""
        with pytest.raises(dataclasses.FrozenInstanceError):
            context.stream_name = "other"

    def test_elapsed_ms(self, context):
        """Elapsed time is measured from the canary start."""
        assert context.elapsed_ms(T0 + timedelta(milliseconds=750)) == 750.0

    def test_elapsed_ms_at_start_is_zero(self, context):
        """No time has passed at the start instant."""
        assert context.elapsed_ms(T0) == 0.0


class TestFragmentSnapshot:
    def test_empty_has_no_fragments(self):
        """The empty snapshot has length zero."""
        assert len(FragmentSnapshot.empty()) == 0

    def test_of_keeps_order(self):
        """Snapshots keep listing order."""
        fragments = make_fragments(3)
        snapshot = FragmentSnapshot.of(reversed(fragments))
        assert snapshot.fragments == tuple(reversed(fragments))
        assert len(snapshot) == 3

    def test_of_copies_input(self):
        """Later changes to the source list do not leak in."""
        fragments = make_fragments(2)
        snapshot = FragmentSnapshot.of(fragments)
        fragments.append(Fragment("extra"))
        assert len(snapshot) == 2


class TestMetricSample:
    def test_to_datum(self):
        """A sample maps to one PutMetricData datum."""
        sample = MetricSample("FragmentReceived", 1.0, "None", "StorageWebRTCSDKCanaryLabel", "WebrtcLongRunning")
        assert sample.to_datum() == {
            "MetricName": "FragmentReceived",
            "Dimensions": [{"Name": "StorageWebRTCSDKCanaryLabel", "Value": "WebrtcLongRunning"}],
            "Value": 1.0,
            "Unit": "None",
        }
