"""Tests for the process entry point."""

from unittest.mock import MagicMock

import pytest

import main


@pytest.fixture
def patched(monkeypatch):
    mocks = {
        "storage": MagicMock(name="KinesisVideoStorage"),
        "publisher": MagicMock(name="CloudWatchPublisher"),
        "controller": MagicMock(name="CanaryController"),
        "signal": MagicMock(name="signal"),
    }
    monkeypatch.setattr(main, "KinesisVideoStorage", mocks["storage"])
    monkeypatch.setattr(main, "CloudWatchPublisher", mocks["publisher"])
    monkeypatch.setattr(main, "CanaryController", mocks["controller"])
    monkeypatch.setattr(main.signal, "signal", mocks["signal"])
    for var in (
        "CANARY_DURATION_IN_SECONDS", "CANARY_METRIC_TYPE", "CANARY_LABEL", "CANARY_CONFIG_FILE", "LOG_LEVEL",
        "CANARY_CALL_TIMEOUT", "CANARY_PUBLISH_TIMEOUT",
    ):
        monkeypatch.delenv(var, raising=False)
    return mocks


class TestMain:
    def test_fatal_config_exits_non_zero(self, patched):
        """A bad config exits 1 before anything is built."""
        assert main.main(["--duration", "60", "--metric-type", "Bogus"]) == 1
        patched["controller"].assert_not_called()
        patched["storage"].assert_not_called()

    def test_unparsable_duration_exits_non_zero(self, patched):
        """A non-numeric duration exits 1."""
        assert main.main(["--duration", "soon", "--metric-type", "FragmentContinuity"]) == 1
        patched["controller"].assert_not_called()

    def test_normal_run_exits_zero(self, patched):
        """A completed run exits 0 with collaborators bound to the region."""
        code = main.main(["--duration", "60", "--metric-type", "TimeToFirstFragment", "--region", "eu-west-1"])

        assert code == 0
        patched["storage"].assert_called_once_with("eu-west-1", media_read_timeout=10.0)
        patched["publisher"].assert_called_once_with("eu-west-1", timeout=2.0)
        patched["controller"].return_value.run.assert_called_once()
        config = patched["controller"].call_args.args[0]
        assert config.metric_type == "TimeToFirstFragment"
        assert config.duration_seconds == 60

    def test_signal_handlers_installed(self, patched):
        """SIGINT and SIGTERM are both handled."""
        main.main(["--duration", "60", "--metric-type", "FragmentContinuity"])
        signums = {c.args[0] for c in patched["signal"].call_args_list}
        assert signums == {main.signal.SIGINT, main.signal.SIGTERM}

    def test_signal_sets_shutdown_event(self, patched):
        """A signal asks the controller to stop."""
        main.main(["--duration", "60", "--metric-type", "FragmentContinuity"])
        handler = patched["signal"].call_args_list[0].args[1]
        shutdown_event = patched["controller"].call_args.kwargs["shutdown_event"]
        assert not shutdown_event.is_set()
        handler(main.signal.SIGTERM, None)
        assert shutdown_event.is_set()
