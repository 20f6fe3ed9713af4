"""Configuration loading from an optional YAML file, env vars, and CLI args."""

import argparse
import logging
import os
from dataclasses import dataclass, fields

import yaml

logger = logging.getLogger(__name__)

FRAGMENT_CONTINUITY = "FragmentContinuity"
TIME_TO_FIRST_FRAGMENT = "TimeToFirstFragment"
METRIC_TYPES = (FRAGMENT_CONTINUITY, TIME_TO_FIRST_FRAGMENT)

# Run labels that imply a metric type when CANARY_METRIC_TYPE is unset.
LABEL_METRIC_TYPES = {
    "WebrtcLongRunning": FRAGMENT_CONTINUITY,
    "WebrtcPeriodic": TIME_TO_FIRST_FRAGMENT,
}

# Tunables that may come from the YAML file or the environment.
_TUNABLE_ENV = {
    "continuity_initial_delay": "CANARY_CONTINUITY_INITIAL_DELAY",
    "continuity_interval": "CANARY_CONTINUITY_INTERVAL",
    "first_fragment_interval": "CANARY_FIRST_FRAGMENT_INTERVAL",
    "read_timeout": "CANARY_READ_TIMEOUT",
    "call_timeout": "CANARY_CALL_TIMEOUT",
    "publish_timeout": "CANARY_PUBLISH_TIMEOUT",
    "metric_namespace": "CANARY_METRIC_NAMESPACE",
}


class ConfigError(Exception):
    """Fatal startup configuration problem."""


@dataclass(frozen=True)
class CanaryConfig:
    duration_seconds: int
    metric_type: str
    stream_name: str = "DefaultStreamName"
    canary_label: str = "DEFAULT_CANARY_LABEL"
    region: str = "us-west-2"
    continuity_initial_delay: float = 60.0
    continuity_interval: float = 16.0
    first_fragment_interval: float = 0.25
    read_timeout: float = 1.0
    call_timeout: float = 10.0
    publish_timeout: float = 2.0
    metric_namespace: str = "KinesisVideoSDKCanary"
    log_level: str = "INFO"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


def _coerce(name: str, value, kind):
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a {kind.__name__}, got {value!r}") from None


def load_yaml_config(path: str | None) -> dict:
    """Load tunables from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    logger.info("Loaded YAML config from %s", path)
    return data


def resolve_metric_type(metric_type: str | None, canary_label: str) -> str:
    """Pick the canary mode from an explicit metric type or the run label."""
    if metric_type:
        if metric_type not in METRIC_TYPES:
            raise ConfigError(
                f"CANARY_METRIC_TYPE: {metric_type} must be set to either "
                f"{FRAGMENT_CONTINUITY} or {TIME_TO_FIRST_FRAGMENT}"
            )
        return metric_type
    if canary_label in LABEL_METRIC_TYPES:
        return LABEL_METRIC_TYPES[canary_label]
    raise ConfigError(
        f"No metric type set and label {canary_label!r} does not select one; "
        f"set CANARY_METRIC_TYPE to {FRAGMENT_CONTINUITY} or {TIME_TO_FIRST_FRAGMENT}"
    )


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Kinesis Video storage canary consumer")
    parser.add_argument("--config", default=None, help="Path to YAML config file for tunables")
    parser.add_argument("--stream-name", type=str, default=None)
    parser.add_argument("--label", type=str, default=None)
    parser.add_argument("--region", type=str, default=None)
    parser.add_argument("--duration", type=str, default=None, help="Run duration in seconds")
    parser.add_argument(
        "--metric-type", type=str, default=None,
        help=f"{FRAGMENT_CONTINUITY} or {TIME_TO_FIRST_FRAGMENT}",
    )
    parser.add_argument("--log-level", type=str, default=None)
    return parser


def load_config(argv=None) -> CanaryConfig:
    """Build CanaryConfig from YAML, then env vars, then CLI args.

    Raises ConfigError for anything that must stop the canary before it
    starts polling: no usable metric type, or a missing or bad duration.
    """
    args = build_cli_parser().parse_args(argv)
    yaml_data = load_yaml_config(args.config or os.environ.get("CANARY_CONFIG_FILE"))

    unknown = set(yaml_data) - {f.name for f in fields(CanaryConfig)}
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")

    stream_name = os.environ.get("CANARY_STREAM_NAME", yaml_data.get("stream_name", CanaryConfig.stream_name))
    if _parse_bool(os.environ.get("USE_IOT_PROVIDER", "false")) and os.environ.get("IOT_THING_NAME"):
        stream_name = os.environ["IOT_THING_NAME"]
    if args.stream_name is not None:
        stream_name = args.stream_name

    canary_label = args.label or os.environ.get("CANARY_LABEL", yaml_data.get("canary_label", CanaryConfig.canary_label))
    region = args.region or os.environ.get("AWS_DEFAULT_REGION", yaml_data.get("region", CanaryConfig.region))
    log_level = str(args.log_level or os.environ.get("LOG_LEVEL", yaml_data.get("log_level", CanaryConfig.log_level))).upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigError(f"LOG_LEVEL must be a logging level name, got {log_level!r}")

    raw_duration = args.duration or os.environ.get("CANARY_DURATION_IN_SECONDS", yaml_data.get("duration_seconds"))
    if raw_duration is None:
        raise ConfigError("CANARY_DURATION_IN_SECONDS is required")
    duration = _coerce("CANARY_DURATION_IN_SECONDS", raw_duration, int)
    if duration <= 0:
        raise ConfigError(f"CANARY_DURATION_IN_SECONDS must be positive, got {duration}")

    metric_type = resolve_metric_type(
        args.metric_type or os.environ.get("CANARY_METRIC_TYPE") or yaml_data.get("metric_type"),
        canary_label,
    )

    tunables = {}
    for name, env_var in _TUNABLE_ENV.items():
        default = getattr(CanaryConfig, name)
        raw = os.environ.get(env_var, yaml_data.get(name, default))
        value = _coerce(env_var, raw, type(default))
        if isinstance(value, float) and value < 0:
            raise ConfigError(f"{env_var} must not be negative, got {value}")
        tunables[name] = value
    for name in ("continuity_interval", "first_fragment_interval", "read_timeout", "call_timeout", "publish_timeout"):
        if tunables[name] <= 0:
            raise ConfigError(f"{_TUNABLE_ENV[name]} must be positive, got {tunables[name]}")

    return CanaryConfig(
        duration_seconds=duration,
        metric_type=metric_type,
        stream_name=stream_name,
        canary_label=canary_label,
        region=region,
        log_level=log_level,
        **tunables,
    )
