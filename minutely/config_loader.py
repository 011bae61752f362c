"""Utilities to load :mod:`minutely.config` structures from YAML files."""
from __future__ import annotations

import datetime as _dt
from pathlib import Path
from typing import Any, Mapping

import yaml

from .config import DriftPolicy, LoggingConfig, MinutelyConfig, SchedulerConfig

_DURATION_UNITS = {
    "ms": _dt.timedelta(milliseconds=1),
    "s": _dt.timedelta(seconds=1),
    "m": _dt.timedelta(minutes=1),
    "h": _dt.timedelta(hours=1),
}
_MINUTE = _dt.timedelta(minutes=1)


def load_config(path: Path) -> MinutelyConfig:
    """Load a configuration file into :class:`MinutelyConfig`.

    The loader accepts human friendly durations such as ``"60s"`` or ``"1m"``.
    The only duration is ``scheduler.period``, which exists for readability and
    must equal one minute; any other value raises :class:`ValueError`.  Fields
    omitted in the YAML file fall back to the defaults declared in
    :mod:`minutely.config`.
    """

    return parse_config(_load_yaml(path))


def parse_config(raw: Mapping[str, Any]) -> MinutelyConfig:
    """Build a :class:`MinutelyConfig` from an already parsed mapping."""

    defaults = SchedulerConfig()
    scheduler_section = raw.get("scheduler") or {}
    if "period" in scheduler_section:
        period = _parse_duration(scheduler_section["period"])
        if period != _MINUTE:
            raise ValueError(f"scheduler period is fixed at one minute, got {period}")
    scheduler = SchedulerConfig(
        drift_policy=parse_drift_policy(
            scheduler_section.get("drift_policy", defaults.drift_policy)
        ),
        autostart=_parse_bool(
            "scheduler.autostart", scheduler_section.get("autostart", defaults.autostart)
        ),
    )

    logging_section = raw.get("logging") or {}
    logging_cfg = LoggingConfig(
        level=str(logging_section.get("level", "INFO")).upper(),
        json=_parse_bool("logging.json", logging_section.get("json", False)),
    )

    return MinutelyConfig(scheduler=scheduler, logging=logging_cfg)


def parse_drift_policy(value: Any) -> DriftPolicy:
    if isinstance(value, DriftPolicy):
        return value
    normalised = str(value).strip().lower().replace("_", "-")
    try:
        return DriftPolicy(normalised)
    except ValueError:
        choices = ", ".join(policy.value for policy in DriftPolicy)
        raise ValueError(f"unknown drift policy: {value!r} (expected one of {choices})") from None


def _parse_bool(key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be true or false, got {value!r}")
    return value


def _load_yaml(path: Path) -> Mapping[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError("configuration root must be a mapping")
    return data


def _parse_duration(value: Any) -> _dt.timedelta:
    if isinstance(value, _dt.timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError(f"unsupported duration value: {value!r}")
    if isinstance(value, (int, float)):
        return _dt.timedelta(seconds=float(value))
    if not isinstance(value, str):
        raise ValueError(f"unsupported duration value: {value!r}")
    value = value.strip()
    if not value:
        raise ValueError(f"invalid duration: {value!r}")
    if value.isdigit():
        return _dt.timedelta(seconds=int(value))
    unit = "ms" if value.lower().endswith("ms") else value[-1].lower()
    if unit not in _DURATION_UNITS:
        raise ValueError(f"unknown duration unit: {value}")
    try:
        amount = float(value[: -len(unit)])
    except ValueError:
        raise ValueError(f"invalid duration: {value}") from None
    base = _DURATION_UNITS[unit]
    return _dt.timedelta(seconds=base.total_seconds() * amount)
