"""Configuration schema for the minutely scheduler.

This module defines dataclasses that describe how a :class:`MinuteScheduler`
is tuned and how the process logs.  Everything has a default so an empty
configuration file yields a working scheduler.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field


class DriftPolicy(str, enum.Enum):
    """How the scheduler re-arms after a tick."""

    # Recompute delay-to-next-boundary from the live clock after every tick.
    SELF_CORRECTING = "self-correcting"
    # Align once, then re-arm every 60 seconds without consulting the clock.
    FIXED_PERIOD = "fixed-period"


@dataclass(slots=True)
class SchedulerConfig:
    """Timing knobs for :class:`minutely.services.MinuteScheduler`."""

    drift_policy: DriftPolicy = DriftPolicy.SELF_CORRECTING
    autostart: bool = True


@dataclass(slots=True)
class LoggingConfig:
    """Logging output configuration."""

    level: str = "INFO"
    json: bool = False


@dataclass(slots=True)
class MinutelyConfig:
    """Top-level configuration bundle."""

    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
