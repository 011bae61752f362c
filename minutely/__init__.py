"""Clock-aligned minute callbacks."""

from .cli import main as cli_main
from .config import DriftPolicy, MinutelyConfig, SchedulerConfig
from .config_loader import load_config
from .services import AsyncioTimerFacility, MinuteScheduler, milliseconds_until_next_minute

__all__ = [
    "cli_main",
    "AsyncioTimerFacility",
    "DriftPolicy",
    "MinuteScheduler",
    "MinutelyConfig",
    "SchedulerConfig",
    "load_config",
    "milliseconds_until_next_minute",
    "config",
    "services",
]
