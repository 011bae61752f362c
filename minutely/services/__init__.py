"""Scheduling services."""

from .scheduler import (
    CallbackHandle,
    CallbackResult,
    DispatchReport,
    MinuteScheduler,
    SchedulerState,
    milliseconds_until_next_minute,
    next_minute_boundary,
)
from .timers import AsyncioTimerFacility, TimerFacility, TimerHandle

__all__ = [
    "AsyncioTimerFacility",
    "CallbackHandle",
    "CallbackResult",
    "DispatchReport",
    "MinuteScheduler",
    "SchedulerState",
    "TimerFacility",
    "TimerHandle",
    "milliseconds_until_next_minute",
    "next_minute_boundary",
]
