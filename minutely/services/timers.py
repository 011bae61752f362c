"""Clock and deferred-call primitives consumed by the scheduler."""
from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable, Optional, Protocol

Clock = Callable[[], datetime]


class TimerHandle(Protocol):
    """A scheduled-but-not-yet-fired call that can be cancelled."""

    def cancel(self) -> None:
        ...


class TimerFacility(Protocol):
    """Wall clock plus one-shot deferred calls.

    Implementations must run every callback on a single execution context so
    that the scheduler needs no locking.
    """

    def now(self) -> datetime:
        ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class AsyncioTimerFacility:
    """:class:`TimerFacility` backed by an asyncio event loop.

    When ``loop`` is omitted the running loop is looked up each time a call
    is scheduled, so the facility can be created before the loop starts.
    """

    def __init__(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._loop = loop
        self._clock = clock or datetime.now

    def now(self) -> datetime:
        return self._clock()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, delay), callback)
