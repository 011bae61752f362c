"""Clock-aligned minute scheduling primitives."""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

from minutely.config import DriftPolicy, SchedulerConfig
from minutely.services.timers import TimerFacility, TimerHandle

Callback = Callable[[], None]
ReportSink = Callable[["DispatchReport"], None]

_MINUTE = timedelta(minutes=1)
# A trigger that fires this close before its boundary still counts as that boundary.
_EARLY_FIRE_TOLERANCE = timedelta(seconds=1)


def milliseconds_until_next_minute(now: datetime) -> int:
    """Return the delay from ``now`` to the next wall-clock minute boundary.

    The result lies in ``(0, 60000]``: exactly on a boundary the *next* one
    is a full minute away.
    """

    return (60 - now.second) * 1000 - now.microsecond // 1000


def next_minute_boundary(now: datetime) -> datetime:
    return now.replace(second=0, microsecond=0) + _MINUTE


class SchedulerState(str, enum.Enum):
    STOPPED = "stopped"
    RUNNING = "running"


@dataclass(frozen=True, slots=True)
class CallbackResult:
    """Outcome of invoking one callback during a tick."""

    callback: Callback
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True, slots=True)
class DispatchReport:
    """Per-callback results of a single tick, in invocation order."""

    tick_time: datetime
    results: Tuple[CallbackResult, ...]

    @property
    def succeeded(self) -> int:
        return sum(1 for result in self.results if result.ok)

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded


class CallbackRegistry:
    """Ordered callbacks, matched by identity rather than equality.

    ``generation`` increases every time the registry is cleared so handles
    issued before a clear cannot remove later registrations.
    """

    def __init__(self) -> None:
        self._callbacks: List[Callback] = []
        self.generation = 0

    def __len__(self) -> int:
        return len(self._callbacks)

    def add(self, callback: Callback) -> None:
        self._callbacks.append(callback)

    def discard(self, callback: Callback) -> bool:
        """Remove the first entry that *is* ``callback``."""

        for index, candidate in enumerate(self._callbacks):
            if candidate is callback:
                del self._callbacks[index]
                return True
        return False

    def snapshot(self) -> Tuple[Callback, ...]:
        return tuple(self._callbacks)

    def clear(self) -> None:
        self._callbacks.clear()
        self.generation += 1


class CallbackHandle:
    """Unregisters one registration when called.

    Only the first call has an effect; later calls are cheap no-ops.
    """

    __slots__ = ("_registry", "_callback", "_generation", "_active")

    def __init__(self, registry: CallbackRegistry, callback: Callback) -> None:
        self._registry = registry
        self._callback = callback
        self._generation = registry.generation
        self._active = True

    @property
    def active(self) -> bool:
        return self._active and self._generation == self._registry.generation

    def unregister(self) -> bool:
        """Remove the registration; return ``True`` if an entry was removed."""

        if not self.active:
            self._active = False
            return False
        self._active = False
        return self._registry.discard(self._callback)

    __call__ = unregister


class MinuteScheduler:
    """Invoke registered callbacks once per minute, on the minute.

    The scheduler holds at most one pending trigger.  With
    :attr:`DriftPolicy.SELF_CORRECTING` every tick recomputes the delay to the
    next boundary from the live clock, so drift never accumulates but wall
    clock adjustments are followed.  With :attr:`DriftPolicy.FIXED_PERIOD` the
    first trigger is aligned and later ones are armed a fixed minute apart,
    which can drift away from the boundary over long uptimes or system sleep.

    The next trigger is armed before callbacks run, so a callback may call
    :meth:`stop` or :meth:`start` and have it stick.
    """

    def __init__(
        self,
        timers: TimerFacility,
        config: Optional[SchedulerConfig] = None,
        *,
        report_sink: Optional[ReportSink] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._timers = timers
        self._config = config or SchedulerConfig()
        self._report_sink = report_sink
        self._log = logger or logging.getLogger(__name__)
        self._registry = CallbackRegistry()
        self._pending: Optional[TimerHandle] = None
        self._expected_boundary: Optional[datetime] = None
        self._state = SchedulerState.STOPPED
        self._tick_count = 0
        if self._config.autostart:
            self.start()

    # ------------------------------------------------------------------
    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is SchedulerState.RUNNING

    @property
    def drift_policy(self) -> DriftPolicy:
        return self._config.drift_policy

    @property
    def callback_count(self) -> int:
        return len(self._registry)

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def next_boundary(self) -> Optional[datetime]:
        """Wall-clock time the pending trigger is aiming for, if running."""

        return self._expected_boundary if self.running else None

    def __enter__(self) -> "MinuteScheduler":
        return self

    def __exit__(self, *exc_info) -> None:
        self.destroy()

    # ------------------------------------------------------------------
    def register_callback(self, callback: Callback) -> CallbackHandle:
        """Add ``callback`` to every future tick and return its unregister handle."""

        self._registry.add(callback)
        self._log.debug("registered minute callback %r (total=%d)", callback, len(self._registry))
        return CallbackHandle(self._registry, callback)

    def milliseconds_until_next_minute(self) -> int:
        return milliseconds_until_next_minute(self._timers.now())

    # ------------------------------------------------------------------
    def start(self) -> None:
        """Align to the next minute boundary, replacing any pending trigger."""

        self._cancel_pending()
        now = self._timers.now()
        delay_ms = milliseconds_until_next_minute(now)
        self._arm(next_minute_boundary(now), delay_ms / 1000.0)
        self._state = SchedulerState.RUNNING
        self._log.info(
            "minute scheduler started (policy=%s, first tick in %d ms)",
            self._config.drift_policy.value,
            delay_ms,
        )

    def stop(self) -> None:
        """Cancel the pending trigger; registered callbacks are kept."""

        self._cancel_pending()
        if self._state is SchedulerState.RUNNING:
            self._log.info("minute scheduler stopped")
        self._state = SchedulerState.STOPPED
        self._expected_boundary = None

    def destroy(self) -> None:
        """Stop and forget every registered callback."""

        self.stop()
        self._registry.clear()
        self._log.info("minute scheduler destroyed")

    # ------------------------------------------------------------------
    def _dispatch(self, tick_time: Optional[datetime] = None) -> DispatchReport:
        """Run one tick over a snapshot of the registry.

        Registrations made by callbacks during this tick take effect on the
        next one, and a callback unregistered mid-tick still runs if it was
        in the snapshot.
        """

        snapshot = self._registry.snapshot()
        results: List[CallbackResult] = []
        for callback in snapshot:
            try:
                callback()
            except Exception as exc:  # noqa: BLE001
                self._log.exception("Error in minute timer callback %r", callback)
                results.append(CallbackResult(callback, exc))
            else:
                results.append(CallbackResult(callback))

        self._tick_count += 1
        report = DispatchReport(
            tick_time=tick_time or self._timers.now(),
            results=tuple(results),
        )
        if report.failed:
            self._log.warning("minute tick finished with %d failed callback(s)", report.failed)
        if self._report_sink is not None:
            try:
                self._report_sink(report)
            except Exception:  # noqa: BLE001
                self._log.exception("minute scheduler report sink failed")
        return report

    # ------------------------------------------------------------------
    def _arm(self, boundary: datetime, delay: float) -> None:
        self._expected_boundary = boundary
        self._pending = self._timers.call_later(delay, self._on_trigger)
        self._log.debug("next minute tick armed for %s (in %.3f s)", boundary.isoformat(), delay)

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
            self._log.debug("pending minute trigger cancelled")

    def _on_trigger(self) -> None:
        self._pending = None
        boundary = self._expected_boundary
        now = self._timers.now()
        if boundary is None:
            boundary = now

        if self._config.drift_policy is DriftPolicy.FIXED_PERIOD:
            self._arm(boundary + _MINUTE, _MINUTE.total_seconds())
        else:
            reference = now
            if timedelta(0) < boundary - now <= _EARLY_FIRE_TOLERANCE:
                reference = boundary
            upcoming = next_minute_boundary(reference)
            self._arm(upcoming, max(0.0, (upcoming - now).total_seconds()))

        self._dispatch(boundary)
