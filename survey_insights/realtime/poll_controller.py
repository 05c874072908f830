"""Poll-based live updates for one survey view.

A :class:`PollController` periodically asks "has anything changed since the
last response I know about?" and emits an :class:`UpdateDetected` event when
the answer is yes. It never fetches analytics itself; its owner re-runs the
analysis and time-series queries on update.

Lifecycle::

    stopped --start()--> active <--pause()/resume()--> paused
       ^                    |                             |
       +------stop()--------+-------------stop()----------+

Failures do not change the lifecycle state. They double the polling
interval (capped at ``max_interval``) and emit an ``error`` status; the next
success resets both.

Only one poll is ever in flight per started session. Pausing or stopping never
interrupts a running fetch; it only prevents the next one from being
scheduled. A result that arrives after :meth:`PollController.stop` is
dropped, including when the controller was started again in the meantime.
"""
from __future__ import annotations

import datetime
import logging
import threading
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from survey_insights import config
from survey_insights.realtime.events import (
    PollEvent,
    PollListener,
    PollSnapshot,
    PollStatus,
    StatusChanged,
    UpdateDetected,
)
from survey_insights.realtime.visibility import AlwaysVisible, VisibilitySource
from survey_insights.reporting.models import PollUpdate
from survey_insights.timeutils import utcnow

logger = logging.getLogger(__name__)

Fetcher = Callable[[Any, Optional[datetime.datetime]], PollUpdate]


class TimerBackend(Protocol):
    def schedule(self, delay_seconds: float, callback: Callable[..., Any], *args: Any) -> int: ...

    def cancel(self, task_id: int) -> bool: ...


class ControllerState(str, Enum):
    STOPPED = "stopped"
    ACTIVE = "active"
    PAUSED = "paused"


class PollController:
    """Adaptive poller for a single survey.

    Args:
        survey_id: Survey to monitor.
        fetch: ``fetch(survey_id, since) -> PollUpdate``; raising counts as a
            failed poll. :meth:`AnalyticsService.poll_updates` and
            :meth:`AnalyticsClient.poll_updates` both fit.
        scheduler: Timer backend, usually the shared
            :class:`~survey_insights.scheduler.Scheduler`.
        listener: Optional callable receiving every :data:`PollEvent`.
        visibility: Source of "is anyone watching"; defaults to always visible.
        base_interval: Seconds between polls while healthy.
        max_interval: Upper bound for the backoff interval, in seconds.
        immediate: Poll right away on :meth:`start` instead of waiting one interval.
    """

    def __init__(
        self,
        survey_id: Any,
        fetch: Fetcher,
        scheduler: TimerBackend,
        *,
        listener: Optional[PollListener] = None,
        visibility: Optional[VisibilitySource] = None,
        base_interval: float = config.POLL_BASE_INTERVAL,
        max_interval: float = config.POLL_MAX_INTERVAL,
        immediate: bool = True,
    ) -> None:
        if not survey_id:
            raise ValueError("survey_id is required")
        if base_interval <= 0:
            raise ValueError("base_interval must be positive")
        if max_interval < base_interval:
            raise ValueError("max_interval must be >= base_interval")

        self.survey_id = survey_id
        self._fetch = fetch
        self._scheduler = scheduler
        self._listener = listener
        self._visibility: VisibilitySource = visibility or AlwaysVisible()
        self.base_interval = base_interval
        self.max_interval = max_interval
        self.immediate = immediate

        self._lock = threading.RLock()
        self._state = ControllerState.STOPPED
        self._timer_id: Optional[int] = None
        self._in_flight = False
        # Bumped by start(); results from an earlier session are discarded.
        self._generation = 0
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._last_status: Optional[PollStatus] = None
        self._reset_state()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is not ControllerState.STOPPED

    @property
    def is_paused(self) -> bool:
        return self._state is ControllerState.PAUSED

    def start(self) -> None:
        with self._lock:
            if self._state is not ControllerState.STOPPED:
                return
            self._generation += 1
            self._in_flight = False
            self._reset_state()
            self._state = ControllerState.ACTIVE
        logger.info("Starting live updates for survey %s", self.survey_id)
        self._unsubscribe = self._visibility.subscribe(self._on_visibility_change)
        self._set_status(PollStatus.ACTIVE, "Live updates active")

        if not self._visibility.is_visible():
            self.pause("Paused (not visible)")
            return
        if self.immediate:
            self._dispatch("start-immediate")
        self._schedule_next()

    def stop(self) -> None:
        with self._lock:
            if self._state is ControllerState.STOPPED:
                return
            self._state = ControllerState.STOPPED
            self._cancel_timer()
            unsubscribe, self._unsubscribe = self._unsubscribe, None
        logger.info("Stopping live updates for survey %s", self.survey_id)
        if unsubscribe is not None:
            unsubscribe()
        self._set_status(PollStatus.STOPPED, "Updates stopped")

    def pause(self, reason: str = "Paused") -> None:
        with self._lock:
            if self._state is not ControllerState.ACTIVE:
                return
            self._state = ControllerState.PAUSED
            self._cancel_timer()
        logger.debug("Pausing polling for survey %s: %s", self.survey_id, reason)
        self._set_status(PollStatus.PAUSED, reason)

    def resume(self, immediate: bool = True) -> None:
        with self._lock:
            if self._state is not ControllerState.PAUSED:
                return
            self._state = ControllerState.ACTIVE
        logger.debug("Resuming polling for survey %s", self.survey_id)
        self._set_status(PollStatus.ACTIVE, "Live updates active")
        if immediate:
            self._dispatch("resume")
        self._schedule_next()

    def force_poll(self) -> None:
        """Check for updates now, outside the regular schedule."""
        if self._state is not ControllerState.ACTIVE:
            return
        self._dispatch("force")

    def get_state(self) -> PollSnapshot:
        with self._lock:
            return PollSnapshot(
                is_running=self.is_running,
                is_paused=self.is_paused,
                current_interval=self._current_interval,
                consecutive_failures=self._consecutive_failures,
                last_poll_at=self._last_poll_at,
                last_success_at=self._last_success_at,
                last_response_at=self._last_response_at,
            )

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------
    def _reset_state(self) -> None:
        self._current_interval = self.base_interval
        self._consecutive_failures = 0
        self._last_poll_at: Optional[datetime.datetime] = None
        self._last_success_at: Optional[datetime.datetime] = None
        self._last_response_at: Optional[datetime.datetime] = None

    def _cancel_timer(self) -> None:
        if self._timer_id is not None:
            self._scheduler.cancel(self._timer_id)
            self._timer_id = None

    def _schedule_next(self) -> None:
        with self._lock:
            if self._state is not ControllerState.ACTIVE:
                return
            self._cancel_timer()
            self._timer_id = self._scheduler.schedule(self._current_interval, self._poll, "interval")
            logger.debug("Next poll for survey %s in %.1fs", self.survey_id, self._current_interval)

    def _dispatch(self, reason: str) -> None:
        self._scheduler.schedule(0, self._poll, reason)

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------
    def _poll(self, reason: Optional[str] = None) -> None:
        with self._lock:
            if self._state is not ControllerState.ACTIVE:
                return
            if self._in_flight:
                logger.debug("Poll skipped for survey %s: one already in flight", self.survey_id)
                return
            self._in_flight = True
            generation = self._generation
            self._last_poll_at = triggered_at = utcnow()
            since = self._last_response_at

        logger.debug("Polling survey %s since=%s reason=%s", self.survey_id, since, reason)
        try:
            update = self._fetch(self.survey_id, since)
        except Exception as exc:  # noqa: BLE001 – every failure feeds the backoff
            self._handle_failure(exc, generation)
        else:
            self._handle_success(update, reason, triggered_at, generation)
        finally:
            with self._lock:
                current = generation == self._generation
                if current:
                    self._in_flight = False
            # A restarted controller already owns its own timer.
            if current:
                self._schedule_next()

    def _is_stale(self, generation: int) -> bool:
        return self._state is ControllerState.STOPPED or generation != self._generation

    def _handle_success(
        self,
        update: PollUpdate,
        reason: Optional[str],
        triggered_at: datetime.datetime,
        generation: int,
    ) -> None:
        with self._lock:
            if self._is_stale(generation):
                logger.debug("Dropping poll result for stale session of survey %s", self.survey_id)
                return
            self._consecutive_failures = 0
            self._current_interval = self.base_interval
            self._last_success_at = utcnow()
            latest = update.last_response_at
            if latest is not None and (self._last_response_at is None or latest > self._last_response_at):
                self._last_response_at = latest
            active = self._state is ControllerState.ACTIVE

        if active:
            self._set_status(PollStatus.ACTIVE)
        if update.updated:
            logger.info("Update detected for survey %s (new_count=%s)", self.survey_id, update.new_count)
            self._emit(UpdateDetected(update=update, reason=reason, triggered_at=triggered_at))

    def _handle_failure(self, exc: Exception, generation: int) -> None:
        with self._lock:
            if self._is_stale(generation):
                logger.debug("Dropping poll failure for stale session of survey %s", self.survey_id)
                return
            self._consecutive_failures += 1
            self._current_interval = min(self._current_interval * 2, self.max_interval)
            failures = self._consecutive_failures

        logger.warning(
            "Poll failed for survey %s (#%d): %s; retrying in %.1fs",
            self.survey_id,
            failures,
            exc,
            self._current_interval,
        )
        message = "Reconnecting…" if failures > 1 else "Temporary issue"
        # Every failure is reported, even when the status is already "error".
        self._last_status = PollStatus.ERROR
        self._emit(StatusChanged(status=PollStatus.ERROR, message=message, snapshot=self.get_state()))

    def _on_visibility_change(self, visible: bool) -> None:
        if visible:
            self.resume(immediate=True)
        else:
            self.pause("Paused (not visible)")

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def _set_status(self, status: PollStatus, message: Optional[str] = None) -> None:
        if status is self._last_status:
            return
        self._last_status = status
        self._emit(StatusChanged(status=status, message=message, snapshot=self.get_state()))

    def _emit(self, event: PollEvent) -> None:
        if self._listener is None:
            return
        try:
            self._listener(event)
        except Exception:  # noqa: BLE001 – listener bugs must not stop polling
            logger.exception("Poll listener failed for survey %s", self.survey_id)
