"""Events emitted by the poll controller.

A controller delivers every event to a single listener; consumers dispatch
on the event type::

    def on_event(event: PollEvent) -> None:
        if isinstance(event, UpdateDetected):
            refresh(event.update.new_count)
        elif isinstance(event, StatusChanged) and event.status is PollStatus.ERROR:
            show_banner(event.message)
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

from survey_insights.reporting.models import PollUpdate


class PollStatus(str, Enum):
    """Status signal exposed to the owner of a controller."""

    ACTIVE = "active"
    PAUSED = "paused"
    ERROR = "error"
    STOPPED = "stopped"


@dataclass(frozen=True)
class PollSnapshot:
    """Point-in-time copy of a controller's state."""

    is_running: bool
    is_paused: bool
    current_interval: float
    consecutive_failures: int
    last_poll_at: Optional[datetime.datetime]
    last_success_at: Optional[datetime.datetime]
    last_response_at: Optional[datetime.datetime]


@dataclass(frozen=True)
class UpdateDetected:
    """The server reported responses newer than the last known one."""

    update: PollUpdate
    reason: Optional[str]
    triggered_at: datetime.datetime


@dataclass(frozen=True)
class StatusChanged:
    status: PollStatus
    message: Optional[str]
    snapshot: PollSnapshot


PollEvent = Union[UpdateDetected, StatusChanged]

PollListener = Callable[[PollEvent], None]
