"""Keep a survey's analytics fresh using a poll controller.

:class:`LiveDashboard` is the owner side of the live-update protocol: the
controller only detects change, the dashboard re-fetches the analysis and
the (gap-filled) trend series and hands them to ``on_refresh``.
"""
from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from survey_insights import config
from survey_insights.realtime.events import PollEvent, StatusChanged, UpdateDetected
from survey_insights.realtime.http_client import AnalyticsClient
from survey_insights.realtime.poll_controller import PollController, TimerBackend
from survey_insights.realtime.series import fill_gaps
from survey_insights.realtime.visibility import VisibilitySource
from survey_insights.reporting.models import AnalysisResult, TimePeriodBucket
from survey_insights.timeutils import utcnow

logger = logging.getLogger(__name__)


@dataclass
class DashboardSnapshot:
    analysis: AnalysisResult
    series: List[TimePeriodBucket] = field(default_factory=list)
    new_count: Optional[int] = None
    refreshed_at: datetime.datetime = field(default_factory=utcnow)


class LiveDashboard:
    def __init__(
        self,
        client: AnalyticsClient,
        survey_id: Any,
        scheduler: TimerBackend,
        *,
        on_refresh: Callable[[DashboardSnapshot], None],
        on_status: Optional[Callable[[StatusChanged], None]] = None,
        interval: str = "day",
        timezone: str = "UTC",
        top_n: int = config.DEFAULT_TOP_N,
        summary_style: str = config.DEFAULT_SUMMARY_STYLE,
        visibility: Optional[VisibilitySource] = None,
        base_interval: float = config.POLL_BASE_INTERVAL,
        max_interval: float = config.POLL_MAX_INTERVAL,
    ) -> None:
        self.client = client
        self.survey_id = survey_id
        self.interval = interval
        self.timezone = timezone
        self.top_n = top_n
        self.summary_style = summary_style
        self._on_refresh = on_refresh
        self._on_status = on_status
        self.controller = PollController(
            survey_id,
            client.poll_updates,
            scheduler,
            listener=self._on_event,
            visibility=visibility,
            base_interval=base_interval,
            max_interval=max_interval,
        )

    def start(self) -> None:
        self.controller.start()

    def stop(self) -> None:
        self.controller.stop()

    def refresh(self, new_count: Optional[int] = None) -> DashboardSnapshot:
        """Fetch analysis and trend series and publish them via ``on_refresh``."""
        analysis = self.client.analysis(
            self.survey_id, top_n=self.top_n, summary_style=self.summary_style
        )
        series = self.client.time_series(
            self.survey_id, interval=self.interval, timezone=self.timezone
        )
        snapshot = DashboardSnapshot(
            analysis=analysis,
            series=fill_gaps(series, self.interval, self.timezone),
            new_count=new_count,
        )
        self._on_refresh(snapshot)
        return snapshot

    def _on_event(self, event: PollEvent) -> None:
        if isinstance(event, StatusChanged):
            if self._on_status is not None:
                self._on_status(event)
            return
        if isinstance(event, UpdateDetected):
            # A late result may land after stop(); nothing to refresh then.
            if not self.controller.is_running:
                return
            try:
                self.refresh(new_count=event.update.new_count)
            except Exception:  # noqa: BLE001 – next update retries the refresh
                logger.exception("Dashboard refresh failed for survey %s", self.survey_id)
