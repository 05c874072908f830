"""Command-line entry point for Survey Insights.

``serve`` runs the analytics HTTP API; ``watch`` follows one survey through
the poll-based live-update protocol and logs every refresh. Keeping the
runtime bootstrap here (instead of in ``survey_insights.app``) ensures the
app module can be safely imported by unit tests and tooling without
side-effects.
"""
from __future__ import annotations

import argparse
import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import suppress
from typing import List, Optional

import uvicorn

from survey_insights import config
from survey_insights.app import create_app, logger
from survey_insights.realtime.dashboard import DashboardSnapshot, LiveDashboard
from survey_insights.realtime.events import StatusChanged
from survey_insights.realtime.http_client import AnalyticsClient
from survey_insights.scheduler import Scheduler


def _log_snapshot(snapshot: DashboardSnapshot) -> None:
    analysis = snapshot.analysis
    logger.info("Summary: %s", analysis.summary)
    keywords = ", ".join(f"{k.term}({k.count})" for k in analysis.top_keywords[:10])
    logger.info("Top keywords: %s", keywords or "-")
    for bucket in snapshot.series:
        logger.info(
            "  %s  responses=%d  avg_completion=%.1fs",
            bucket.period_start.isoformat(),
            bucket.response_count,
            bucket.avg_completion_time,
        )


def _log_status(event: StatusChanged) -> None:
    logger.info("Live status: %s%s", event.status.value, f" ({event.message})" if event.message else "")


def serve(args: argparse.Namespace) -> int:
    uvicorn.run(create_app(), host=args.host, port=args.port, log_level=config.LOG_LEVEL.lower())
    return 0


def watch(args: argparse.Namespace) -> int:  # pragma: no cover
    executor = ThreadPoolExecutor(max_workers=config.SCHEDULER_MAX_WORKERS)
    scheduler = Scheduler(executor)
    dashboard = LiveDashboard(
        AnalyticsClient(args.url),
        args.survey_id,
        scheduler,
        on_refresh=_log_snapshot,
        on_status=_log_status,
        interval=args.interval,
        timezone=args.tz,
        summary_style=args.style,
    )

    logger.info("Watching survey %s at %s (Ctrl-C to stop)", args.survey_id, args.url)
    dashboard.start()
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        logger.info("Shutdown requested (KeyboardInterrupt). Exiting…")
    finally:
        dashboard.stop()
        # Ensure thread pool and scheduler shut down gracefully
        with suppress(Exception):
            scheduler.shutdown()
        executor.shutdown(wait=True)
        logger.info("Goodbye.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="survey-insights", description=__doc__.splitlines()[0])
    sub = parser.add_subparsers(dest="command", required=True)

    serve_p = sub.add_parser("serve", help="run the analytics HTTP API")
    serve_p.add_argument("--host", default=config.HOST)
    serve_p.add_argument("--port", type=int, default=config.PORT)
    serve_p.set_defaults(func=serve)

    watch_p = sub.add_parser("watch", help="follow live updates for one survey")
    watch_p.add_argument("survey_id")
    watch_p.add_argument("--url", default=f"http://localhost:{config.PORT}")
    watch_p.add_argument("--interval", default="day", choices=["hour", "day", "week", "month"])
    watch_p.add_argument("--tz", default="UTC")
    watch_p.add_argument("--style", default=config.DEFAULT_SUMMARY_STYLE, choices=["report", "narrative"])
    watch_p.set_defaults(func=watch)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
