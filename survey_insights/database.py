"""
Database configuration.

The analytics engine only reads from the response store. Each query (and
each time-series strategy) opens its own short-lived session.
"""

import logging
import time

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from survey_insights import config

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    conn.info["query_start_time"] = time.monotonic()


def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    start = conn.info.get("query_start_time")
    if start is None:
        return
    duration_ms = (time.monotonic() - start) * 1000
    if duration_ms >= config.SLOW_QUERY_THRESHOLD_MS:
        truncated = statement[:200] + ("..." if len(statement) > 200 else "")
        logger.warning("Slow query (%.0fms): %s", duration_ms, truncated)


def create_db_engine(url: str = config.DATABASE_URL, **kwargs) -> Engine:
    """Create an engine with slow-query logging attached."""
    engine = create_engine(url, future=True, pool_pre_ping=True, **kwargs)
    event.listen(engine, "before_cursor_execute", _before_cursor_execute)
    event.listen(engine, "after_cursor_execute", _after_cursor_execute)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(engine, expire_on_commit=False)
