"""Application factory for the analytics HTTP service.

Importing this module configures logging; the FastAPI application itself is
built by :func:`create_app` so tests can pass their own
:class:`AnalyticsService`.
"""
import logging
from typing import Optional

from fastapi import FastAPI

from survey_insights import config
from survey_insights.api import router
from survey_insights.database import create_db_engine
from survey_insights.service import AnalyticsService

# Set up logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=config.LOG_LEVEL,
)
logger = logging.getLogger(__name__)


def create_app(service: Optional[AnalyticsService] = None) -> FastAPI:
    """Build the FastAPI app serving the analytics endpoints."""
    if service is None:
        service = AnalyticsService.from_engine(create_db_engine(config.DATABASE_URL))
        logger.info("Analytics service bound to configured database")

    app = FastAPI(title="Survey Insights", version="0.1.0")
    app.state.service = service
    app.include_router(router, prefix="/api/analytics", tags=["analytics"])
    return app
