"""Configuration constants for the analytics engine and live-update client."""
from __future__ import annotations

import os

from dotenv import load_dotenv

# Load environment variables from .env before any constant is read
load_dotenv()

# Database holding Response/Answer records (read-only from this service)
DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./survey_insights.db")

# Default number of keywords returned by an analysis run
DEFAULT_TOP_N: int = int(os.getenv("ANALYTICS_TOP_N", "20"))

# Default summary template ("report" or "narrative")
DEFAULT_SUMMARY_STYLE: str = os.getenv("ANALYTICS_SUMMARY_STYLE", "report")

# Poll controller cadence, in seconds
POLL_BASE_INTERVAL: float = float(os.getenv("POLL_BASE_INTERVAL_SECONDS", "15"))
POLL_MAX_INTERVAL: float = float(os.getenv("POLL_MAX_INTERVAL_SECONDS", "120"))

# Per-request timeout used by the HTTP client
HTTP_TIMEOUT: float = float(os.getenv("ANALYTICS_HTTP_TIMEOUT_SECONDS", "10"))

# Worker threads backing the shared scheduler
SCHEDULER_MAX_WORKERS: int = int(os.getenv("SCHEDULER_MAX_WORKERS", "4"))

# Queries slower than this are logged at WARNING
SLOW_QUERY_THRESHOLD_MS: int = int(os.getenv("SLOW_QUERY_THRESHOLD_MS", "500"))

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

HOST: str = os.getenv("HOST", "0.0.0.0")
PORT: int = int(os.getenv("PORT", "8000"))
