"""Project-wide custom exception types."""


class AggregationError(RuntimeError):
    """Raised when every time-series bucketing strategy failed for a survey."""

    def __init__(self, message: str) -> None:  # noqa: D401 – simple constructor
        super().__init__(message)


class AnalyticsClientError(RuntimeError):
    """Raised by the HTTP client when the analytics API answers with an error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
