from datetime import date
from typing import Optional


class WikiTrendsError(Exception):
    """Base class for errors raised by the featured articles pipeline."""


class NoDataForDate(WikiTrendsError):
    """The pageviews aggregation had nothing for any date in the retry window."""

    def __init__(self, requested: date, attempts: int):
        self.requested = requested
        self.attempts = attempts
        super().__init__(
            f"No pageviews data for {requested.isoformat()} or the {attempts} days before it"
        )


class TransportError(WikiTrendsError):
    """A Wikimedia endpoint failed outside the expected 'not published yet' pattern."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class CacheUnavailable(WikiTrendsError):
    """The local cache store could not be read or written (access or quota)."""
