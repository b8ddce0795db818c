"""Error types and fetch results for the Jira analytics services."""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class DashboardError(Exception):
    """Base exception for dashboard data operations."""
    pass


class TransientFetchError(DashboardError):
    """An upstream call failed (timeout, connection error, non-2xx, bad body)."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 response_body: Optional[str] = None):
        """
        Args:
            message: Error message
            status_code: HTTP status code if available
            response_body: Response body excerpt if available
        """
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class PartialDataError(DashboardError):
    """A single issue is missing a field needed by a calculation."""
    pass


class ConfigurationMissing(DashboardError):
    """Credentials or a required field mapping are not configured for a tenant."""
    pass


@dataclass
class FetchResult:
    """Outcome of a network-touching step: either a value or an error."""

    value: Any = None
    error: Optional[DashboardError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def value_or(self, default):
        """Return the value, or the fallback when the step failed."""
        return self.value if self.ok else default


def capture(func: Callable, *args, **kwargs) -> FetchResult:
    """Run func and wrap its return value (or fetch failure) in a FetchResult."""
    try:
        return FetchResult(value=func(*args, **kwargs))
    except TransientFetchError as e:
        logger.warning(f"{getattr(func, '__name__', 'fetch')} failed: {e}")
        return FetchResult(error=e)
