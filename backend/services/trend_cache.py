"""Once-per-day cache for trend series.

The trend needs dozens of paginated Jira queries, and only has to reflect
"as of today", so an entry stays valid until the calendar date changes.
There is no TTL and no background refresh.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Optional

from services.errors import FetchResult

logger = logging.getLogger(__name__)


@dataclass
class TrendCacheEntry:
    series: Any
    cached_on: date


class TrendCache:
    """Trend series keyed by tenant; each tenant only touches its own slot."""

    def __init__(self):
        self._entries = {}

    def get(self, tenant_key: str) -> Optional[TrendCacheEntry]:
        return self._entries.get(tenant_key)

    def get_or_refresh(self, tenant_key: str, refresh: Callable[[], FetchResult],
                       today: date, fallback: Callable[[], Any]) -> Any:
        """Return today's series for a tenant, fetching it at most once per day.

        Args:
            tenant_key: Cache slot
            refresh: Builds a fresh series, returning a FetchResult
            today: Current tenant-local calendar date
            fallback: Produces a synthetic series when nothing usable is cached

        A failed refresh leaves the entry untouched and serves the last good
        series (or the fallback, which is not stored).
        """
        entry = self.get(tenant_key)
        if entry is not None and entry.cached_on == today:
            logger.debug(f"Trend cache hit for {tenant_key} ({today})")
            return entry.series

        if entry is None:
            logger.info(f"Trend cache empty for {tenant_key}, fetching")
        else:
            logger.info(f"Trend cache for {tenant_key} is from {entry.cached_on}, refreshing")

        result = refresh()
        if result.ok:
            self._entries[tenant_key] = TrendCacheEntry(series=result.value, cached_on=today)
            return result.value

        if entry is not None:
            logger.warning(f"Trend refresh failed for {tenant_key}, serving series from {entry.cached_on}")
            return entry.series

        logger.warning(f"Trend refresh failed for {tenant_key}, serving mock series")
        return fallback()
