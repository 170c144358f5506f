"""
Multi-source flight coordinator.

Sources are queried strictly one at a time in priority order; the first
available source that answers without raising wins. Results are never merged
across sources.
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from leavetime.core.metrics import source_fetches_total
from leavetime.exceptions import (
    NoDataSourceAvailableException,
    SourceNotAvailableException,
    UnknownSourceException,
)
from leavetime.schemas.flight import Flight, utc_now
from leavetime.schemas.source import SourceInfo
from leavetime.services.sources.base import FlightSource
from leavetime.utils.single_flight import SingleFlight

logger = logging.getLogger(__name__)


def format_relative_time(moment: datetime, now: datetime) -> str:
    """Short English relative time: "just now", "5 minutes ago", "2 days ago"."""
    seconds = int((now - moment).total_seconds())
    if seconds < 0:
        return "just now"
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size:
            count = seconds // size
            return f"{count} {unit}{'s' if count != 1 else ''} ago"
    return "just now"


class FlightSourceCoordinator:
    """
    Fetches flights from the best available source.

    The first source in ``sources`` is the primary; the rest are fallbacks in
    the order given.
    """

    def __init__(
        self,
        sources: Sequence[FlightSource],
        clock: Callable[[], datetime] = utc_now
    ):
        self.sources: List[FlightSource] = list(sources)
        self.clock = clock
        self._refresh_flight = SingleFlight()
        self.last_result: Optional[List[Flight]] = None
        self.last_source: Optional[str] = None
        self.last_refreshed_at: Optional[datetime] = None

    @property
    def primary_source(self) -> Optional[FlightSource]:
        return self.sources[0] if self.sources else None

    @property
    def has_available_source(self) -> bool:
        return any(source.is_available for source in self.sources)

    @property
    def available_sources(self) -> List[SourceInfo]:
        return [
            SourceInfo(
                name=source.source_name,
                last_sync=source.last_sync_time,
                is_available=source.is_available,
                is_primary=index == 0,
                requires_auth=source.requires_auth
            )
            for index, source in enumerate(self.sources)
        ]

    async def fetch_flights(self) -> List[Flight]:
        """
        Fetch flights from the highest-priority source that succeeds.

        Returns:
            Flights from exactly one source

        Raises:
            NoDataSourceAvailableException: No source was available at all
            Exception: The last source error, when every available source failed
        """
        last_error: Optional[Exception] = None

        for index, source in enumerate(self.sources):
            if not source.is_available:
                logger.debug(f"Skipping unavailable source {source.source_name}")
                continue

            try:
                flights = await source.fetch_flights()
            except Exception as e:
                # CancelledError is not an Exception: cancellation never falls through to the next source
                logger.warning(
                    f"{source.source_name} failed: {str(e)}",
                    extra={"source": source.source_name, "error_type": type(e).__name__}
                )
                source_fetches_total.labels(source=source.source_name, status="error").inc()
                last_error = e
                continue

            source_fetches_total.labels(source=source.source_name, status="success").inc()
            role = "primary" if index == 0 else "fallback"
            logger.info(f"Using {role} source {source.source_name}: {len(flights)} flights")
            self.last_source = source.source_name
            return flights

        if last_error is not None:
            raise last_error
        raise NoDataSourceAvailableException()

    async def fetch_flights_from(self, source_name: str) -> List[Flight]:
        """
        Fetch flights from one named source, without fallback.

        Raises:
            UnknownSourceException: No source has that name
            SourceNotAvailableException: The source exists but is not available
        """
        source = next((s for s in self.sources if s.source_name == source_name), None)
        if source is None:
            raise UnknownSourceException(source_name)
        if not source.is_available:
            raise SourceNotAvailableException(source_name)
        return await source.fetch_flights()

    async def refresh(self) -> List[Flight]:
        """
        fetch_flights() with request coalescing.

        Concurrent callers share one in-flight fetch and all see its outcome.
        A successful result is kept in ``last_result``.
        """
        return await self._refresh_flight.do("refresh", self._refresh)

    async def _refresh(self) -> List[Flight]:
        flights = await self.fetch_flights()
        self.last_result = flights
        self.last_refreshed_at = self.clock()
        return flights

    @property
    def is_refreshing(self) -> bool:
        return self._refresh_flight.is_in_flight("refresh")

    def status_message(self, now: Optional[datetime] = None) -> str:
        now = now or self.clock()
        source = next((s for s in self.sources if s.is_available), None)
        if source is None:
            return "No calendar connected"
        if source.last_sync_time is not None:
            return f"Connected to {source.source_name} (synced {format_relative_time(source.last_sync_time, now)})"
        return f"Connected to {source.source_name}"

    async def disconnect_all(self) -> None:
        """Disconnect every source; reconnecting requires re-authorization"""
        for source in self.sources:
            await source.disconnect()
        self.last_result = None
        self.last_source = None
        self.last_refreshed_at = None
        logger.info("All flight sources disconnected")

