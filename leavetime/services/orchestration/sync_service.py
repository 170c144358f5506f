"""
Background flight synchronization.

Refreshes flights from the coordinator and writes the most imminent upcoming
flight to the snapshot store for the display to pick up.
"""
import logging
from datetime import datetime
from typing import Callable

from leavetime.core.metrics import track_flight_sync
from leavetime.schemas.flight import most_imminent, utc_now
from leavetime.services.cache.flight_snapshot import FlightSnapshotStore
from leavetime.services.sources.coordinator import FlightSourceCoordinator

logger = logging.getLogger(__name__)


class FlightSyncService:
    """
    One sync pass: coordinator refresh, pick the current flight, store it.
    """

    def __init__(
        self,
        coordinator: FlightSourceCoordinator,
        store: FlightSnapshotStore,
        clock: Callable[[], datetime] = utc_now
    ):
        self.coordinator = coordinator
        self.store = store
        self.clock = clock

    @track_flight_sync()
    async def sync(self) -> dict:
        """
        Run one synchronization.

        Errors are logged and reported in the result rather than raised, so a
        scheduled job survives a failing calendar. A demo (manual) snapshot
        is kept when the calendar has no upcoming flight.

        Returns:
            Summary dictionary with sync statistics
        """
        started_at = self.clock()
        stats = {
            "timestamp": started_at.isoformat(),
            "status": "success",
            "source": None,
            "total_flights": 0,
            "selected_flight_id": None,
            "selected_flight": None,
        }

        try:
            flights = await self.coordinator.refresh()
            stats["source"] = self.coordinator.last_source
            stats["total_flights"] = len(flights)

            current = most_imminent(flights, self.clock())
            if current is not None:
                await self.store.save(current)
                stats["selected_flight_id"] = str(current.id)
                stats["selected_flight"] = current.display_title
            elif not await self.store.is_mock_data():
                await self.store.clear()

        except Exception as e:
            logger.error(f"Flight sync failed: {str(e)}", exc_info=True)
            stats["status"] = "error"
            stats["error"] = str(e)
            stats["error_type"] = type(e).__name__
            return stats

        stats["duration_seconds"] = round((self.clock() - started_at).total_seconds(), 3)
        logger.info("Flight sync completed", extra=stats)
        return stats
