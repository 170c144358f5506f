"""
Flight source backed by an event source and the flight detector.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from leavetime.exceptions import NoEventsFoundException
from leavetime.schemas.flight import DetectionSource, Flight, utc_now
from leavetime.services.detection.event_source import EventSource
from leavetime.services.detection.flight_detector import FlightDetector
from leavetime.services.sources.base import FlightSource

logger = logging.getLogger(__name__)


class CalendarFlightSource(FlightSource):
    """
    Scans a calendar for flights over the next ``scan_days_ahead`` days.

    Detected flights are re-tagged with this provider's detection source so
    callers can tell which calendar a flight came from.
    """

    def __init__(
        self,
        event_source: EventSource,
        detector: FlightDetector,
        source_name: str = "Local Calendar",
        source_tag: DetectionSource = DetectionSource.LOCAL_CALENDAR,
        scan_days_ahead: int = 90,
        requires_auth: bool = False,
        clock: Callable[[], datetime] = utc_now
    ):
        self.event_source = event_source
        self.detector = detector
        self.source_name = source_name
        self.source_tag = source_tag
        self.scan_days_ahead = scan_days_ahead
        self.requires_auth = requires_auth
        self.clock = clock
        self._connected = True
        self._last_sync_time: Optional[datetime] = None

    @property
    def is_available(self) -> bool:
        return self._connected and self.event_source.is_authorized()

    @property
    def last_sync_time(self) -> Optional[datetime]:
        return self._last_sync_time

    async def fetch_flights(self) -> List[Flight]:
        now = self.clock()
        end = now + timedelta(days=self.scan_days_ahead)

        events = await self.event_source.list_events(now, end)
        try:
            flights = self.detector.detect_flights(events, self.event_source.authorization_status())
        except NoEventsFoundException:
            # An empty calendar is a successful sync with nothing in it
            logger.info(f"{self.source_name}: no events in the next {self.scan_days_ahead} days")
            flights = []

        self._last_sync_time = self.clock()
        logger.info(f"{self.source_name}: {len(flights)} flights found")
        return [flight.with_source(self.source_tag) for flight in flights]

    async def connect(self) -> bool:
        """Re-request calendar access after a disconnect"""
        self._connected = await self.event_source.request_authorization()
        return self._connected

    async def disconnect(self) -> None:
        self._connected = False
        self._last_sync_time = None
        logger.info(f"{self.source_name} disconnected")
