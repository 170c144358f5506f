"""
Shared fixtures: a fixed clock, the airport directory, a fake ETA provider
and a stub flight source.
"""
import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Set

import pytest

from leavetime.core.config import Settings
from leavetime.exceptions import TransportCalculationException
from leavetime.schemas.airport import Airport
from leavetime.schemas.calendar import CalendarEvent
from leavetime.schemas.flight import DetectionSource, Flight
from leavetime.schemas.leave_time import Coordinate, TransportEstimate, TransportMode
from leavetime.services.detection.flight_detector import FlightDetector
from leavetime.services.leave_time.calculator import LeaveTimeCalculator
from leavetime.services.reference.airport_directory import get_airport_directory
from leavetime.services.sources.base import FlightSource
from leavetime.services.transport.eta_provider import EtaProvider, TransportService

NOW = datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)
TOMORROW_1730 = datetime(2025, 3, 2, 17, 30, tzinfo=timezone.utc)

# Central Bangkok
BANGKOK_ORIGIN = Coordinate(latitude=13.7563, longitude=100.5018)


def fixed_clock() -> datetime:
    return NOW


class FakeEtaProvider(EtaProvider):
    """Fixed duration per mode; listed modes raise instead"""

    def __init__(
        self,
        minutes: float = 45,
        per_mode: Optional[Dict[TransportMode, float]] = None,
        failing_modes: Optional[Set[TransportMode]] = None
    ):
        self.minutes = minutes
        self.per_mode = per_mode or {}
        self.failing_modes = failing_modes or set()
        self.calls = []

    async def eta(self, origin, destination, mode):
        self.calls.append((destination.code, mode))
        if mode in self.failing_modes:
            raise TransportCalculationException(f"no route for {mode.value}")
        minutes = self.per_mode.get(mode, self.minutes)
        return TransportEstimate(duration=timedelta(minutes=minutes), mode=mode, is_estimated=False)


class StubSource(FlightSource):
    """Flight source returning canned flights or raising a canned error"""

    def __init__(
        self,
        name: str,
        flights: Optional[List[Flight]] = None,
        error: Optional[BaseException] = None,
        available: bool = True,
        delay: float = 0
    ):
        self.source_name = name
        self.flights = flights or []
        self.error = error
        self.available = available
        self.delay = delay
        self.calls = 0
        self.synced_at = None

    @property
    def is_available(self) -> bool:
        return self.available

    @property
    def last_sync_time(self):
        return self.synced_at

    async def fetch_flights(self) -> List[Flight]:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.flights

    async def disconnect(self) -> None:
        self.available = False
        self.synced_at = None


def make_event(
    event_id: str = "evt-1",
    title: Optional[str] = None,
    notes: Optional[str] = None,
    location: Optional[str] = None,
    start: datetime = TOMORROW_1730,
    end: Optional[datetime] = None
) -> CalendarEvent:
    return CalendarEvent(id=event_id, title=title, notes=notes, location=location, start=start, end=end)


def make_flight(
    departure: str = "DMK",
    arrival: Optional[str] = None,
    departure_time: datetime = TOMORROW_1730,
    flight_number: Optional[str] = "TG100",
    source: DetectionSource = DetectionSource.STRUCTURED_EVENT
) -> Flight:
    return Flight(
        flight_number=flight_number,
        departure_airport=departure,
        arrival_airport=arrival,
        departure_time=departure_time,
        detection_source=source,
        detected_at=NOW
    )


@pytest.fixture
def settings():
    return Settings(
        ENABLE_SCHEDULER=False,
        ENABLE_REDIS_SNAPSHOT=False,
        ENABLE_METRICS=False,
        LOCAL_CALENDAR_FILE=None,
        GOOGLE_CALENDAR_ACCESS_TOKEN=None
    )


@pytest.fixture
def directory():
    return get_airport_directory()


@pytest.fixture
def dmk(directory) -> Airport:
    return directory.get("DMK")


@pytest.fixture
def detector(directory):
    return FlightDetector(directory, clock=fixed_clock)


@pytest.fixture
def eta_provider():
    return FakeEtaProvider(minutes=45)


@pytest.fixture
def transport_service(eta_provider):
    return TransportService(provider=eta_provider)


@pytest.fixture
def calculator(transport_service, directory, settings):
    return LeaveTimeCalculator(transport_service, directory, settings, clock=fixed_clock)
