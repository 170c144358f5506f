"""
Demo flights for trying the app without calendar access.
"""
import logging
from datetime import datetime, time, timedelta
from typing import List, Optional

from leavetime.exceptions import AirportNotFoundException
from leavetime.schemas.flight import DetectionSource, Flight, ensure_utc, utc_now
from leavetime.services.reference.airport_directory import AirportDirectory

logger = logging.getLogger(__name__)

DEMO_DEPARTURE_LOCAL_TIME = time(17, 30)


def generate_mock_flight(directory: AirportDirectory, now: Optional[datetime] = None) -> Flight:
    """
    AA123 from Don Mueang, departing tomorrow at 17:30 airport local time.
    """
    now = ensure_utc(now) if now else utc_now()
    airport = directory.get("DMK")

    local_tomorrow = (now.astimezone(airport.zoneinfo()) + timedelta(days=1)).date()
    departure = datetime.combine(local_tomorrow, DEMO_DEPARTURE_LOCAL_TIME, tzinfo=airport.zoneinfo())

    return Flight(
        flight_number="AA123",
        airline="American Airlines",
        departure_airport=airport,
        departure_time=departure,
        detection_source=DetectionSource.MANUAL_ENTRY,
        detected_at=now,
        terminal="Terminal 1",
        gate="Gate A12"
    )


def generate_custom(
    directory: AirportDirectory,
    flight_number: str = "SQ456",
    airport_code: str = "SIN",
    hours_from_now: float = 24,
    now: Optional[datetime] = None
) -> Optional[Flight]:
    """Manual-entry flight departing ``hours_from_now`` from now; None for unknown airports"""
    now = ensure_utc(now) if now else utc_now()
    try:
        airport = directory.get(airport_code)
    except AirportNotFoundException:
        logger.warning(f"Demo airport {airport_code} not found")
        return None

    return Flight(
        flight_number=flight_number,
        departure_airport=airport,
        departure_time=now + timedelta(hours=hours_from_now),
        detection_source=DetectionSource.MANUAL_ENTRY,
        detected_at=now
    )


def sample_flights(directory: AirportDirectory, now: Optional[datetime] = None) -> List[Flight]:
    """A handful of demo flights at different distances in time"""
    now = ensure_utc(now) if now else utc_now()
    candidates = [
        generate_mock_flight(directory, now),
        generate_custom(directory, "SQ321", "SIN", 48, now),
        generate_custom(directory, "BA028", "LHR", 12, now),
        generate_custom(directory, "JL005", "NRT", 6, now),
    ]
    return [flight for flight in candidates if flight is not None]
