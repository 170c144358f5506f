"""
Flight schemas and collection helpers.
"""
import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, Iterable, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from leavetime.schemas.airport import Airport

logger = logging.getLogger(__name__)

# A flight stays "departed" (rather than "unknown") for this long after departure
DEPARTED_GRACE_PERIOD = timedelta(hours=2)
IMMINENT_WINDOW = timedelta(hours=24)


class DetectionSource(str, Enum):
    """How a flight was detected; each source carries a fixed confidence"""
    STRUCTURED_EVENT = "structuredEvent"
    KEYWORD_MATCH = "keywordMatch"
    FLIGHT_NUMBER_REGEX = "flightNumberRegex"
    MANUAL_ENTRY = "manualEntry"
    GOOGLE_CALENDAR = "googleCalendar"
    LOCAL_CALENDAR = "localCalendar"

    @property
    def confidence(self) -> float:
        return DETECTION_CONFIDENCE[self]

    @property
    def display_name(self) -> str:
        return DETECTION_DISPLAY_NAMES[self]


DETECTION_CONFIDENCE: Dict[DetectionSource, float] = {
    DetectionSource.STRUCTURED_EVENT: 0.95,
    DetectionSource.KEYWORD_MATCH: 0.60,
    DetectionSource.FLIGHT_NUMBER_REGEX: 0.40,
    DetectionSource.MANUAL_ENTRY: 1.0,
    DetectionSource.GOOGLE_CALENDAR: 0.90,
    DetectionSource.LOCAL_CALENDAR: 0.70,
}

DETECTION_DISPLAY_NAMES: Dict[DetectionSource, str] = {
    DetectionSource.STRUCTURED_EVENT: "Structured Event",
    DetectionSource.KEYWORD_MATCH: "Keyword Match",
    DetectionSource.FLIGHT_NUMBER_REGEX: "Flight Number Pattern",
    DetectionSource.MANUAL_ENTRY: "Manual Entry",
    DetectionSource.GOOGLE_CALENDAR: "Google Calendar",
    DetectionSource.LOCAL_CALENDAR: "Local Calendar",
}


class FlightStatus(str, Enum):
    UPCOMING = "upcoming"
    DEPARTED = "departed"
    UNKNOWN = "unknown"


def ensure_utc(value: datetime) -> datetime:
    """Normalise a timestamp to aware UTC (naive values are taken as UTC)"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_iso_utc(value: datetime) -> str:
    """ISO-8601 UTC with second precision, e.g. 2025-03-01T10:30:00Z"""
    return ensure_utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")


class Flight(BaseModel):
    """
    A detected flight. Immutable once created; replaced rather than updated.

    The departure airport may be passed as an ``Airport`` or as an IATA code,
    in which case it must resolve in the airport directory.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    flight_number: Optional[str] = None
    airline: Optional[str] = None
    departure_airport: Airport
    arrival_airport: Optional[Airport] = None
    departure_time: datetime
    arrival_time: Optional[datetime] = None
    detection_source: DetectionSource
    detected_at: datetime = Field(default_factory=utc_now)
    terminal: Optional[str] = None
    gate: Optional[str] = None
    seat: Optional[str] = None

    @field_validator('flight_number')
    @classmethod
    def canonicalize_flight_number(cls, v):
        if v is None:
            return None
        v = v.strip().upper()
        return v or None

    @field_validator('departure_airport', 'arrival_airport', mode='before')
    @classmethod
    def resolve_airport(cls, v):
        if isinstance(v, str):
            # Imported here: the directory module depends on the airport schema
            from leavetime.services.reference.airport_directory import get_airport_directory

            airport = get_airport_directory().find(v)
            if airport is None:
                raise ValueError(f"Unknown airport code: {v!r}")
            return airport
        return v

    @field_validator('departure_time', 'arrival_time', 'detected_at')
    @classmethod
    def normalize_timestamp(cls, v):
        if v is None:
            return None
        return ensure_utc(v)

    @field_serializer('departure_time', 'arrival_time', 'detected_at')
    def serialize_timestamp(self, v: Optional[datetime]) -> Optional[str]:
        if v is None:
            return None
        return v.isoformat().replace("+00:00", "Z")

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def confidence(self) -> float:
        return self.detection_source.confidence

    @property
    def is_international(self) -> bool:
        return self.departure_airport.is_likely_international(self.arrival_airport)

    @property
    def deduplication_key(self) -> str:
        return f"{self.flight_number or 'unknown'}_{format_iso_utc(self.departure_time)}"

    @property
    def display_title(self) -> str:
        if self.flight_number:
            return self.flight_number
        if self.arrival_airport is not None:
            return f"{self.departure_airport.code} → {self.arrival_airport.code}"
        return f"Flight from {self.departure_airport.city}"

    def local_departure_time(self) -> datetime:
        """Departure time in the departure airport's timezone"""
        return self.departure_time.astimezone(self.departure_airport.zoneinfo())

    def status_at(self, now: Optional[datetime] = None) -> FlightStatus:
        now = ensure_utc(now) if now else utc_now()
        if self.departure_time > now:
            return FlightStatus.UPCOMING
        if now - self.departure_time <= DEPARTED_GRACE_PERIOD:
            return FlightStatus.DEPARTED
        return FlightStatus.UNKNOWN

    def time_until_departure(self, now: Optional[datetime] = None) -> timedelta:
        now = ensure_utc(now) if now else utc_now()
        return self.departure_time - now

    def is_imminent(self, now: Optional[datetime] = None) -> bool:
        """Departure within the next 24 hours"""
        remaining = self.time_until_departure(now)
        return timedelta(0) < remaining <= IMMINENT_WINDOW

    def recommended_airport_arrival_time(
        self,
        domestic_minutes: int = 90,
        international_minutes: int = 180
    ) -> datetime:
        minutes = international_minutes if self.is_international else domestic_minutes
        return self.departure_time - timedelta(minutes=minutes)

    def is_more_urgent_than(self, other: "Flight") -> bool:
        return self.departure_time < other.departure_time

    def with_source(self, source: DetectionSource) -> "Flight":
        """Copy of this flight re-tagged with another detection source"""
        return self.model_copy(update={"detection_source": source})


def upcoming_flights(flights: Iterable[Flight], now: Optional[datetime] = None) -> List[Flight]:
    """Flights still in the future, soonest first"""
    return sorted(
        (f for f in flights if f.status_at(now) == FlightStatus.UPCOMING),
        key=lambda f: f.departure_time
    )


def most_imminent(flights: Iterable[Flight], now: Optional[datetime] = None) -> Optional[Flight]:
    upcoming = upcoming_flights(flights, now)
    return upcoming[0] if upcoming else None


def departing_within(
    flights: Iterable[Flight],
    window: timedelta,
    now: Optional[datetime] = None
) -> List[Flight]:
    return [f for f in upcoming_flights(flights, now) if f.time_until_departure(now) <= window]


def deduplicate_flights(flights: Iterable[Flight]) -> List[Flight]:
    """
    Keep one flight per deduplication key.

    The survivor is the candidate with the highest detection confidence; on
    equal confidence the first one encountered wins. Output keeps the order in
    which keys were first seen, so running this twice changes nothing.
    """
    best: Dict[str, Flight] = {}
    for flight in flights:
        key = flight.deduplication_key
        current = best.get(key)
        if current is None or flight.confidence > current.confidence:
            best[key] = flight
    return list(best.values())
