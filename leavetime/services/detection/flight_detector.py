"""
Flight detection over calendar events.

Each event is tried against three tiers in decreasing confidence; the first
tier that produces a flight claims the event:

1. structuredEvent: flight keyword + airport code in title/notes, or in the
   location when a flight number is also present
2. keywordMatch: flight keyword + airport code in the location field
3. flightNumberRegex: flight number + airport code anywhere
"""
import logging
from collections import Counter
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Set

from leavetime.core.metrics import events_scanned_total, flights_detected_total
from leavetime.exceptions import (
    CalendarAccessDeniedException,
    CalendarAccessRestrictedException,
    NoEventsFoundException,
)
from leavetime.schemas.airport import Airport
from leavetime.schemas.calendar import AuthorizationStatus, CalendarEvent
from leavetime.schemas.detection import NO_FLIGHTS_HINT, DetectionResult
from leavetime.schemas.flight import DetectionSource, Flight, deduplicate_flights, utc_now
from leavetime.services.detection import text_parser
from leavetime.services.reference.airport_directory import AirportDirectory

logger = logging.getLogger(__name__)


class FlightDetector:
    """
    Turns raw calendar events into deduplicated flights.
    Stateless between calls; safe to share.
    """

    def __init__(
        self,
        directory: AirportDirectory,
        clock: Callable[[], datetime] = utc_now
    ):
        self.directory = directory
        self.clock = clock

    def detect_flights(
        self,
        events: Iterable[CalendarEvent],
        authorization: AuthorizationStatus = AuthorizationStatus.AUTHORIZED
    ) -> List[Flight]:
        """
        Detect flights in a batch of events.

        Args:
            events: Calendar events for the scan window
            authorization: Read-access state of the event source

        Returns:
            Deduplicated flights sorted by departure time (may be empty)

        Raises:
            CalendarAccessDeniedException: Access denied or never granted
            CalendarAccessRestrictedException: Access restricted on this device
            NoEventsFoundException: The event collection is empty
        """
        self._check_access(authorization)

        events = list(events)
        if not events:
            raise NoEventsFoundException()

        candidates: List[Flight] = []
        claimed: Set[str] = set()

        for event in events:
            if event.id in claimed:
                continue
            flight = self._detect_event(event)
            if flight is None:
                continue
            claimed.add(event.id)
            candidates.append(flight)
            logger.debug(
                f"Detected flight in event {event.id}",
                extra={
                    "event_id": event.id,
                    "flight_number": flight.flight_number,
                    "airport": flight.departure_airport.code,
                    "source": flight.detection_source.value
                }
            )

        flights = sorted(deduplicate_flights(candidates), key=lambda f: f.departure_time)

        events_scanned_total.inc(len(events))
        for flight in flights:
            flights_detected_total.labels(detection_source=flight.detection_source.value).inc()

        logger.info(
            f"Scanned {len(events)} events, detected {len(flights)} flights",
            extra={"events": len(events), "candidates": len(candidates), "flights": len(flights)}
        )
        return flights

    def scan(
        self,
        events: Iterable[CalendarEvent],
        authorization: AuthorizationStatus = AuthorizationStatus.AUTHORIZED
    ) -> DetectionResult:
        """detect_flights() plus a per-source breakdown and an empty-state hint"""
        events = list(events)
        flights = self.detect_flights(events, authorization)
        by_source = Counter(f.detection_source.value for f in flights)
        return DetectionResult(
            flights=flights,
            events_scanned=len(events),
            by_source=dict(by_source),
            hint=None if flights else NO_FLIGHTS_HINT,
            scanned_at=self.clock()
        )

    @staticmethod
    def _check_access(authorization: AuthorizationStatus) -> None:
        if authorization == AuthorizationStatus.AUTHORIZED:
            return
        if authorization == AuthorizationStatus.RESTRICTED:
            raise CalendarAccessRestrictedException()
        raise CalendarAccessDeniedException()

    def _detect_event(self, event: CalendarEvent) -> Optional[Flight]:
        try:
            return (
                self._detect_structured(event)
                or self._detect_keyword(event)
                or self._detect_flight_number(event)
            )
        except ValueError as e:
            # Includes pydantic ValidationError; one bad event never fails the batch
            logger.warning(f"Skipping event {event.id}: {str(e)}")
            return None

    def _detect_structured(self, event: CalendarEvent) -> Optional[Flight]:
        text = event.searchable_text
        if not text_parser.contains_flight_keyword(text):
            return None

        code = text_parser.extract_iata_code(event.title_and_notes, self.directory)
        # A code in the location names where the user actually departs from
        location_code = text_parser.extract_iata_code(event.location, self.directory)
        if code is None:
            # Location-only codes are keywordMatch unless a flight number backs them up
            if location_code is None or text_parser.extract_flight_number(text) is None:
                return None

        airport = self.directory.find(location_code or code)

        return self._build_flight(event, airport, DetectionSource.STRUCTURED_EVENT)

    def _detect_keyword(self, event: CalendarEvent) -> Optional[Flight]:
        if not text_parser.contains_flight_keyword(event.searchable_text):
            return None

        # Location field only, no inference from title/notes at this tier
        code = text_parser.extract_iata_code(event.location, self.directory)
        if code is None:
            return None

        return self._build_flight(event, self.directory.find(code), DetectionSource.KEYWORD_MATCH)

    def _detect_flight_number(self, event: CalendarEvent) -> Optional[Flight]:
        text = event.searchable_text
        if text_parser.extract_flight_number(text) is None:
            return None

        code = text_parser.extract_iata_code(text, self.directory)
        if code is None:
            return None

        return self._build_flight(event, self.directory.find(code), DetectionSource.FLIGHT_NUMBER_REGEX)

    def _build_flight(
        self,
        event: CalendarEvent,
        airport: Optional[Airport],
        source: DetectionSource
    ) -> Optional[Flight]:
        if airport is None:
            return None

        text = event.searchable_text
        flight_number = text_parser.extract_flight_number(text)

        return Flight(
            flight_number=flight_number,
            airline=text_parser.extract_airline(flight_number),
            departure_airport=airport,
            departure_time=event.start,
            arrival_time=event.end,
            detection_source=source,
            detected_at=self.clock(),
            terminal=text_parser.extract_terminal(text),
            gate=text_parser.extract_gate(text)
        )
