"""
Calendar event sources.

An event source is the narrow boundary between flight detection and wherever
events actually live (a device calendar export, a test fixture, ...).
"""
import asyncio
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Union

from dateutil import parser as date_parser

from leavetime.exceptions import FlightSourceException
from leavetime.schemas.calendar import AuthorizationStatus, CalendarEvent
from leavetime.schemas.flight import ensure_utc

logger = logging.getLogger(__name__)


class EventSource(ABC):
    """Read access to calendar-like events"""

    @abstractmethod
    def authorization_status(self) -> AuthorizationStatus:
        pass

    def is_authorized(self) -> bool:
        return self.authorization_status() == AuthorizationStatus.AUTHORIZED

    @abstractmethod
    async def request_authorization(self) -> bool:
        """Ask for read access; may wait on the user. Returns whether access is granted."""
        pass

    @abstractmethod
    async def list_events(self, start: datetime, end: datetime) -> List[CalendarEvent]:
        """Events starting within [start, end)"""
        pass


def _in_window(event: CalendarEvent, start: datetime, end: datetime) -> bool:
    return ensure_utc(start) <= event.start < ensure_utc(end)


class InMemoryEventSource(EventSource):
    """Events held in memory; used by tests and the demo endpoints"""

    def __init__(
        self,
        events: Optional[Iterable[CalendarEvent]] = None,
        status: AuthorizationStatus = AuthorizationStatus.AUTHORIZED,
        grant_on_request: bool = True
    ):
        self._events = list(events or [])
        self._status = status
        self._grant_on_request = grant_on_request

    def authorization_status(self) -> AuthorizationStatus:
        return self._status

    async def request_authorization(self) -> bool:
        if self._status == AuthorizationStatus.NOT_DETERMINED:
            self._status = (
                AuthorizationStatus.AUTHORIZED if self._grant_on_request else AuthorizationStatus.DENIED
            )
        return self.is_authorized()

    async def list_events(self, start: datetime, end: datetime) -> List[CalendarEvent]:
        return [e for e in self._events if _in_window(e, start, end)]


class JsonFileEventSource(EventSource):
    """
    Local calendar export stored as JSON.

    The file holds either a list of events or ``{"events": [...]}``; each event
    has ``id``, ``start`` and optionally ``title``, ``notes``, ``location``,
    ``end``. Timestamps are parsed leniently; values without an offset are
    taken as UTC.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def authorization_status(self) -> AuthorizationStatus:
        if self.path.is_file():
            return AuthorizationStatus.AUTHORIZED
        return AuthorizationStatus.NOT_DETERMINED

    async def request_authorization(self) -> bool:
        return self.is_authorized()

    async def list_events(self, start: datetime, end: datetime) -> List[CalendarEvent]:
        events = await asyncio.to_thread(self._read_events)
        return [e for e in events if _in_window(e, start, end)]

    def _read_events(self) -> List[CalendarEvent]:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise FlightSourceException(f"Could not read calendar file {self.path}: {str(e)}") from e

        records = raw.get("events", []) if isinstance(raw, dict) else raw
        events: List[CalendarEvent] = []
        for record in records:
            event = self._parse_record(record)
            if event is not None:
                events.append(event)

        logger.debug(f"Loaded {len(events)} events from {self.path}")
        return events

    def _parse_record(self, record: dict) -> Optional[CalendarEvent]:
        try:
            start = date_parser.parse(record["start"])
            end = date_parser.parse(record["end"]) if record.get("end") else None
            return CalendarEvent(
                id=str(record["id"]),
                title=record.get("title"),
                notes=record.get("notes"),
                location=record.get("location"),
                start=start,
                end=end
            )
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            logger.warning(f"Skipping malformed calendar record in {self.path}: {str(e)}")
            return None
