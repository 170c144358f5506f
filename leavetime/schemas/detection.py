"""
Flight detection request/response schemas.
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from leavetime.schemas.calendar import AuthorizationStatus, CalendarEvent
from leavetime.schemas.flight import Flight

NO_FLIGHTS_HINT = "No flights found in your calendar. Try adding a demo flight."


class DetectionRequest(BaseModel):
    """Events to scan plus the caller's read-access state"""
    events: List[CalendarEvent]
    authorization: AuthorizationStatus = AuthorizationStatus.AUTHORIZED


class DetectionResult(BaseModel):
    """Outcome of scanning one batch of events"""
    flights: List[Flight] = Field(default_factory=list)
    events_scanned: int = 0
    by_source: Dict[str, int] = Field(default_factory=dict)
    hint: Optional[str] = None
    scanned_at: datetime

    @property
    def is_empty(self) -> bool:
        return not self.flights
