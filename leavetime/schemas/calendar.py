"""
Calendar event schemas.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from leavetime.schemas.flight import ensure_utc


class AuthorizationStatus(str, Enum):
    """Read-access state of an event source"""
    AUTHORIZED = "authorized"
    DENIED = "denied"
    RESTRICTED = "restricted"
    NOT_DETERMINED = "notDetermined"


class CalendarEvent(BaseModel):
    """A raw calendar-like event, before any flight detection"""
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "evt-1",
                "title": "Flight AA123 to BKK",
                "notes": None,
                "location": "DMK Airport",
                "start": "2025-03-02T10:30:00Z",
                "end": "2025-03-02T13:30:00Z"
            }
        }
    )

    id: str = Field(..., min_length=1)
    title: Optional[str] = None
    notes: Optional[str] = None
    location: Optional[str] = None
    start: datetime
    end: Optional[datetime] = None

    @field_validator('start', 'end')
    @classmethod
    def normalize_timestamp(cls, v):
        if v is None:
            return None
        return ensure_utc(v)

    @property
    def title_and_notes(self) -> str:
        return " ".join(part for part in (self.title, self.notes) if part)

    @property
    def searchable_text(self) -> str:
        """Title, notes and location joined by spaces"""
        return " ".join(part for part in (self.title, self.notes, self.location) if part)
