"""
Display-state schemas: flight stage, urgency and timeline entries.
"""
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_serializer

from leavetime.schemas.flight import Flight


class FlightState(str, Enum):
    UPCOMING = "upcoming"
    PREPARE = "prepare"
    GO_MODE = "goMode"


class UrgencyLevel(str, Enum):
    RELAXED = "relaxed"
    SOON = "soon"
    URGENT = "urgent"


class TimelineEntry(BaseModel):
    """Snapshot of what the display shows at ``date``"""
    date: datetime
    flight: Optional[Flight] = None
    leave_time: Optional[datetime] = None
    time_until_leave: Optional[timedelta] = None
    state: Optional[FlightState] = None
    urgency: UrgencyLevel = UrgencyLevel.RELAXED
    is_overdue: bool = False
    countdown: Optional[str] = None
    is_mock_data: bool = False

    @field_serializer('time_until_leave')
    def serialize_duration(self, v: Optional[timedelta]) -> Optional[float]:
        return v.total_seconds() if v is not None else None


class Timeline(BaseModel):
    """Precomputed entries plus the moment the display should ask again"""
    entries: List[TimelineEntry] = Field(default_factory=list)
    refresh_interval: timedelta
    refresh_at: datetime

    @field_serializer('refresh_interval')
    def serialize_interval(self, v: timedelta) -> float:
        return v.total_seconds()
