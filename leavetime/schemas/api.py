"""
HTTP request/response schemas.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from leavetime.schemas.display import FlightState, UrgencyLevel
from leavetime.schemas.flight import Flight
from leavetime.schemas.leave_time import (
    Coordinate,
    LeaveTimeCalculation,
    TierConfig,
    TransportMode,
    TransportOption,
)


class FlightListResponse(BaseModel):
    """Flights from one source"""
    total: int
    flights: List[Flight]
    source: Optional[str] = None


class DemoFlightRequest(BaseModel):
    """Custom demo flight; an empty body gives the standard AA123 demo"""
    flight_number: Optional[str] = None
    airport_code: Optional[str] = None
    hours_from_now: Optional[float] = Field(None, gt=0, le=24 * 90)


class LeaveTimeRequest(BaseModel):
    """Leave-time input; without a flight the current snapshot flight is used"""
    flight: Optional[Flight] = None
    origin: Optional[Coordinate] = None
    mode: TransportMode = TransportMode.CAR
    tier_config: TierConfig = Field(default_factory=TierConfig.free)


class LeaveTimeOptionsRequest(BaseModel):
    flight: Optional[Flight] = None
    origin: Optional[Coordinate] = None
    modes: List[TransportMode] = Field(
        default_factory=lambda: [TransportMode.TAXI, TransportMode.CAR, TransportMode.PUBLIC_TRANSIT]
    )
    tier_config: TierConfig = Field(default_factory=TierConfig.free)


class TransportRequest(BaseModel):
    """Transport options to the departure airport; without modes only the car recommendation"""
    flight: Optional[Flight] = None
    origin: Optional[Coordinate] = None
    modes: Optional[List[TransportMode]] = None


class TransportOptionsResponse(BaseModel):
    recommended: Optional[TransportOption] = None
    options: List[TransportOption]


class DisplayRequest(BaseModel):
    """
    Display input. The flight defaults to the calculation's flight, then to
    the current snapshot.
    """
    flight: Optional[Flight] = None
    calculation: Optional[LeaveTimeCalculation] = None
    now: Optional[datetime] = None


class DisplayStateResponse(BaseModel):
    state: FlightState
    label: str
    urgency: UrgencyLevel
    refresh_interval_seconds: float
    time_until_leave_seconds: Optional[float] = None
    countdown: Optional[str] = None
    is_overdue: bool = False
