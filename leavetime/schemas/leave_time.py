"""
Transport and leave-time schemas.
"""
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_serializer,
    field_validator,
    model_validator,
)

from leavetime.schemas.airport import Airport
from leavetime.schemas.flight import Flight, ensure_utc, utc_now

# Leave time counts as "now" once it is this close
TIME_TO_LEAVE_THRESHOLD = timedelta(minutes=5)


class TransportMode(str, Enum):
    CAR = "car"
    TAXI = "taxi"
    PUBLIC_TRANSIT = "publicTransit"
    SHUTTLE = "shuttle"
    WALKING = "walking"

    @property
    def display_name(self) -> str:
        return {
            TransportMode.CAR: "Car",
            TransportMode.TAXI: "Taxi / Ride",
            TransportMode.PUBLIC_TRANSIT: "Public Transit",
            TransportMode.SHUTTLE: "Shuttle",
            TransportMode.WALKING: "Walking",
        }[self]

    @property
    def is_typically_paid(self) -> bool:
        return self not in (TransportMode.CAR, TransportMode.WALKING)

    @property
    def has_real_time_availability(self) -> bool:
        """Ride-hailing apps report live availability; other modes do not"""
        return self == TransportMode.TAXI


class Tier(str, Enum):
    FREE = "free"
    PRO = "pro"


class Coordinate(BaseModel):
    """WGS84 point"""
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class TransportEstimate(BaseModel):
    """Travel time from an origin to an airport for one transport mode"""
    model_config = ConfigDict(frozen=True)

    duration: timedelta
    distance_meters: Optional[float] = None
    mode: TransportMode
    is_estimated: bool = False

    @field_serializer('duration')
    def serialize_duration(self, v: timedelta) -> float:
        return v.total_seconds()


class TierConfig(BaseModel):
    """
    Tier selection plus per-mode buffer overrides (minutes).
    Overrides only apply to the pro tier.
    """
    model_config = ConfigDict(frozen=True)

    tier: Tier = Tier.FREE
    custom_buffers: Dict[TransportMode, int] = Field(default_factory=dict)

    @property
    def is_pro(self) -> bool:
        return self.tier == Tier.PRO

    @classmethod
    def free(cls) -> "TierConfig":
        return cls(tier=Tier.FREE)

    @classmethod
    def pro(cls, custom_buffers: Optional[Dict[TransportMode, int]] = None) -> "TierConfig":
        return cls(tier=Tier.PRO, custom_buffers=custom_buffers or {})

    def update_custom_buffers(self, buffers: Dict[TransportMode, int]) -> "TierConfig":
        """New config with merged overrides; a free config is returned unchanged"""
        if not self.is_pro:
            return self
        merged = dict(self.custom_buffers)
        merged.update(buffers)
        return self.model_copy(update={"custom_buffers": merged})

    def custom_buffer_for(self, mode: TransportMode) -> Optional[int]:
        if not self.is_pro:
            return None
        return self.custom_buffers.get(mode)


def format_countdown(remaining: timedelta) -> str:
    """Glanceable countdown: "Depart now!", "45 min", "2 hr" or "2 hr 15 min"."""
    seconds = remaining.total_seconds()
    if seconds < 0:
        return "Depart now!"
    minutes = int(seconds // 60)
    if minutes < 60:
        return f"{minutes} min"
    hours, rest = divmod(minutes, 60)
    if rest == 0:
        return f"{hours} hr"
    return f"{hours} hr {rest} min"


class LeaveTimeCalculation(BaseModel):
    """Result of a leave-time calculation for one flight and transport mode"""
    model_config = ConfigDict(frozen=True)

    flight: Flight
    leave_time: datetime
    airport_arrival_time: datetime
    departure_time: datetime
    transport_duration: timedelta
    airport_procedure_time: timedelta
    buffer_time: timedelta
    time_until_leave: timedelta
    transport_mode: TransportMode
    is_pro_calculation: bool = False
    is_estimated_transport: bool = False
    calculated_at: datetime = Field(default_factory=utc_now)

    @field_validator('leave_time', 'airport_arrival_time', 'departure_time', 'calculated_at')
    @classmethod
    def normalize_timestamp(cls, v):
        return ensure_utc(v)

    @field_serializer('transport_duration', 'airport_procedure_time', 'buffer_time', 'time_until_leave')
    def serialize_duration(self, v: timedelta) -> float:
        return v.total_seconds()

    @field_serializer('leave_time', 'airport_arrival_time', 'departure_time', 'calculated_at')
    def serialize_timestamp(self, v: datetime) -> str:
        return v.isoformat().replace("+00:00", "Z")

    def time_until_leave_at(self, now: Optional[datetime] = None) -> timedelta:
        now = ensure_utc(now) if now else utc_now()
        return self.leave_time - now

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        return self.time_until_leave_at(now) < timedelta(0)

    def is_time_to_leave(self, now: Optional[datetime] = None) -> bool:
        return self.time_until_leave_at(now) <= TIME_TO_LEAVE_THRESHOLD

    @property
    def total_journey_time(self) -> timedelta:
        return self.transport_duration + self.airport_procedure_time + self.buffer_time

    @property
    def go_mode_threshold(self) -> timedelta:
        return self.transport_duration + self.buffer_time

    def countdown_label(self, now: Optional[datetime] = None) -> str:
        return format_countdown(self.time_until_leave_at(now))


class CostType(str, Enum):
    FREE = "free"
    FIXED = "fixed"
    RANGE = "range"


class CostEstimate(BaseModel):
    """Trip price: free, a fixed fare, or a min-max range"""
    model_config = ConfigDict(frozen=True)

    type: CostType
    amount: Optional[float] = Field(None, ge=0)
    min: Optional[float] = Field(None, ge=0)
    max: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = None

    @model_validator(mode='after')
    def check_amounts(self):
        if self.type == CostType.FIXED and (self.amount is None or not self.currency):
            raise ValueError("fixed cost needs amount and currency")
        if self.type == CostType.RANGE:
            if self.min is None or self.max is None or not self.currency:
                raise ValueError("cost range needs min, max and currency")
            if self.min > self.max:
                raise ValueError("cost range min exceeds max")
        return self

    @classmethod
    def free(cls) -> "CostEstimate":
        return cls(type=CostType.FREE)

    @classmethod
    def fixed(cls, amount: float, currency: str) -> "CostEstimate":
        return cls(type=CostType.FIXED, amount=amount, currency=currency)

    @classmethod
    def range(cls, low: float, high: float, currency: str) -> "CostEstimate":
        return cls(type=CostType.RANGE, min=low, max=high, currency=currency)

    @property
    def display_string(self) -> str:
        if self.type == CostType.FREE:
            return "Free"
        if self.type == CostType.FIXED:
            return f"{self.currency} {self.amount:.0f}"
        return f"{self.currency} {self.min:.0f} - {self.currency} {self.max:.0f}"


class TransportOption(BaseModel):
    """
    One way of getting to the airport: ETA, cost, reliability and the links
    that open a ride or maps app. Unavailable options keep their reason and
    have no duration.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    mode: TransportMode
    estimated_duration: Optional[timedelta] = None
    estimated_arrival_time: Optional[datetime] = None
    cost_estimate: Optional[CostEstimate] = None
    reliability_score: float = 0.8
    is_available: bool = True
    unavailability_reason: Optional[str] = None
    is_estimated: bool = False
    deep_link: Optional[str] = None
    requires_app: Optional[str] = None
    fallback_deep_link: Optional[str] = None
    calculated_at: datetime = Field(default_factory=utc_now)
    origin_location: Optional[Coordinate] = None
    destination_airport: Airport

    @field_validator('reliability_score')
    @classmethod
    def clamp_reliability(cls, v: float) -> float:
        return max(0.0, min(1.0, v))

    @field_validator('estimated_arrival_time', 'calculated_at')
    @classmethod
    def normalize_timestamp(cls, v):
        return ensure_utc(v) if v is not None else None

    @field_serializer('estimated_duration')
    def serialize_duration(self, v: Optional[timedelta]) -> Optional[float]:
        return v.total_seconds() if v is not None else None

    @field_serializer('estimated_arrival_time', 'calculated_at')
    def serialize_timestamp(self, v: Optional[datetime]) -> Optional[str]:
        return v.isoformat().replace("+00:00", "Z") if v is not None else None

    @computed_field
    @property
    def display_name(self) -> str:
        return self.mode.display_name

    @computed_field
    @property
    def formatted_duration(self) -> Optional[str]:
        if self.estimated_duration is None:
            return None
        return format_countdown(self.estimated_duration)

    @property
    def requires_external_app(self) -> bool:
        return self.requires_app is not None


def prioritize_options(options: Iterable[TransportOption]) -> List[TransportOption]:
    """Available first, then fastest, then most reliable"""
    return sorted(
        options,
        key=lambda o: (
            not o.is_available,
            o.estimated_duration is None,
            o.estimated_duration or timedelta(0),
            -o.reliability_score
        )
    )


def available_options(options: Iterable[TransportOption]) -> List[TransportOption]:
    return [o for o in options if o.is_available]


def best_option(options: Iterable[TransportOption]) -> Optional[TransportOption]:
    for option in prioritize_options(options):
        if option.is_available:
            return option
    return None
