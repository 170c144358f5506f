"""
Airport schema.
"""
import re
from typing import Optional, List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from datetime import timezone, tzinfo
from pydantic import BaseModel, ConfigDict, Field, field_validator

from leavetime.utils.geo_calculator import calculate_distance_km

IATA_CODE_PATTERN = re.compile(r'^[A-Z]{3}$')


def is_valid_iata_code(code: Optional[str]) -> bool:
    """True iff ``code`` is exactly 3 uppercase ASCII letters."""
    if not isinstance(code, str):
        return False
    return IATA_CODE_PATTERN.match(code) is not None


class Airport(BaseModel):
    """
    Airport reference data used for leave-time calculations.
    Identified by its 3-letter IATA code; immutable.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "code": "DMK",
                "name": "Don Mueang International Airport",
                "city": "Bangkok",
                "country_code": "TH",
                "latitude": 13.9125,
                "longitude": 100.6067,
                "timezone": "Asia/Bangkok",
                "is_international_hub": True,
                "terminals": ["Terminal 1", "Terminal 2"]
            }
        }
    )

    code: str = Field(..., description="3-letter IATA code")
    name: str = Field(..., description="Full airport name")
    city: str = Field(..., description="City served by the airport")
    country_code: str = Field(..., description="ISO 3166-1 alpha-2 country code")
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    timezone: str = Field(..., description="IANA timezone identifier")
    is_international_hub: bool = Field(
        False, description="Primarily serves international routes; used when the arrival airport is unknown"
    )
    terminals: Optional[List[str]] = None

    @field_validator('code', mode='before')
    @classmethod
    def validate_code(cls, v):
        """Store codes canonically uppercase and reject anything but 3 ASCII letters"""
        if isinstance(v, str):
            v = v.strip().upper()
        if not is_valid_iata_code(v):
            raise ValueError(f"Invalid IATA code: {v!r}")
        return v

    @field_validator('country_code')
    @classmethod
    def validate_country_code(cls, v):
        v = v.strip().upper()
        if len(v) != 2 or not v.isalpha():
            raise ValueError(f"Invalid ISO country code: {v!r}")
        return v

    def __hash__(self) -> int:
        return hash(self.code)

    @property
    def display_name(self) -> str:
        return f"{self.city} ({self.code})"

    def zoneinfo(self) -> tzinfo:
        """Airport timezone, falling back to UTC for unknown identifiers"""
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            return timezone.utc

    def is_likely_international(self, destination: Optional["Airport"] = None) -> bool:
        """
        Whether a flight from this airport is likely international.

        Compares countries when the destination is known, otherwise falls
        back to this airport's hub classification.
        """
        if destination is not None:
            return self.country_code != destination.country_code
        return self.is_international_hub

    def distance_km(self, other: "Airport") -> float:
        return calculate_distance_km(self.latitude, self.longitude, other.latitude, other.longitude)
