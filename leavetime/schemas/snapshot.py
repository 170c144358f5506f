"""
Current-flight snapshot schema.
"""
from datetime import datetime

from pydantic import BaseModel, computed_field

from leavetime.schemas.flight import Flight


class FlightSnapshot(BaseModel):
    """The single "current flight" record handed to the display"""
    flight: Flight
    saved_at: datetime
    is_mock_data: bool = False

    @computed_field
    @property
    def title(self) -> str:
        return self.flight.display_title

    @computed_field
    @property
    def departure_label(self) -> str:
        return self.flight.departure_airport.display_name

    @computed_field
    @property
    def source_label(self) -> str:
        return self.flight.detection_source.display_name
