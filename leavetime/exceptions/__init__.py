from leavetime.exceptions.custom_exceptions import (
    LeaveTimeServiceException,
    AccessException,
    CalendarAccessDeniedException,
    CalendarAccessRestrictedException,
    LocationUnavailableException,
    InvalidFlightException,
    AirportNotFoundException,
    TransportCalculationException,
    FlightSourceException,
    CalendarAPIException,
    NoEventsFoundException,
    NoDataSourceAvailableException,
    UnknownSourceException,
    SourceNotAvailableException,
    CacheException
)

__all__ = [
    "LeaveTimeServiceException",
    "AccessException",
    "CalendarAccessDeniedException",
    "CalendarAccessRestrictedException",
    "LocationUnavailableException",
    "InvalidFlightException",
    "AirportNotFoundException",
    "TransportCalculationException",
    "FlightSourceException",
    "CalendarAPIException",
    "NoEventsFoundException",
    "NoDataSourceAvailableException",
    "UnknownSourceException",
    "SourceNotAvailableException",
    "CacheException"
]
