class LeaveTimeServiceException(Exception):
    """Base exception for all leave-time service errors"""
    pass


# Access errors: only the caller can recover (re-request permission)

class AccessException(LeaveTimeServiceException):
    """Base class for permission/authorization errors"""
    pass


class CalendarAccessDeniedException(AccessException):
    """Raised when calendar read access has been denied or never granted"""

    def __init__(self, message: str = "Calendar access was denied. Please enable it in Settings."):
        super().__init__(message)


class CalendarAccessRestrictedException(AccessException):
    """Raised when calendar access is restricted on this device"""

    def __init__(self, message: str = "Calendar access is restricted on this device."):
        super().__init__(message)


class LocationUnavailableException(AccessException):
    """Raised when the user's current location is not available"""

    def __init__(self, message: str = "Current location is unavailable."):
        super().__init__(message)


# Input validity errors

class InvalidFlightException(LeaveTimeServiceException):
    """Raised when a flight cannot be used for a calculation (e.g. already departed)"""

    def __init__(self, message: str = "Invalid flight data provided."):
        super().__init__(message)


class AirportNotFoundException(LeaveTimeServiceException):
    """Raised when an airport code does not resolve in the airport directory"""

    def __init__(self, code: str = None):
        self.code = code
        if code:
            super().__init__(f"Airport information not found for '{code}'.")
        else:
            super().__init__("Airport information not found.")


# Transient failures

class TransportCalculationException(LeaveTimeServiceException):
    """Raised when a transport ETA could not be obtained and no fallback applies"""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Could not calculate transport time: {reason}")


class FlightSourceException(LeaveTimeServiceException):
    """Exception raised when a flight source fails to fetch flights"""
    pass


class CalendarAPIException(FlightSourceException):
    """Exception raised for remote calendar API errors"""

    def __init__(self, message: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(message)


# Exhaustion errors: nothing to even attempt

class NoEventsFoundException(LeaveTimeServiceException):
    """Raised when the event collection for the scan window is empty"""

    def __init__(self, message: str = "No calendar events found in the specified date range."):
        super().__init__(message)


class NoDataSourceAvailableException(LeaveTimeServiceException):
    """Raised when no flight source is available to query"""

    def __init__(
        self,
        message: str = "No calendar data source available. Please connect a calendar or grant calendar access."
    ):
        super().__init__(message)


# Coordinator lookups

class UnknownSourceException(LeaveTimeServiceException):
    """Raised when a flight source is requested by an unknown name"""

    def __init__(self, source_name: str):
        self.source_name = source_name
        super().__init__(f"Unknown data source: {source_name}")


class SourceNotAvailableException(LeaveTimeServiceException):
    """Raised when a named flight source is not available or not authorized"""

    def __init__(self, source_name: str):
        self.source_name = source_name
        super().__init__(f"{source_name} is not available or not authorized")


class CacheException(LeaveTimeServiceException):
    """Exception raised for snapshot store operation errors"""
    pass
