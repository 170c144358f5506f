"""
Flight source interface used by the multi-source coordinator.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from leavetime.schemas.flight import Flight


class FlightSource(ABC):
    """
    A provider of upcoming flights (e.g. one calendar account).

    Sources are queried by the coordinator in priority order; a source that
    is not available is skipped without being called.
    """

    source_name: str = "unknown"
    requires_auth: bool = False

    @property
    @abstractmethod
    def is_available(self) -> bool:
        pass

    @property
    @abstractmethod
    def last_sync_time(self) -> Optional[datetime]:
        pass

    @abstractmethod
    async def fetch_flights(self) -> List[Flight]:
        """
        Fetch upcoming flights.

        Raises:
            LeaveTimeServiceException subclasses on failure; the coordinator
            then falls back to the next available source.
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Drop credentials and sync state; reconnecting needs re-authorization"""
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.source_name!r}>"
