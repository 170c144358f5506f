"""
Current-flight snapshot storage.

Holds a single record (the flight the display should show); every save
replaces it, last write wins.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional

import redis.asyncio as redis

from leavetime.core.config import Settings, get_settings
from leavetime.exceptions import CacheException
from leavetime.schemas.flight import DetectionSource, Flight, utc_now
from leavetime.schemas.snapshot import FlightSnapshot

logger = logging.getLogger(__name__)


class FlightSnapshotStore(ABC):
    """Single-record store for the current flight"""

    @abstractmethod
    async def save(self, flight: Flight) -> FlightSnapshot:
        pass

    @abstractmethod
    async def load_snapshot(self) -> Optional[FlightSnapshot]:
        pass

    @abstractmethod
    async def clear(self) -> None:
        pass

    async def load(self) -> Optional[Flight]:
        snapshot = await self.load_snapshot()
        return snapshot.flight if snapshot else None

    async def last_update(self) -> Optional[datetime]:
        snapshot = await self.load_snapshot()
        return snapshot.saved_at if snapshot else None

    async def is_mock_data(self) -> bool:
        snapshot = await self.load_snapshot()
        return snapshot.is_mock_data if snapshot else False

    async def connect(self) -> None:
        pass

    async def disconnect(self) -> None:
        pass

    async def health_check(self) -> bool:
        return True


def _snapshot_for(flight: Flight, saved_at: datetime) -> FlightSnapshot:
    return FlightSnapshot(
        flight=flight,
        saved_at=saved_at,
        is_mock_data=flight.detection_source == DetectionSource.MANUAL_ENTRY
    )


class InMemoryFlightSnapshotStore(FlightSnapshotStore):
    """Process-local store, used when Redis is disabled and in tests"""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self.clock = clock
        self._snapshot: Optional[FlightSnapshot] = None
        self._lock = asyncio.Lock()

    async def save(self, flight: Flight) -> FlightSnapshot:
        async with self._lock:
            self._snapshot = _snapshot_for(flight, self.clock())
            return self._snapshot

    async def load_snapshot(self) -> Optional[FlightSnapshot]:
        return self._snapshot

    async def clear(self) -> None:
        async with self._lock:
            self._snapshot = None


class RedisFlightSnapshotStore(FlightSnapshotStore):
    """
    Redis-backed snapshot, stored as one JSON document so a write replaces
    flight, timestamp and mock flag together.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[redis.Redis] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        settings = settings or get_settings()
        self.redis_url = settings.REDIS_URL
        self.key = f"{settings.SNAPSHOT_KEY_PREFIX}:current"
        self.clock = clock
        self._client: Optional[redis.Redis] = client

    async def connect(self):
        """Initialize Redis connection"""
        if self._client is not None:
            return

        try:
            self._client = await redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True
            )
            await self._client.ping()
            logger.info("Successfully connected to Redis snapshot store")
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {str(e)}")
            self._client = None

    async def disconnect(self):
        """Close Redis connection"""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Disconnected from Redis snapshot store")

    def _require_client(self) -> redis.Redis:
        if self._client is None:
            raise CacheException("Redis snapshot store is not connected")
        return self._client

    async def save(self, flight: Flight) -> FlightSnapshot:
        """
        Replace the current snapshot.

        Raises:
            CacheException: Redis unavailable or the write failed
        """
        client = self._require_client()
        snapshot = _snapshot_for(flight, self.clock())
        try:
            await client.set(self.key, snapshot.model_dump_json())
        except Exception as e:
            logger.error(f"Error saving flight snapshot: {str(e)}")
            raise CacheException(f"Failed to save flight snapshot: {str(e)}")

        logger.debug("Saved flight snapshot", extra={"key": self.key, "flight_id": str(flight.id)})
        return snapshot

    async def load_snapshot(self) -> Optional[FlightSnapshot]:
        """Current snapshot, or None when missing, unreadable or Redis is down"""
        if self._client is None:
            return None

        try:
            raw = await self._client.get(self.key)
            if not raw:
                return None
            return FlightSnapshot.model_validate_json(raw)
        except Exception as e:
            logger.warning(f"Error loading flight snapshot: {str(e)}")
            return None  # Fail gracefully

    async def clear(self) -> None:
        client = self._require_client()
        try:
            await client.delete(self.key)
            logger.info("Cleared flight snapshot")
        except Exception as e:
            logger.error(f"Error clearing flight snapshot: {str(e)}")
            raise CacheException(f"Failed to clear flight snapshot: {str(e)}")

    async def health_check(self) -> bool:
        if not self._client:
            return False
        try:
            await self._client.ping()
            return True
        except Exception as e:
            logger.error(f"Redis health check failed: {str(e)}")
            return False
