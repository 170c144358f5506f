"""
Explicit wiring of the application services.

Built once at startup and stored on ``app.state``; nothing here is a
process-wide singleton except the read-only airport directory and settings.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from leavetime.core.config import Settings, get_settings
from leavetime.schemas.calendar import AuthorizationStatus
from leavetime.schemas.flight import DetectionSource, utc_now
from leavetime.services.cache.flight_snapshot import (
    FlightSnapshotStore,
    InMemoryFlightSnapshotStore,
    RedisFlightSnapshotStore,
)
from leavetime.services.detection.event_source import EventSource, InMemoryEventSource, JsonFileEventSource
from leavetime.services.detection.flight_detector import FlightDetector
from leavetime.services.display.flight_state import FlightStateEngine
from leavetime.services.leave_time.calculator import LeaveTimeCalculator
from leavetime.services.orchestration.scheduler import FlightSyncScheduler
from leavetime.services.orchestration.sync_service import FlightSyncService
from leavetime.services.reference.airport_directory import AirportDirectory, get_airport_directory
from leavetime.services.sources.base import FlightSource
from leavetime.services.sources.calendar_source import CalendarFlightSource
from leavetime.services.sources.coordinator import FlightSourceCoordinator
from leavetime.services.sources.google_calendar import GoogleCalendarFlightSource
from leavetime.services.transport.eta_provider import (
    DistanceEstimateProvider,
    RoutingEtaProvider,
    TransportService,
)

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    directory: AirportDirectory
    detector: FlightDetector
    coordinator: FlightSourceCoordinator
    transport_service: TransportService
    calculator: LeaveTimeCalculator
    state_engine: FlightStateEngine
    store: FlightSnapshotStore
    sync_service: FlightSyncService
    scheduler: Optional[FlightSyncScheduler] = None

    async def start(self) -> None:
        await self.store.connect()
        if self.scheduler is not None:
            await self.scheduler.start()

    async def stop(self) -> None:
        if self.scheduler is not None and self.scheduler.is_running:
            await self.scheduler.stop()
        await self.store.disconnect()


def _local_event_source(settings: Settings) -> EventSource:
    if settings.LOCAL_CALENDAR_FILE:
        return JsonFileEventSource(settings.LOCAL_CALENDAR_FILE)
    # No local calendar configured: the source stays unavailable
    return InMemoryEventSource(status=AuthorizationStatus.NOT_DETERMINED, grant_on_request=False)


def build_container(
    settings: Optional[Settings] = None,
    sources: Optional[List[FlightSource]] = None,
    store: Optional[FlightSnapshotStore] = None,
    transport_service: Optional[TransportService] = None,
    clock: Callable[[], datetime] = utc_now
) -> ServiceContainer:
    """
    Wire every service from settings.

    Sources, store and transport can be passed in to replace the defaults
    (tests, demo setups).
    """
    settings = settings or get_settings()
    directory = get_airport_directory()
    detector = FlightDetector(directory, clock=clock)

    if sources is None:
        sources = []
        if settings.GOOGLE_CALENDAR_ACCESS_TOKEN:
            sources.append(GoogleCalendarFlightSource(
                detector,
                access_token=settings.GOOGLE_CALENDAR_ACCESS_TOKEN,
                settings=settings,
                clock=clock
            ))
        sources.append(CalendarFlightSource(
            _local_event_source(settings),
            detector,
            source_name="Local Calendar",
            source_tag=DetectionSource.LOCAL_CALENDAR,
            scan_days_ahead=settings.SCAN_DAYS_AHEAD,
            clock=clock
        ))
    coordinator = FlightSourceCoordinator(sources, clock=clock)

    if transport_service is None:
        transport_service = TransportService(
            provider=RoutingEtaProvider(settings),
            fallback=DistanceEstimateProvider(settings.ETA_FALLBACK_UNCERTAINTY),
            fallback_enabled=settings.ETA_FALLBACK_ENABLED,
            clock=clock
        )

    if store is None:
        if settings.ENABLE_REDIS_SNAPSHOT:
            store = RedisFlightSnapshotStore(settings, clock=clock)
        else:
            store = InMemoryFlightSnapshotStore(clock=clock)

    sync_service = FlightSyncService(coordinator, store, clock=clock)
    scheduler = (
        FlightSyncScheduler(sync_service, settings.SYNC_INTERVAL_MINUTES)
        if settings.ENABLE_SCHEDULER
        else None
    )

    logger.info(
        "Services wired",
        extra={"sources": [s.source_name for s in sources], "store": type(store).__name__}
    )
    return ServiceContainer(
        settings=settings,
        directory=directory,
        detector=detector,
        coordinator=coordinator,
        transport_service=transport_service,
        calculator=LeaveTimeCalculator(transport_service, directory, settings, clock=clock),
        state_engine=FlightStateEngine(settings),
        store=store,
        sync_service=sync_service,
        scheduler=scheduler
    )
