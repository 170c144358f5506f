"""
Leave-time calculation.

    leave time = departure - airport procedure - transport - buffer

Procedure time depends on whether the flight is international. The buffer
depends on the tier: free uses an automatic domestic/international buffer,
pro uses a per-mode override (clamped) or a flat default.
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

from leavetime.core.config import Settings, get_settings
from leavetime.core.metrics import leave_time_calculations_total
from leavetime.exceptions import (
    InvalidFlightException,
    LocationUnavailableException,
)
from leavetime.schemas.airport import Airport
from leavetime.schemas.flight import Flight, utc_now
from leavetime.schemas.leave_time import (
    Coordinate,
    LeaveTimeCalculation,
    TierConfig,
    TransportMode,
    TransportOption,
)
from leavetime.services.reference.airport_directory import AirportDirectory
from leavetime.services.transport.eta_provider import TransportService

logger = logging.getLogger(__name__)

DEFAULT_OPTION_MODES = (TransportMode.TAXI, TransportMode.CAR, TransportMode.PUBLIC_TRANSIT)


class LeaveTimeCalculator:
    """
    Computes when to leave for the airport.
    """

    def __init__(
        self,
        transport_service: TransportService,
        directory: AirportDirectory,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.transport_service = transport_service
        self.directory = directory
        self.settings = settings or get_settings()
        self.clock = clock

    def procedure_time(self, flight: Flight) -> timedelta:
        minutes = (
            self.settings.INTERNATIONAL_PROCEDURE_MINUTES
            if flight.is_international
            else self.settings.DOMESTIC_PROCEDURE_MINUTES
        )
        return timedelta(minutes=minutes)

    def buffer_time(self, flight: Flight, mode: TransportMode, tier_config: TierConfig) -> timedelta:
        """
        Safety buffer for one flight and mode.

        Pro buffers ignore domestic/international; free buffers depend on it only.
        """
        if tier_config.is_pro:
            custom = tier_config.custom_buffer_for(mode)
            if custom is None:
                return timedelta(minutes=self.settings.PRO_DEFAULT_BUFFER_MINUTES)
            clamped = max(self.settings.PRO_MIN_BUFFER_MINUTES, min(self.settings.PRO_MAX_BUFFER_MINUTES, custom))
            return timedelta(minutes=clamped)

        minutes = (
            self.settings.FREE_INTERNATIONAL_BUFFER_MINUTES
            if flight.is_international
            else self.settings.FREE_DOMESTIC_BUFFER_MINUTES
        )
        return timedelta(minutes=minutes)

    def _validate(self, flight: Flight, origin: Optional[Coordinate], now: datetime) -> Airport:
        if origin is None:
            raise LocationUnavailableException()
        if flight.departure_time <= now:
            raise InvalidFlightException(
                f"Flight {flight.display_title} departed at {flight.departure_time.isoformat()}"
            )
        return self.directory.get(flight.departure_airport.code)

    async def calculate_leave_time(
        self,
        flight: Flight,
        origin: Optional[Coordinate],
        mode: TransportMode = TransportMode.CAR,
        tier_config: Optional[TierConfig] = None
    ) -> LeaveTimeCalculation:
        """
        Calculate the leave time for one transport mode.

        Args:
            flight: Flight to catch
            origin: User's current location
            mode: Transport mode to the airport
            tier_config: Free/pro configuration (free when omitted)

        Returns:
            LeaveTimeCalculation; ``time_until_leave`` is negative when overdue

        Raises:
            LocationUnavailableException: No origin
            InvalidFlightException: Departure is not in the future
            AirportNotFoundException: Departure airport unknown to the directory
            TransportCalculationException: No usable transport duration
        """
        tier_config = tier_config or TierConfig.free()
        now = self.clock()
        airport = self._validate(flight, origin, now)

        procedure = self.procedure_time(flight)
        estimate = await self.transport_service.calculate_eta(origin, airport, mode)
        buffer = self.buffer_time(flight, mode, tier_config)

        airport_arrival_time = flight.departure_time - procedure
        leave_time = airport_arrival_time - estimate.duration - buffer

        calculation = LeaveTimeCalculation(
            flight=flight,
            leave_time=leave_time,
            airport_arrival_time=airport_arrival_time,
            departure_time=flight.departure_time,
            transport_duration=estimate.duration,
            airport_procedure_time=procedure,
            buffer_time=buffer,
            time_until_leave=leave_time - now,
            transport_mode=mode,
            is_pro_calculation=tier_config.is_pro,
            is_estimated_transport=estimate.is_estimated,
            calculated_at=now
        )

        leave_time_calculations_total.labels(
            tier=tier_config.tier.value,
            estimated=str(estimate.is_estimated).lower()
        ).inc()
        logger.info(
            f"Leave time for {flight.display_title} by {mode.value}: {leave_time.isoformat()}",
            extra={
                "flight_id": str(flight.id),
                "airport": airport.code,
                "international": flight.is_international,
                "transport_minutes": round(estimate.duration.total_seconds() / 60, 1),
                "estimated": estimate.is_estimated
            }
        )
        return calculation

    async def calculate_leave_times_for_options(
        self,
        flight: Flight,
        origin: Optional[Coordinate],
        modes: Sequence[TransportMode] = DEFAULT_OPTION_MODES,
        tier_config: Optional[TierConfig] = None
    ) -> List[LeaveTimeCalculation]:
        """
        Compare several transport modes (pro only).

        Modes are evaluated concurrently; a mode that fails is skipped rather
        than failing the whole comparison. Free tier gets a single car result.

        Returns:
            Successful calculations sorted by leave time, earliest first
        """
        tier_config = tier_config or TierConfig.free()
        if not tier_config.is_pro:
            return [await self.calculate_leave_time(flight, origin, TransportMode.CAR, tier_config)]

        # Preconditions shared by every mode fail the request as a whole
        self._validate(flight, origin, self.clock())

        unique_modes = list(dict.fromkeys(modes))
        results = await asyncio.gather(
            *(self.calculate_leave_time(flight, origin, mode, tier_config) for mode in unique_modes),
            return_exceptions=True
        )

        calculations: List[LeaveTimeCalculation] = []
        for mode, result in zip(unique_modes, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.warning(
                    f"Skipping {mode.value} option for {flight.display_title}: {str(result)}",
                    extra={"mode": mode.value, "error_type": type(result).__name__}
                )
                continue
            calculations.append(result)

        return sorted(calculations, key=lambda c: c.leave_time)

    async def recommend_transport(self, flight: Flight, origin: Optional[Coordinate]) -> TransportOption:
        """Recommended (car) transport option to the flight's departure airport"""
        airport = self._validate(flight, origin, self.clock())
        return await self.transport_service.recommend_transport(origin, airport)

    async def transport_options(
        self,
        flight: Flight,
        origin: Optional[Coordinate],
        modes: Sequence[TransportMode] = DEFAULT_OPTION_MODES
    ) -> List[TransportOption]:
        """Transport options in priority order; failed modes come back unavailable"""
        airport = self._validate(flight, origin, self.clock())
        return await self.transport_service.transport_options(origin, airport, modes)
