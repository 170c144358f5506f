"""
Transport ETA from an origin to an airport.

A routing API gives measured durations; when it is unavailable a
straight-line distance estimate is used instead, tagged as estimated.
"""
import asyncio
import logging
import math
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence

import httpx

from leavetime.core.config import Settings, get_settings
from leavetime.core.metrics import eta_fallbacks_total, eta_requests_total
from leavetime.exceptions import TransportCalculationException
from leavetime.schemas.airport import Airport
from leavetime.schemas.flight import utc_now
from leavetime.schemas.leave_time import (
    Coordinate,
    CostEstimate,
    TransportEstimate,
    TransportMode,
    TransportOption,
    prioritize_options,
)
from leavetime.services.transport.deep_links import deep_links_for
from leavetime.utils.decorators import retry_with_backoff
from leavetime.utils.geo_calculator import calculate_distance_meters

logger = logging.getLogger(__name__)

# Conservative average speeds in m/s used by the distance estimate
FALLBACK_SPEEDS: Dict[TransportMode, float] = {
    TransportMode.CAR: 8.0,
    TransportMode.TAXI: 8.0,
    TransportMode.PUBLIC_TRANSIT: 10.0,
    TransportMode.SHUTTLE: 7.0,
    TransportMode.WALKING: 1.4,
}

# OSRM routing profiles; public transit has no road profile
ROUTING_PROFILES: Dict[TransportMode, str] = {
    TransportMode.CAR: "driving",
    TransportMode.TAXI: "driving",
    TransportMode.SHUTTLE: "driving",
    TransportMode.WALKING: "foot",
}

# Measured routes are trusted more than straight-line estimates
MEASURED_RELIABILITY = 0.8
ESTIMATED_RELIABILITY = 0.6


def _is_usable(estimate: Optional[TransportEstimate]) -> bool:
    if estimate is None:
        return False
    seconds = estimate.duration.total_seconds()
    return math.isfinite(seconds) and seconds >= 0


class EtaProvider(ABC):
    """Travel-time lookup from a coordinate to an airport"""

    @abstractmethod
    async def eta(
        self,
        origin: Coordinate,
        destination: Airport,
        mode: TransportMode
    ) -> TransportEstimate:
        """
        Raises:
            TransportCalculationException (or any error) when no duration is available
        """
        pass


class DistanceEstimateProvider(EtaProvider):
    """
    Haversine distance over a fixed conservative speed per mode, with an
    uncertainty markup. Never touches the network.
    """

    def __init__(self, uncertainty: float = 1.2):
        self.uncertainty = uncertainty

    async def eta(
        self,
        origin: Coordinate,
        destination: Airport,
        mode: TransportMode
    ) -> TransportEstimate:
        distance = calculate_distance_meters(
            origin.latitude, origin.longitude,
            destination.latitude, destination.longitude
        )
        if distance is None:
            raise TransportCalculationException("distance could not be computed")

        seconds = distance / FALLBACK_SPEEDS[mode] * self.uncertainty
        return TransportEstimate(
            duration=timedelta(seconds=seconds),
            distance_meters=distance,
            mode=mode,
            is_estimated=True
        )


class RoutingEtaProvider(EtaProvider):
    """
    Client for an OSRM-compatible routing API.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        settings = settings or get_settings()
        self.api_base_url = settings.ROUTING_API_BASE_URL.rstrip("/")
        self.timeout = settings.ROUTING_API_TIMEOUT
        self._transport = transport

    @retry_with_backoff(max_retries=1, initial_delay=0.5, retry_on=(httpx.TransportError,))
    async def _request_route(self, profile: str, origin: Coordinate, destination: Airport) -> Dict:
        path = (
            f"/route/v1/{profile}/"
            f"{origin.longitude},{origin.latitude};{destination.longitude},{destination.latitude}"
        )
        async with httpx.AsyncClient(
            base_url=self.api_base_url,
            timeout=self.timeout,
            transport=self._transport
        ) as client:
            response = await client.get(path, params={"overview": "false"})

        if response.status_code != 200:
            raise TransportCalculationException(f"routing API returned {response.status_code}")
        return response.json()

    async def eta(
        self,
        origin: Coordinate,
        destination: Airport,
        mode: TransportMode
    ) -> TransportEstimate:
        profile = ROUTING_PROFILES.get(mode)
        if profile is None:
            raise TransportCalculationException(f"routing not supported for {mode.value}")

        try:
            payload = await self._request_route(profile, origin, destination)
        except httpx.HTTPError as e:
            raise TransportCalculationException(f"routing API unreachable: {str(e)}") from e
        except ValueError as e:
            raise TransportCalculationException(f"invalid routing response: {str(e)}") from e

        routes = payload.get("routes") or []
        if payload.get("code") != "Ok" or not routes:
            raise TransportCalculationException(f"no route found ({payload.get('code')})")

        route = routes[0]
        try:
            duration = float(route["duration"])
        except (KeyError, TypeError, ValueError) as e:
            raise TransportCalculationException("route without duration") from e

        return TransportEstimate(
            duration=timedelta(seconds=duration),
            distance_meters=route.get("distance"),
            mode=mode,
            is_estimated=False
        )


class TransportService:
    """
    ETA lookups with a distance-estimate fallback.

    A provider failure degrades to the estimate rather than raising; only a
    disabled or unusable fallback surfaces TransportCalculationException.
    """

    def __init__(
        self,
        provider: Optional[EtaProvider] = None,
        fallback: Optional[EtaProvider] = None,
        fallback_enabled: bool = True,
        clock: Callable[[], datetime] = utc_now
    ):
        self.provider = provider
        self.fallback = fallback or DistanceEstimateProvider()
        self.fallback_enabled = fallback_enabled
        self.clock = clock

    async def calculate_eta(
        self,
        origin: Coordinate,
        destination: Airport,
        mode: TransportMode
    ) -> TransportEstimate:
        """
        Args:
            origin: Where the user leaves from
            destination: Departure airport
            mode: Transport mode

        Returns:
            Measured estimate, or a distance-based one flagged ``is_estimated``

        Raises:
            TransportCalculationException: Provider failed and no usable fallback
        """
        if self.provider is not None:
            try:
                estimate = await self.provider.eta(origin, destination, mode)
                if not _is_usable(estimate):
                    raise TransportCalculationException("provider returned an unusable duration")
                eta_requests_total.labels(mode=mode.value, status="success").inc()
                return estimate
            except Exception as e:
                eta_requests_total.labels(mode=mode.value, status="error").inc()
                if not self.fallback_enabled:
                    if isinstance(e, TransportCalculationException):
                        raise
                    raise TransportCalculationException(str(e)) from e
                logger.warning(
                    f"ETA provider failed for {mode.value} to {destination.code}, using distance estimate",
                    extra={"error": str(e), "mode": mode.value, "airport": destination.code}
                )
        elif not self.fallback_enabled:
            raise TransportCalculationException("no ETA provider configured")

        estimate = await self.fallback.eta(origin, destination, mode)
        if not _is_usable(estimate):
            raise TransportCalculationException("fallback estimate is unusable")
        eta_fallbacks_total.labels(mode=mode.value).inc()
        return estimate

    def build_option(
        self,
        origin: Coordinate,
        destination: Airport,
        estimate: TransportEstimate,
        now: Optional[datetime] = None
    ) -> TransportOption:
        now = now or self.clock()
        links = deep_links_for(estimate.mode, origin, destination)
        return TransportOption(
            mode=estimate.mode,
            estimated_duration=estimate.duration,
            estimated_arrival_time=now + estimate.duration,
            cost_estimate=None if estimate.mode.is_typically_paid else CostEstimate.free(),
            reliability_score=ESTIMATED_RELIABILITY if estimate.is_estimated else MEASURED_RELIABILITY,
            is_estimated=estimate.is_estimated,
            deep_link=links.deep_link,
            requires_app=links.requires_app,
            fallback_deep_link=links.fallback,
            calculated_at=now,
            origin_location=origin,
            destination_airport=destination
        )

    async def recommend_transport(self, origin: Coordinate, destination: Airport) -> TransportOption:
        """
        Car option to the airport, the mode used for the default leave time.

        Raises:
            TransportCalculationException: Provider failed and no usable fallback
        """
        estimate = await self.calculate_eta(origin, destination, TransportMode.CAR)
        return self.build_option(origin, destination, estimate)

    async def transport_options(
        self,
        origin: Coordinate,
        destination: Airport,
        modes: Sequence[TransportMode]
    ) -> List[TransportOption]:
        """
        One option per mode, looked up concurrently, in priority order.

        A mode whose ETA fails becomes an unavailable option carrying the
        error as its reason.
        """
        now = self.clock()
        unique_modes = list(dict.fromkeys(modes))
        results = await asyncio.gather(
            *(self.calculate_eta(origin, destination, mode) for mode in unique_modes),
            return_exceptions=True
        )

        options: List[TransportOption] = []
        for mode, result in zip(unique_modes, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.info(
                    f"{mode.value} unavailable to {destination.code}: {str(result)}",
                    extra={"mode": mode.value, "airport": destination.code}
                )
                links = deep_links_for(mode, origin, destination)
                options.append(TransportOption(
                    mode=mode,
                    is_available=False,
                    unavailability_reason=str(result),
                    reliability_score=0.0,
                    deep_link=links.deep_link,
                    requires_app=links.requires_app,
                    fallback_deep_link=links.fallback,
                    calculated_at=now,
                    origin_location=origin,
                    destination_airport=destination
                ))
                continue
            options.append(self.build_option(origin, destination, result, now))

        return prioritize_options(options)
