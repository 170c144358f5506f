from datetime import timedelta

import httpx
import pytest

from leavetime.core.config import Settings
from leavetime.exceptions import TransportCalculationException
from leavetime.schemas.leave_time import Coordinate, TransportMode
from leavetime.services.transport.eta_provider import (
    FALLBACK_SPEEDS,
    DistanceEstimateProvider,
    RoutingEtaProvider,
    TransportService,
)
from leavetime.utils.geo_calculator import calculate_distance_meters

from tests.conftest import BANGKOK_ORIGIN, FakeEtaProvider


def routing_provider(handler) -> RoutingEtaProvider:
    settings = Settings(ROUTING_API_BASE_URL="http://osrm.test")
    return RoutingEtaProvider(settings, transport=httpx.MockTransport(handler))


class TestDistanceEstimate:
    @pytest.mark.asyncio
    async def test_estimate_applies_speed_and_uncertainty(self, dmk):
        estimate = await DistanceEstimateProvider(uncertainty=1.2).eta(BANGKOK_ORIGIN, dmk, TransportMode.CAR)

        distance = calculate_distance_meters(
            BANGKOK_ORIGIN.latitude, BANGKOK_ORIGIN.longitude, dmk.latitude, dmk.longitude
        )
        expected = distance / FALLBACK_SPEEDS[TransportMode.CAR] * 1.2
        assert estimate.is_estimated
        assert estimate.duration.total_seconds() == pytest.approx(expected)
        assert estimate.distance_meters == pytest.approx(distance)

    @pytest.mark.asyncio
    async def test_walking_is_slower_than_driving(self, dmk):
        provider = DistanceEstimateProvider()
        car = await provider.eta(BANGKOK_ORIGIN, dmk, TransportMode.CAR)
        walking = await provider.eta(BANGKOK_ORIGIN, dmk, TransportMode.WALKING)
        assert walking.duration > car.duration


class TestRoutingProvider:
    @pytest.mark.asyncio
    async def test_parses_route_duration(self, dmk):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["overview"] = request.url.params.get("overview")
            return httpx.Response(200, json={"code": "Ok", "routes": [{"duration": 1800.0, "distance": 25000.0}]})

        estimate = await routing_provider(handler).eta(BANGKOK_ORIGIN, dmk, TransportMode.TAXI)

        assert estimate.duration == timedelta(minutes=30)
        assert estimate.distance_meters == 25000.0
        assert not estimate.is_estimated
        assert seen["path"] == "/route/v1/driving/100.5018,13.7563;100.6067,13.9125"
        assert seen["overview"] == "false"

    @pytest.mark.asyncio
    async def test_no_route(self, dmk):
        def handler(request):
            return httpx.Response(200, json={"code": "NoRoute", "routes": []})

        with pytest.raises(TransportCalculationException):
            await routing_provider(handler).eta(BANGKOK_ORIGIN, dmk, TransportMode.CAR)

    @pytest.mark.asyncio
    async def test_http_error_status(self, dmk):
        def handler(request):
            return httpx.Response(503, text="unavailable")

        with pytest.raises(TransportCalculationException):
            await routing_provider(handler).eta(BANGKOK_ORIGIN, dmk, TransportMode.CAR)

    @pytest.mark.asyncio
    async def test_public_transit_is_not_routed(self, dmk):
        def handler(request):
            raise AssertionError("should not be called")

        with pytest.raises(TransportCalculationException):
            await routing_provider(handler).eta(BANGKOK_ORIGIN, dmk, TransportMode.PUBLIC_TRANSIT)


class TestTransportService:
    @pytest.mark.asyncio
    async def test_uses_provider_when_it_works(self, dmk):
        service = TransportService(provider=FakeEtaProvider(minutes=45))

        estimate = await service.calculate_eta(BANGKOK_ORIGIN, dmk, TransportMode.CAR)

        assert estimate.duration == timedelta(minutes=45)
        assert not estimate.is_estimated

    @pytest.mark.asyncio
    async def test_falls_back_to_estimate(self, dmk):
        service = TransportService(provider=FakeEtaProvider(failing_modes={TransportMode.CAR}))

        estimate = await service.calculate_eta(BANGKOK_ORIGIN, dmk, TransportMode.CAR)

        assert estimate.is_estimated
        assert estimate.duration > timedelta(0)

    @pytest.mark.asyncio
    async def test_unusable_provider_duration_falls_back(self, dmk):
        service = TransportService(provider=FakeEtaProvider(minutes=-10))

        estimate = await service.calculate_eta(BANGKOK_ORIGIN, dmk, TransportMode.CAR)

        assert estimate.is_estimated

    @pytest.mark.asyncio
    async def test_disabled_fallback_raises(self, dmk):
        service = TransportService(
            provider=FakeEtaProvider(failing_modes={TransportMode.CAR}),
            fallback_enabled=False
        )

        with pytest.raises(TransportCalculationException):
            await service.calculate_eta(BANGKOK_ORIGIN, dmk, TransportMode.CAR)

    @pytest.mark.asyncio
    async def test_without_provider_uses_estimate(self, dmk):
        estimate = await TransportService().calculate_eta(BANGKOK_ORIGIN, dmk, TransportMode.SHUTTLE)
        assert estimate.is_estimated

    @pytest.mark.asyncio
    async def test_unreachable_routing_api_falls_back(self, dmk):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        provider = routing_provider(handler)
        service = TransportService(provider=provider)

        estimate = await service.calculate_eta(BANGKOK_ORIGIN, dmk, TransportMode.CAR)

        assert estimate.is_estimated


def test_coordinate_range_is_validated():
    with pytest.raises(ValueError):
        Coordinate(latitude=91, longitude=0)
