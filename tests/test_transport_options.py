import json
from datetime import timedelta

import pytest
from pydantic import ValidationError

from leavetime.exceptions import InvalidFlightException, LocationUnavailableException
from leavetime.schemas.leave_time import (
    Coordinate,
    CostEstimate,
    TransportMode,
    TransportOption,
    available_options,
    best_option,
    prioritize_options,
)
from leavetime.services.transport.deep_links import (
    GRAB_APP_ID,
    UBER_APP_ID,
    apple_maps_url,
    deep_links_for,
    uber_url,
)
from leavetime.services.transport.eta_provider import TransportService

from tests.conftest import BANGKOK_ORIGIN, NOW, FakeEtaProvider, fixed_clock, make_flight

CENTRAL_LONDON = Coordinate(latitude=51.5074, longitude=-0.1278)


class TestDeepLinks:
    def test_apple_maps_directions(self, dmk):
        assert apple_maps_url(dmk) == "http://maps.apple.com/?daddr=13.9125,100.6067&dirflg=d"

    def test_uber_link_carries_pickup_and_dropoff(self, directory):
        lhr = directory.get("LHR")

        assert uber_url(CENTRAL_LONDON, lhr) == (
            "uber://?action=setPickup"
            "&pickup[latitude]=51.5074&pickup[longitude]=-0.1278"
            "&dropoff[latitude]=51.47&dropoff[longitude]=-0.4543"
            "&dropoff[nickname]=Heathrow%20Airport"
        )

    def test_taxi_opens_uber(self, directory):
        lhr = directory.get("LHR")

        links = deep_links_for(TransportMode.TAXI, CENTRAL_LONDON, lhr)

        assert links.deep_link.startswith("uber://")
        assert links.requires_app == UBER_APP_ID
        assert links.fallback == apple_maps_url(lhr)

    def test_taxi_opens_grab_where_grab_operates(self, dmk):
        links = deep_links_for(TransportMode.TAXI, BANGKOK_ORIGIN, dmk)

        assert links.deep_link == "grab://"
        assert links.requires_app == GRAB_APP_ID
        assert links.fallback == apple_maps_url(dmk)

    def test_public_transit_uses_transit_directions(self, dmk):
        links = deep_links_for(TransportMode.PUBLIC_TRANSIT, BANGKOK_ORIGIN, dmk)

        assert links.deep_link.endswith("&dirflg=r")
        assert links.requires_app is None

    def test_car_uses_maps_fallback(self, dmk):
        links = deep_links_for(TransportMode.CAR, BANGKOK_ORIGIN, dmk)

        assert links.deep_link == links.fallback
        assert links.requires_app is None


def test_transport_mode_flags():
    assert not TransportMode.CAR.is_typically_paid
    assert not TransportMode.WALKING.is_typically_paid
    assert TransportMode.TAXI.is_typically_paid
    assert TransportMode.PUBLIC_TRANSIT.is_typically_paid
    assert TransportMode.TAXI.has_real_time_availability
    assert not TransportMode.SHUTTLE.has_real_time_availability


class TestCostEstimate:
    def test_display_strings(self):
        assert CostEstimate.free().display_string == "Free"
        assert CostEstimate.fixed(250, "THB").display_string == "THB 250"
        assert CostEstimate.range(300, 450, "THB").display_string == "THB 300 - THB 450"

    def test_range_must_be_ordered(self):
        with pytest.raises(ValidationError):
            CostEstimate.range(500, 100, "THB")

    def test_fixed_needs_currency(self):
        with pytest.raises(ValidationError):
            CostEstimate(type="fixed", amount=10)


class TestPrioritization:
    def _option(self, airport, mode, minutes=None, reliability=0.8, available=True):
        return TransportOption(
            mode=mode,
            estimated_duration=timedelta(minutes=minutes) if minutes is not None else None,
            reliability_score=reliability,
            is_available=available,
            unavailability_reason=None if available else "no drivers nearby",
            calculated_at=NOW,
            destination_airport=airport
        )

    def test_available_then_fastest_then_most_reliable(self, dmk):
        unavailable = self._option(dmk, TransportMode.TAXI, minutes=10, available=False)
        slow = self._option(dmk, TransportMode.SHUTTLE, minutes=70)
        fast_shaky = self._option(dmk, TransportMode.CAR, minutes=40, reliability=0.5)
        fast_steady = self._option(dmk, TransportMode.PUBLIC_TRANSIT, minutes=40, reliability=0.9)

        ordered = prioritize_options([unavailable, slow, fast_shaky, fast_steady])

        assert ordered == [fast_steady, fast_shaky, slow, unavailable]
        assert best_option([unavailable, slow, fast_shaky, fast_steady]) == fast_steady
        assert unavailable not in available_options(ordered)

    def test_no_best_option_when_nothing_available(self, dmk):
        options = [self._option(dmk, TransportMode.TAXI, available=False)]
        assert best_option(options) is None

    def test_reliability_is_clamped(self, dmk):
        assert self._option(dmk, TransportMode.CAR, minutes=5, reliability=1.7).reliability_score == 1.0
        assert self._option(dmk, TransportMode.CAR, minutes=5, reliability=-0.2).reliability_score == 0.0

    def test_json_shape(self, dmk):
        payload = json.loads(self._option(dmk, TransportMode.PUBLIC_TRANSIT, minutes=80).model_dump_json())

        assert payload["estimated_duration"] == 4800.0
        assert payload["formatted_duration"] == "1 hr 20 min"
        assert payload["display_name"] == "Public Transit"
        assert payload["calculated_at"] == "2025-03-01T10:00:00Z"


class TestTransportServiceOptions:
    @pytest.mark.asyncio
    async def test_recommend_transport_is_car(self, dmk):
        service = TransportService(FakeEtaProvider(minutes=45), clock=fixed_clock)

        option = await service.recommend_transport(BANGKOK_ORIGIN, dmk)

        assert option.mode == TransportMode.CAR
        assert option.estimated_duration == timedelta(minutes=45)
        assert option.estimated_arrival_time == NOW + timedelta(minutes=45)
        assert option.cost_estimate == CostEstimate.free()
        assert option.reliability_score == 0.8
        assert option.is_available
        assert option.deep_link == apple_maps_url(dmk)
        assert option.origin_location == BANGKOK_ORIGIN
        assert option.destination_airport.code == "DMK"

    @pytest.mark.asyncio
    async def test_estimated_duration_is_less_reliable(self, dmk):
        service = TransportService(provider=None, clock=fixed_clock)

        option = await service.recommend_transport(BANGKOK_ORIGIN, dmk)

        assert option.is_estimated
        assert option.reliability_score == 0.6

    @pytest.mark.asyncio
    async def test_options_sorted_with_failed_mode_unavailable(self, dmk):
        provider = FakeEtaProvider(
            per_mode={TransportMode.CAR: 45, TransportMode.PUBLIC_TRANSIT: 30},
            failing_modes={TransportMode.TAXI}
        )
        service = TransportService(provider, fallback_enabled=False, clock=fixed_clock)

        options = await service.transport_options(
            BANGKOK_ORIGIN, dmk, [TransportMode.TAXI, TransportMode.CAR, TransportMode.PUBLIC_TRANSIT, TransportMode.CAR]
        )

        assert [o.mode for o in options] == [TransportMode.PUBLIC_TRANSIT, TransportMode.CAR, TransportMode.TAXI]
        taxi = options[-1]
        assert not taxi.is_available
        assert "no route for taxi" in taxi.unavailability_reason
        assert taxi.estimated_duration is None
        assert taxi.deep_link == "grab://"
        assert options[0].cost_estimate is None


class TestCalculatorTransport:
    @pytest.mark.asyncio
    async def test_recommend_for_flight(self, calculator):
        option = await calculator.recommend_transport(make_flight(), BANGKOK_ORIGIN)

        assert option.mode == TransportMode.CAR
        assert option.destination_airport.code == "DMK"

    @pytest.mark.asyncio
    async def test_missing_origin(self, calculator):
        with pytest.raises(LocationUnavailableException):
            await calculator.recommend_transport(make_flight(), None)

    @pytest.mark.asyncio
    async def test_departed_flight(self, calculator):
        with pytest.raises(InvalidFlightException):
            await calculator.transport_options(make_flight(departure_time=NOW - timedelta(hours=1)), BANGKOK_ORIGIN)
