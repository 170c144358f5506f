import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from leavetime.exceptions import (
    AirportNotFoundException,
    InvalidFlightException,
    LocationUnavailableException,
    TransportCalculationException,
)
from leavetime.schemas.airport import Airport
from leavetime.schemas.leave_time import TierConfig, TransportMode
from leavetime.services.leave_time.calculator import LeaveTimeCalculator
from leavetime.services.transport.eta_provider import TransportService

from tests.conftest import BANGKOK_ORIGIN, NOW, TOMORROW_1730, FakeEtaProvider, fixed_clock, make_flight


def at(hour: int, minute: int) -> datetime:
    return datetime(2025, 3, 2, hour, minute, tzinfo=timezone.utc)


class TestFreeTier:
    @pytest.mark.asyncio
    async def test_domestic_flight(self, calculator):
        flight = make_flight(departure="DMK", arrival="CNX")

        calculation = await calculator.calculate_leave_time(flight, BANGKOK_ORIGIN, TransportMode.CAR)

        assert calculation.leave_time == at(15, 0)
        assert calculation.airport_arrival_time == at(16, 0)
        assert calculation.airport_procedure_time == timedelta(minutes=90)
        assert calculation.transport_duration == timedelta(minutes=45)
        assert calculation.buffer_time == timedelta(minutes=15)
        assert calculation.time_until_leave == at(15, 0) - NOW
        assert calculation.total_journey_time == timedelta(minutes=150)
        assert not calculation.is_pro_calculation
        assert not calculation.is_estimated_transport
        assert calculation.calculated_at == NOW
        assert not calculation.is_time_to_leave(NOW)
        assert calculation.is_time_to_leave(at(14, 56))
        assert not calculation.is_overdue(at(14, 56))
        assert calculation.is_overdue(at(15, 1))

    @pytest.mark.asyncio
    async def test_international_flight(self, calculator):
        flight = make_flight(departure="DMK", arrival="SIN")

        calculation = await calculator.calculate_leave_time(flight, BANGKOK_ORIGIN, TransportMode.CAR)

        assert calculation.leave_time == at(13, 15)
        assert calculation.airport_procedure_time == timedelta(minutes=180)
        assert calculation.buffer_time == timedelta(minutes=30)

    @pytest.mark.asyncio
    async def test_international_never_leaves_later_than_domestic(self, calculator):
        for mode in TransportMode:
            domestic = await calculator.calculate_leave_time(make_flight(arrival="CNX"), BANGKOK_ORIGIN, mode)
            international = await calculator.calculate_leave_time(make_flight(arrival="SIN"), BANGKOK_ORIGIN, mode)
            assert international.leave_time <= domestic.leave_time

    @pytest.mark.asyncio
    async def test_free_tier_ignores_custom_buffers(self, calculator):
        free = TierConfig.free().update_custom_buffers({TransportMode.CAR: 55})

        calculation = await calculator.calculate_leave_time(
            make_flight(arrival="CNX"), BANGKOK_ORIGIN, TransportMode.CAR, free
        )

        assert calculation.buffer_time == timedelta(minutes=15)

    @pytest.mark.asyncio
    async def test_overdue_leave_time_is_negative(self, transport_service, directory, settings):
        late_clock = lambda: at(15, 30)
        calculator = LeaveTimeCalculator(transport_service, directory, settings, clock=late_clock)

        calculation = await calculator.calculate_leave_time(make_flight(arrival="CNX"), BANGKOK_ORIGIN)

        assert calculation.time_until_leave == timedelta(minutes=-30)
        assert calculation.is_overdue(at(15, 30))
        assert calculation.countdown_label(at(15, 30)) == "Depart now!"


class TestProTier:
    @pytest.mark.asyncio
    async def test_default_pro_buffer_ignores_international(self, calculator):
        pro = TierConfig.pro()

        domestic = await calculator.calculate_leave_time(make_flight(arrival="CNX"), BANGKOK_ORIGIN, tier_config=pro)
        international = await calculator.calculate_leave_time(make_flight(arrival="SIN"), BANGKOK_ORIGIN, tier_config=pro)

        assert domestic.buffer_time == international.buffer_time == timedelta(minutes=20)
        assert domestic.is_pro_calculation

    @pytest.mark.asyncio
    @pytest.mark.parametrize("custom,expected", [(45, 45), (120, 60), (-10, 0), (0, 0)])
    async def test_custom_buffer_is_clamped(self, calculator, custom, expected):
        pro = TierConfig.pro({TransportMode.TAXI: custom})

        calculation = await calculator.calculate_leave_time(
            make_flight(arrival="CNX"), BANGKOK_ORIGIN, TransportMode.TAXI, pro
        )

        assert calculation.buffer_time == timedelta(minutes=expected)

    @pytest.mark.asyncio
    async def test_custom_buffer_only_applies_to_its_mode(self, calculator):
        pro = TierConfig.pro({TransportMode.TAXI: 45})

        calculation = await calculator.calculate_leave_time(
            make_flight(arrival="CNX"), BANGKOK_ORIGIN, TransportMode.CAR, pro
        )

        assert calculation.buffer_time == timedelta(minutes=20)


class TestOptions:
    @pytest.mark.asyncio
    async def test_free_tier_returns_single_car_result(self, calculator):
        results = await calculator.calculate_leave_times_for_options(
            make_flight(), BANGKOK_ORIGIN, [TransportMode.TAXI, TransportMode.WALKING]
        )

        assert [r.transport_mode for r in results] == [TransportMode.CAR]

    @pytest.mark.asyncio
    async def test_pro_results_sorted_by_leave_time(self, directory, settings):
        provider = FakeEtaProvider(per_mode={
            TransportMode.TAXI: 40,
            TransportMode.CAR: 45,
            TransportMode.PUBLIC_TRANSIT: 70,
        })
        calculator = LeaveTimeCalculator(TransportService(provider), directory, settings, clock=fixed_clock)

        results = await calculator.calculate_leave_times_for_options(
            make_flight(), BANGKOK_ORIGIN, tier_config=TierConfig.pro()
        )

        assert [r.transport_mode for r in results] == [
            TransportMode.PUBLIC_TRANSIT,
            TransportMode.CAR,
            TransportMode.TAXI,
        ]

    @pytest.mark.asyncio
    async def test_pro_skips_failed_modes(self, directory, settings):
        provider = FakeEtaProvider(failing_modes={TransportMode.TAXI})
        service = TransportService(provider, fallback_enabled=False)
        calculator = LeaveTimeCalculator(service, directory, settings, clock=fixed_clock)

        results = await calculator.calculate_leave_times_for_options(
            make_flight(), BANGKOK_ORIGIN, tier_config=TierConfig.pro()
        )

        assert {r.transport_mode for r in results} == {TransportMode.CAR, TransportMode.PUBLIC_TRANSIT}

    @pytest.mark.asyncio
    async def test_pro_deduplicates_modes(self, calculator, eta_provider):
        results = await calculator.calculate_leave_times_for_options(
            make_flight(), BANGKOK_ORIGIN, [TransportMode.CAR, TransportMode.CAR], TierConfig.pro()
        )

        assert len(results) == 1
        assert len(eta_provider.calls) == 1

    @pytest.mark.asyncio
    async def test_pro_invalid_flight_fails_whole_request(self, calculator):
        with pytest.raises(InvalidFlightException):
            await calculator.calculate_leave_times_for_options(
                make_flight(departure_time=NOW - timedelta(hours=1)), BANGKOK_ORIGIN, tier_config=TierConfig.pro()
            )

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, directory, settings):
        class CancellingProvider(FakeEtaProvider):
            async def eta(self, origin, destination, mode):
                if mode == TransportMode.TAXI:
                    raise asyncio.CancelledError()
                return await super().eta(origin, destination, mode)

        calculator = LeaveTimeCalculator(
            TransportService(CancellingProvider()), directory, settings, clock=fixed_clock
        )

        with pytest.raises(asyncio.CancelledError):
            await calculator.calculate_leave_times_for_options(
                make_flight(), BANGKOK_ORIGIN, tier_config=TierConfig.pro()
            )


class TestErrors:
    @pytest.mark.asyncio
    async def test_past_departure(self, calculator):
        with pytest.raises(InvalidFlightException):
            await calculator.calculate_leave_time(make_flight(departure_time=NOW - timedelta(minutes=1)), BANGKOK_ORIGIN)

    @pytest.mark.asyncio
    async def test_departure_exactly_now_is_invalid(self, calculator):
        with pytest.raises(InvalidFlightException):
            await calculator.calculate_leave_time(make_flight(departure_time=NOW), BANGKOK_ORIGIN)

    @pytest.mark.asyncio
    async def test_missing_origin(self, calculator):
        with pytest.raises(LocationUnavailableException):
            await calculator.calculate_leave_time(make_flight(), None)

    @pytest.mark.asyncio
    async def test_airport_missing_from_directory(self, calculator, dmk):
        unlisted = Airport(**{**dmk.model_dump(), "code": "XXX", "name": "Unlisted"})
        flight = make_flight().model_copy(update={"departure_airport": unlisted})

        with pytest.raises(AirportNotFoundException):
            await calculator.calculate_leave_time(flight, BANGKOK_ORIGIN)

    @pytest.mark.asyncio
    async def test_transport_failure_without_fallback(self, directory, settings):
        service = TransportService(FakeEtaProvider(failing_modes={TransportMode.CAR}), fallback_enabled=False)
        calculator = LeaveTimeCalculator(service, directory, settings, clock=fixed_clock)

        with pytest.raises(TransportCalculationException):
            await calculator.calculate_leave_time(make_flight(), BANGKOK_ORIGIN)

    @pytest.mark.asyncio
    async def test_transport_failure_with_fallback_is_estimated(self, directory, settings):
        service = TransportService(FakeEtaProvider(failing_modes={TransportMode.CAR}))
        calculator = LeaveTimeCalculator(service, directory, settings, clock=fixed_clock)

        calculation = await calculator.calculate_leave_time(make_flight(), BANGKOK_ORIGIN)

        assert calculation.is_estimated_transport
        assert calculation.leave_time < TOMORROW_1730
