"""
Leave-time endpoints.
"""
from typing import List

from fastapi import APIRouter, Depends

from leavetime.api.dependencies import get_container, resolve_flight
from leavetime.schemas.api import (
    LeaveTimeOptionsRequest,
    LeaveTimeRequest,
    TransportOptionsResponse,
    TransportRequest,
)
from leavetime.schemas.leave_time import LeaveTimeCalculation, best_option
from leavetime.services.container import ServiceContainer

router = APIRouter()


@router.post("", response_model=LeaveTimeCalculation)
async def calculate_leave_time(
    request: LeaveTimeRequest,
    container: ServiceContainer = Depends(get_container)
):
    """
    When to leave for one transport mode.
    Uses the current flight when the body has none.
    """
    flight = await resolve_flight(container, request.flight)
    return await container.calculator.calculate_leave_time(
        flight, request.origin, request.mode, request.tier_config
    )


@router.post("/options", response_model=List[LeaveTimeCalculation])
async def calculate_leave_time_options(
    request: LeaveTimeOptionsRequest,
    container: ServiceContainer = Depends(get_container)
):
    """
    Compare transport modes (pro tier). Free tier gets a single car result.
    """
    flight = await resolve_flight(container, request.flight)
    return await container.calculator.calculate_leave_times_for_options(
        flight, request.origin, request.modes, request.tier_config
    )


@router.post("/transport", response_model=TransportOptionsResponse)
async def get_transport_options(
    request: TransportRequest,
    container: ServiceContainer = Depends(get_container)
):
    """
    Ways to get to the airport with ETA, cost and app deep links.

    - Without ``modes``: the recommended car option only
    - With ``modes``: every mode in priority order (available, fastest,
      most reliable); modes without an ETA are listed as unavailable
    """
    flight = await resolve_flight(container, request.flight)
    calculator = container.calculator

    if not request.modes:
        option = await calculator.recommend_transport(flight, request.origin)
        return TransportOptionsResponse(recommended=option, options=[option])

    options = await calculator.transport_options(flight, request.origin, request.modes)
    return TransportOptionsResponse(recommended=best_option(options), options=options)
