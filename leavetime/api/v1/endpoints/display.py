"""
Display endpoints: current stage and precomputed timeline.
"""
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException

from leavetime.api.dependencies import get_container
from leavetime.schemas.api import DisplayRequest, DisplayStateResponse
from leavetime.schemas.display import Timeline
from leavetime.schemas.flight import ensure_utc, utc_now
from leavetime.services.container import ServiceContainer
from leavetime.services.display.flight_state import classify_urgency, state_label

router = APIRouter()


@router.post("/state", response_model=DisplayStateResponse)
async def get_display_state(
    request: DisplayRequest,
    container: ServiceContainer = Depends(get_container)
):
    engine = container.state_engine
    now = ensure_utc(request.now) if request.now else utc_now()
    calculation = request.calculation
    flight = request.flight or (calculation.flight if calculation else None) or await container.store.load()
    if flight is None:
        raise HTTPException(status_code=404, detail="No current flight")

    state = engine.classify_state(flight, calculation, now=now)
    remaining = calculation.time_until_leave_at(now) if calculation else None

    return DisplayStateResponse(
        state=state,
        label=state_label(state),
        urgency=classify_urgency(remaining),
        refresh_interval_seconds=engine.refresh_interval(state).total_seconds(),
        time_until_leave_seconds=remaining.total_seconds() if remaining is not None else None,
        countdown=calculation.countdown_label(now) if calculation else None,
        is_overdue=remaining is not None and remaining < timedelta(0)
    )


@router.post("/timeline", response_model=Timeline)
async def get_display_timeline(
    request: DisplayRequest,
    container: ServiceContainer = Depends(get_container)
):
    """
    Timeline entries for the lookahead window. With no flight at all this is
    a single empty entry.
    """
    calculation = request.calculation
    flight = request.flight or (calculation.flight if calculation else None) or await container.store.load()
    return container.state_engine.build_timeline(flight, calculation, now=request.now)
