"""
Flight endpoints.
Detection from raw events, source-backed flight lists and the current flight.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from leavetime.api.dependencies import get_container
from leavetime.schemas.api import DemoFlightRequest, FlightListResponse
from leavetime.schemas.detection import DetectionRequest, DetectionResult
from leavetime.schemas.flight import Flight
from leavetime.schemas.snapshot import FlightSnapshot
from leavetime.services.container import ServiceContainer
from leavetime.services.demo.mock_flights import generate_custom, generate_mock_flight, sample_flights

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/detect", response_model=DetectionResult)
async def detect_flights(
    request: DetectionRequest,
    container: ServiceContainer = Depends(get_container)
):
    """
    Detect flights in a batch of calendar events.

    - 403 when calendar access is denied or restricted
    - 404 when the event list is empty
    - Zero detected flights is not an error; the response carries a hint
    """
    return container.detector.scan(request.events, request.authorization)


@router.get("", response_model=FlightListResponse)
async def list_flights(
    source: Optional[str] = Query(None, description="Fetch from this source only, without fallback"),
    container: ServiceContainer = Depends(get_container)
):
    """
    Flights from the highest-priority available calendar source.
    """
    coordinator = container.coordinator
    if source:
        flights = await coordinator.fetch_flights_from(source)
        return FlightListResponse(total=len(flights), flights=flights, source=source)

    flights = await coordinator.refresh()
    return FlightListResponse(total=len(flights), flights=flights, source=coordinator.last_source)


@router.get("/current", response_model=FlightSnapshot)
async def get_current_flight(container: ServiceContainer = Depends(get_container)):
    """The flight currently shown on the display"""
    snapshot = await container.store.load_snapshot()
    if snapshot is None:
        raise HTTPException(status_code=404, detail="No current flight")
    return snapshot


@router.delete("/current")
async def clear_current_flight(container: ServiceContainer = Depends(get_container)):
    await container.store.clear()
    return {"message": "Current flight cleared"}


@router.post("/demo", response_model=FlightSnapshot)
async def add_demo_flight(
    request: Optional[DemoFlightRequest] = Body(None),
    container: ServiceContainer = Depends(get_container)
):
    """
    Store a demo flight as the current flight.
    Without a body this is AA123 from DMK tomorrow at 17:30 local time.
    """
    request = request or DemoFlightRequest()
    if request.flight_number is None and request.airport_code is None and request.hours_from_now is None:
        flight = generate_mock_flight(container.directory)
    else:
        flight = generate_custom(
            container.directory,
            flight_number=request.flight_number or "SQ456",
            airport_code=request.airport_code or "SIN",
            hours_from_now=request.hours_from_now or 24
        )
        if flight is None:
            raise HTTPException(status_code=404, detail=f"Unknown airport: {request.airport_code}")

    logger.info(f"Storing demo flight {flight.display_title}")
    return await container.store.save(flight)


@router.get("/demo/samples", response_model=List[Flight])
async def list_sample_flights(container: ServiceContainer = Depends(get_container)):
    return sample_flights(container.directory)
