"""
FastAPI dependencies.
"""
from typing import Optional

from fastapi import HTTPException, Request

from leavetime.schemas.flight import Flight
from leavetime.services.container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(status_code=503, detail="Services not initialized")
    return container


async def resolve_flight(container: ServiceContainer, flight: Optional[Flight]) -> Flight:
    """Explicit flight, else the current snapshot flight"""
    if flight is not None:
        return flight
    current = await container.store.load()
    if current is None:
        raise HTTPException(status_code=404, detail="No current flight. Sync a calendar or add a demo flight.")
    return current
