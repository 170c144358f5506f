"""
Synchronization endpoints.
Manage calendar flight synchronization and the connected sources.
"""
from fastapi import APIRouter, Depends, HTTPException

from leavetime.api.dependencies import get_container
from leavetime.schemas.source import SourceStatusResponse
from leavetime.services.container import ServiceContainer

router = APIRouter()


@router.post("/trigger")
async def trigger_manual_sync(container: ServiceContainer = Depends(get_container)):
    """
    Manually trigger flight synchronization.
    Works without the background scheduler.
    """
    if container.scheduler is not None:
        return await container.scheduler.trigger_manual_sync()
    return {"trigger": "manual", **(await container.sync_service.sync())}


@router.get("/status")
async def get_sync_status(container: ServiceContainer = Depends(get_container)):
    """
    Get synchronization scheduler status.
    """
    if container.scheduler is None:
        return {
            "running": False,
            "next_run": None,
            "status_message": container.coordinator.status_message()
        }

    return {
        **container.scheduler.get_status(),
        "status_message": container.coordinator.status_message()
    }


@router.patch("/interval/{minutes}")
async def update_sync_interval(
    minutes: int,
    container: ServiceContainer = Depends(get_container)
):
    """
    Update synchronization interval.
    """
    if minutes < 1 or minutes > 60:
        raise HTTPException(
            status_code=400,
            detail="Interval must be between 1 and 60 minutes"
        )

    if container.scheduler is None:
        raise HTTPException(status_code=503, detail="Scheduler not initialized")

    container.scheduler.update_interval(minutes)

    return {
        "message": "Sync interval updated",
        "new_interval_minutes": minutes,
        "next_run": container.scheduler.get_next_run_time()
    }


@router.get("/sources", response_model=SourceStatusResponse)
async def list_sources(container: ServiceContainer = Depends(get_container)):
    coordinator = container.coordinator
    return SourceStatusResponse(
        sources=coordinator.available_sources,
        has_available_source=coordinator.has_available_source,
        status_message=coordinator.status_message(),
        last_refreshed_at=coordinator.last_refreshed_at
    )


@router.delete("/sources")
async def disconnect_sources(container: ServiceContainer = Depends(get_container)):
    """
    Disconnect every calendar source. Destructive: sources need to be
    re-authorized before they are used again.
    """
    await container.coordinator.disconnect_all()
    return {"message": "All sources disconnected"}
