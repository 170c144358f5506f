"""
API v1 main router.
Aggregates all API endpoint routers.
"""
from fastapi import APIRouter
from leavetime.api.v1.endpoints import display, flights, leave_time, sync

api_router = APIRouter()

# Include endpoint routers
api_router.include_router(flights.router, prefix="/flights", tags=["Flights"])
api_router.include_router(leave_time.router, prefix="/leave-time", tags=["Leave Time"])
api_router.include_router(display.router, prefix="/display", tags=["Display"])
api_router.include_router(sync.router, prefix="/sync", tags=["Synchronization"])
