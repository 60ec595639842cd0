from fastapi import APIRouter
from app.api.v1.endpoints import timesheet, presence

api_router = APIRouter()

# Register routes
api_router.include_router(timesheet.router, prefix="/timesheet", tags=["Timesheet"])
api_router.include_router(presence.router, prefix="/presence", tags=["Presence"])
