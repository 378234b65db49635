"""API router initialization."""

# Hey future me, this is the MAIN API router aggregator - main.py mounts it under /api.
# Sub-routers define their own prefix (e.g. "/scheduled-tasks").

from fastapi import APIRouter

from mediakeeper.api.routers import scheduled_tasks

api_router = APIRouter()
api_router.include_router(scheduled_tasks.router)

__all__ = ["api_router", "scheduled_tasks"]
