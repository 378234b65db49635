"""Dependency injection for API endpoints."""

from typing import cast

from fastapi import HTTPException, Request

from mediakeeper.application.workers import TaskScheduler
from mediakeeper.infrastructure.observability import LoggingEventReporter


# Hey future me, the scheduler is created in lifecycle.py and attached to app.state. If it
# isn't there, startup failed or hasn't finished - 503, not 500.
def get_task_scheduler(request: Request) -> TaskScheduler:
    """Get the task scheduler from app state.

    Raises:
        HTTPException: 503 if scheduler not initialized
    """
    if not hasattr(request.app.state, "task_scheduler"):
        raise HTTPException(status_code=503, detail="Task scheduler not initialized")
    return cast(TaskScheduler, request.app.state.task_scheduler)


def get_event_reporter(request: Request) -> LoggingEventReporter:
    """Get the event reporter from app state.

    Raises:
        HTTPException: 503 if reporter not initialized
    """
    if not hasattr(request.app.state, "event_reporter"):
        raise HTTPException(status_code=503, detail="Event reporter not initialized")
    return cast(LoggingEventReporter, request.app.state.event_reporter)
