# Hey future me - dieser Router ist die einzige HTTP-Oberfläche des Schedulers!
#
# GET    /scheduled-tasks               → all tasks with state, timestamps, stuck flag
# GET    /scheduled-tasks/health        → 200 healthy / 503 when a run looks stuck
# GET    /scheduled-tasks/events        → recent task runs + decisions (in-memory)
# GET    /scheduled-tasks/{type}        → one task
# PATCH  /scheduled-tasks/{type}        → enable/disable and/or change interval
# POST   /scheduled-tasks/{type}/run    → manual trigger (202, started=false if already running)
#
# Route order matters: /health and /events must be declared BEFORE /{task_type}.
"""Scheduled task API endpoints."""

from datetime import datetime, timedelta
from typing import Any

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from mediakeeper.api.dependencies import get_event_reporter, get_task_scheduler
from mediakeeper.application.workers import TaskScheduler, TaskSnapshot
from mediakeeper.domain.entities import TaskType
from mediakeeper.infrastructure.observability import LoggingEventReporter

router = APIRouter(prefix="/scheduled-tasks", tags=["Scheduled Tasks"])


class ScheduledTaskResponse(BaseModel):
    """One scheduled task."""

    task_type: TaskType
    name: str
    interval_minutes: int
    enabled: bool
    state: str = Field(description="idle, due, running or disabled")
    last_run_at: datetime | None = None
    next_run_at: datetime | None = None
    last_duration_seconds: float | None = None
    running_since: datetime | None = None
    stuck: bool = False
    last_status: str | None = None
    last_error: str | None = None

    @classmethod
    def from_snapshot(cls, snap: TaskSnapshot) -> "ScheduledTaskResponse":
        return cls(
            task_type=snap.task_type,
            name=snap.name,
            interval_minutes=int(snap.interval.total_seconds() // 60),
            enabled=snap.enabled,
            state=snap.state.value,
            last_run_at=snap.last_run_at,
            next_run_at=snap.next_run_at,
            last_duration_seconds=(
                snap.last_duration.total_seconds() if snap.last_duration else None
            ),
            running_since=snap.running_since,
            stuck=snap.stuck,
            last_status=snap.last_status.value if snap.last_status else None,
            last_error=snap.last_error,
        )


class ScheduledTaskUpdate(BaseModel):
    """Partial update - omitted fields stay unchanged."""

    enabled: bool | None = None
    interval_minutes: int | None = Field(default=None, ge=1)


class RunTaskResponse(BaseModel):
    task_type: TaskType
    started: bool
    message: str


class SchedulerHealthResponse(BaseModel):
    healthy: bool
    running: bool
    stuck_tasks: list[TaskType]


@router.get("", response_model=list[ScheduledTaskResponse])
async def list_scheduled_tasks(
    scheduler: TaskScheduler = Depends(get_task_scheduler),
) -> list[ScheduledTaskResponse]:
    """List every registered task."""
    return [ScheduledTaskResponse.from_snapshot(s) for s in scheduler.snapshots()]


@router.get("/health", response_model=SchedulerHealthResponse)
async def scheduler_health(
    scheduler: TaskScheduler = Depends(get_task_scheduler),
) -> JSONResponse:
    """Health signal: 503 while any run exceeds its stuck threshold."""
    snapshots = scheduler.snapshots()
    body = SchedulerHealthResponse(
        healthy=scheduler.is_healthy(),
        running=scheduler.is_running,
        stuck_tasks=[s.task_type for s in snapshots if s.stuck],
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK if body.healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=body.model_dump(mode="json"),
    )


@router.get("/events")
async def recent_events(
    limit: int = Query(default=50, ge=1, le=500),
    reporter: LoggingEventReporter = Depends(get_event_reporter),
) -> dict[str, Any]:
    """Most recent task runs and quality decisions, newest first."""
    return {
        "tasks": reporter.recent_task_events(limit),
        "decisions": reporter.recent_decisions(limit),
    }


@router.get("/{task_type}", response_model=ScheduledTaskResponse)
async def get_scheduled_task(
    task_type: TaskType,
    scheduler: TaskScheduler = Depends(get_task_scheduler),
) -> ScheduledTaskResponse:
    """Get one task (404 if it has no handler in this deployment)."""
    return ScheduledTaskResponse.from_snapshot(scheduler.snapshot(task_type))


@router.patch("/{task_type}", response_model=ScheduledTaskResponse)
async def update_scheduled_task(
    task_type: TaskType,
    update: ScheduledTaskUpdate,
    scheduler: TaskScheduler = Depends(get_task_scheduler),
) -> ScheduledTaskResponse:
    """Enable/disable a task and/or change its interval."""
    if update.interval_minutes is not None:
        await scheduler.set_interval(task_type, timedelta(minutes=update.interval_minutes))
    if update.enabled is True:
        await scheduler.enable(task_type)
    elif update.enabled is False:
        await scheduler.disable(task_type)
    return ScheduledTaskResponse.from_snapshot(scheduler.snapshot(task_type))


@router.post(
    "/{task_type}/run",
    response_model=RunTaskResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def run_scheduled_task(
    task_type: TaskType,
    scheduler: TaskScheduler = Depends(get_task_scheduler),
) -> RunTaskResponse:
    """Trigger a task now. Never waits for the run to finish."""
    started = await scheduler.run_now(task_type)
    return RunTaskResponse(
        task_type=task_type,
        started=started,
        message="Task started" if started else "Task is already running or disabled",
    )
