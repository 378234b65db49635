"""Tests for the scheduled task endpoints."""

from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from mediakeeper.api.exception_handlers import register_exception_handlers
from mediakeeper.api.routers import api_router
from mediakeeper.application.workers import TaskScheduler
from mediakeeper.domain.entities import (
    DecisionReason,
    KeepCurrent,
    TaskDefinition,
    TaskOutcome,
    TaskType,
)
from mediakeeper.domain.ports import ITaskRepository
from mediakeeper.infrastructure.observability import LoggingEventReporter

LATER = datetime.now(UTC) + timedelta(hours=6)


def _app() -> FastAPI:
    # plain app without the lifespan, state is wired by hand
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")
    return app


@pytest.fixture
def reporter() -> LoggingEventReporter:
    return LoggingEventReporter()


@pytest.fixture
def handler() -> AsyncMock:
    mock = AsyncMock()
    mock.execute.return_value = TaskOutcome.success("ok")
    return mock


@pytest.fixture
def scheduler(reporter: LoggingEventReporter, handler: AsyncMock) -> TaskScheduler:
    repo = AsyncMock(spec=ITaskRepository)
    repo.load_all.return_value = []
    scheduler = TaskScheduler(task_repository=repo, event_reporter=reporter)
    scheduler.register(
        TaskDefinition(
            task_type=TaskType.BACKUP,
            name="Backup",
            interval=timedelta(days=1),
            next_run_at=LATER,
        ),
        handler,
    )
    scheduler.register(
        TaskDefinition(
            task_type=TaskType.CLEANUP,
            name="Cleanup",
            interval=timedelta(hours=6),
            enabled=False,
        ),
        AsyncMock(),
    )
    return scheduler


@pytest.fixture
def client(scheduler: TaskScheduler, reporter: LoggingEventReporter) -> Iterator[TestClient]:
    app = _app()
    app.state.task_scheduler = scheduler
    app.state.event_reporter = reporter
    with TestClient(app) as test_client:
        yield test_client


class TestReadEndpoints:
    def test_list_tasks(self, client: TestClient) -> None:
        response = client.get("/api/scheduled-tasks")

        assert response.status_code == 200
        tasks = {t["task_type"]: t for t in response.json()}
        assert tasks["backup"]["interval_minutes"] == 1440
        assert tasks["backup"]["state"] == "idle"
        assert tasks["backup"]["enabled"] is True
        assert tasks["cleanup"]["state"] == "disabled"
        assert tasks["cleanup"]["next_run_at"] is None

    def test_get_one_task(self, client: TestClient) -> None:
        response = client.get("/api/scheduled-tasks/backup")
        assert response.status_code == 200
        assert response.json()["name"] == "Backup"

    def test_unregistered_task_is_404(self, client: TestClient) -> None:
        response = client.get("/api/scheduled-tasks/metadata-refresh")
        assert response.status_code == 404

    def test_unknown_task_type_is_422(self, client: TestClient) -> None:
        assert client.get("/api/scheduled-tasks/rss-sync").status_code == 422

    def test_events(self, client: TestClient, reporter: LoggingEventReporter) -> None:
        reporter.report(TaskType.BACKUP, TaskOutcome.success("done"), timedelta(seconds=3))
        reporter.report_decision("movie-1", KeepCurrent(DecisionReason.CUTOFF_MET))

        body = client.get("/api/scheduled-tasks/events", params={"limit": 5}).json()

        assert body["tasks"][0]["task_type"] == "backup"
        assert body["tasks"][0]["summary"] == "done"
        assert body["decisions"][0]["decision"]["reason"] == "cutoff-met"


class TestUpdateEndpoint:
    def test_disable(self, client: TestClient) -> None:
        response = client.patch("/api/scheduled-tasks/backup", json={"enabled": False})

        assert response.status_code == 200
        assert response.json()["enabled"] is False
        assert response.json()["state"] == "disabled"
        assert response.json()["next_run_at"] is None

    def test_enable_and_change_interval(self, client: TestClient) -> None:
        response = client.patch(
            "/api/scheduled-tasks/cleanup", json={"enabled": True, "interval_minutes": 30}
        )

        body = response.json()
        assert response.status_code == 200
        assert body["enabled"] is True
        assert body["interval_minutes"] == 30
        assert body["next_run_at"] is not None

    def test_interval_below_one_minute_is_rejected(self, client: TestClient) -> None:
        response = client.patch("/api/scheduled-tasks/backup", json={"interval_minutes": 0})
        assert response.status_code == 422


class TestRunEndpoint:
    def test_run_now_starts_task(self, client: TestClient, handler: AsyncMock) -> None:
        response = client.post("/api/scheduled-tasks/backup/run")

        assert response.status_code == 202
        assert response.json() == {
            "task_type": "backup",
            "started": True,
            "message": "Task started",
        }

    def test_run_disabled_task_is_not_started(self, client: TestClient) -> None:
        response = client.post("/api/scheduled-tasks/cleanup/run")

        assert response.status_code == 202
        assert response.json()["started"] is False


class TestHealthEndpoint:
    def test_healthy(self, client: TestClient) -> None:
        response = client.get("/api/scheduled-tasks/health")
        assert response.status_code == 200
        assert response.json() == {"healthy": True, "running": False, "stuck_tasks": []}

    def test_stuck_run_is_503(self, reporter: LoggingEventReporter) -> None:
        stuck = MagicMock()
        stuck.task_type = TaskType.BACKUP
        stuck.stuck = True
        scheduler = MagicMock(spec=TaskScheduler)
        scheduler.snapshots.return_value = [stuck]
        scheduler.is_healthy.return_value = False
        scheduler.is_running = True

        app = _app()
        app.state.task_scheduler = scheduler
        with TestClient(app) as client:
            response = client.get("/api/scheduled-tasks/health")

        assert response.status_code == 503
        assert response.json()["stuck_tasks"] == ["backup"]


def test_missing_scheduler_is_503() -> None:
    with TestClient(_app()) as client:
        assert client.get("/api/scheduled-tasks").status_code == 503
