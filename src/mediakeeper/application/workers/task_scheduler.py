# Hey future me - DAS ist der Scheduler für ALLE wiederkehrenden Tasks!
#
# PROBLEM: eight heterogeneous jobs (index sync every 15 min, download monitor every
# minute, backup once a day, ...) must run on their own cadence, never overlap with
# themselves, never block each other, and survive restarts without replaying a night of
# missed runs.
#
# LÖSUNG:
# - One _TaskCell per task type: definition + run state + its OWN asyncio.Lock. There is
#   no global lock - a slow backup never makes the download monitor wait.
# - tick(now) only looks at timestamps and starts due tasks as independent asyncio tasks.
#   It NEVER awaits a handler.
# - cell.lock is never held across an await. Saves go through a second per-cell lock
#   (persist_lock) AFTER the state lock is released, so a hanging database write can't
#   stall tick() for the tasks behind it. Saves of one cell stay in order and always
#   write the latest definition.
# - Completion (success OR failure) records last_run_at = start, last_duration and
#   next_run_at = start + interval, persists and reports. Handler exceptions are caught
#   here and nowhere else, so one broken task can't kill the polling loop.
# - load(now) restores persisted timestamps: never ran → due now, otherwise
#   last_run_at + interval (if that's in the past the task fires ONCE on the next tick).
#
# STATES: IDLE → DUE → RUNNING → IDLE, DISABLED from IDLE/DUE. DUE is not stored, it's
# "enabled and next_run_at <= now" at the time you look.
#
# USAGE:
#   scheduler = TaskScheduler(task_repository=repo, event_reporter=reporter)
#   scheduler.register(default_definition(TaskType.BACKUP), backup_handler)
#   await scheduler.load()
#   await scheduler.start()
#   ...
#   await scheduler.stop()
"""Recurring task scheduler with per-task isolation and restart recovery."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from mediakeeper.application.workers.task_registry import (
    TaskContext,
    TaskHandler,
    TaskRegistry,
)
from mediakeeper.domain.entities import (
    TaskDefinition,
    TaskOutcome,
    TaskRunState,
    TaskRunStatus,
    TaskTrigger,
    TaskType,
)
from mediakeeper.domain.exceptions import ConcurrencyViolation, EntityNotFoundException
from mediakeeper.domain.ports import IEventReporter, ITaskRepository
from mediakeeper.infrastructure.observability.logging import set_correlation_id

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class _TaskCell:
    """Isolated state of one task. Only touched while holding its lock."""

    definition: TaskDefinition
    handler: TaskHandler
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    persist_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    running: bool = False
    running_since: datetime | None = None
    run_task: asyncio.Task[None] | None = None
    last_status: TaskRunStatus | None = None
    last_error: str | None = None


@dataclass(frozen=True)
class TaskSnapshot:
    """Read-only view of one task for status endpoints."""

    task_type: TaskType
    name: str
    interval: timedelta
    enabled: bool
    state: TaskRunState
    last_run_at: datetime | None
    next_run_at: datetime | None
    last_duration: timedelta | None
    running_since: datetime | None
    stuck: bool
    last_status: TaskRunStatus | None
    last_error: str | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_type": self.task_type.value,
            "name": self.name,
            "interval_minutes": int(self.interval.total_seconds() // 60),
            "enabled": self.enabled,
            "state": self.state.value,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "next_run_at": self.next_run_at.isoformat() if self.next_run_at else None,
            "last_duration_seconds": (
                self.last_duration.total_seconds() if self.last_duration else None
            ),
            "running_since": (
                self.running_since.isoformat() if self.running_since else None
            ),
            "stuck": self.stuck,
            "last_status": self.last_status.value if self.last_status else None,
            "last_error": self.last_error,
        }


class TaskScheduler:
    """Drives every registered task on its own interval."""

    def __init__(
        self,
        task_repository: ITaskRepository | None,
        event_reporter: IEventReporter,
        registry: TaskRegistry | None = None,
        poll_interval_seconds: float = 60.0,
        stuck_threshold: timedelta = timedelta(minutes=120),
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize scheduler.

        Args:
            task_repository: Persistence for definitions (None = in-memory only)
            event_reporter: Receives every run outcome
            registry: Handler registry (a fresh one if omitted)
            poll_interval_seconds: How often the loop calls tick()
            stuck_threshold: Runs longer than max(interval, threshold) count as stuck
            clock: Source of "now" for run_now/enable/set_interval and the loop
        """
        self._repository = task_repository
        self._reporter = event_reporter
        self._registry = registry or TaskRegistry()
        self._poll_interval = poll_interval_seconds
        self._stuck_threshold = stuck_threshold
        self._clock = clock

        self._cells: dict[TaskType, _TaskCell] = {}
        self._running = False
        self._loop_task: asyncio.Task[None] | None = None
        self._stats: dict[str, Any] = {
            "ticks": 0,
            "runs_started": 0,
            "runs_succeeded": 0,
            "runs_failed": 0,
            "runs_skipped": 0,
            "last_tick_at": None,
        }

    # =========================================================================
    # Registration & restart recovery
    # =========================================================================

    def register(self, definition: TaskDefinition, handler: TaskHandler) -> None:
        """Register a task type with its handler.

        The definition is scheduled right away (never ran → due now). load() later
        replaces it with the persisted state.

        Raises:
            DuplicateEntityException: Task type already registered
        """
        self._registry.register(definition, handler)
        if definition.next_run_at is None:
            definition = definition.recovered(self._clock())
        self._cells[definition.task_type] = _TaskCell(definition=definition, handler=handler)
        logger.debug(
            f"Registered task {definition.task_type} "
            f"(every {definition.interval_minutes} min, enabled={definition.enabled})"
        )

    async def load(self, now: datetime | None = None) -> None:
        """Restore persisted definitions after a process start.

        Persisted interval/enabled/last run win over the registered defaults.
        Definitions only registered (fresh install, new task type) are persisted.

        Raises:
            PersistenceError: Repository failed - startup should fail loudly
        """
        now = now or self._clock()
        persisted: dict[TaskType, TaskDefinition] = {}
        if self._repository is not None:
            for definition in await self._repository.load_all():
                if definition.task_type not in self._cells:
                    logger.warning(
                        f"Persisted task {definition.task_type} has no handler, ignoring"
                    )
                    continue
                persisted[definition.task_type] = definition

        for task_type, cell in self._cells.items():
            async with cell.lock:
                stored = persisted.get(task_type)
                base = stored if stored is not None else cell.definition
                cell.definition = base.recovered(now)
            await self._persist_cell(cell)

        due = [t.value for t, c in self._cells.items() if c.definition.is_due(now)]
        logger.info(
            f"📅 Loaded {len(self._cells)} scheduled tasks "
            f"({len(persisted)} persisted, due now: {', '.join(due) or 'none'})"
        )

    # =========================================================================
    # Polling
    # =========================================================================

    async def tick(self, now: datetime) -> list[TaskType]:
        """Start every enabled, due, non-running task.

        Returns immediately after starting the handlers - it never waits for one.
        A task that is still running is skipped and NOT requeued, it runs again at its
        next due time (which may already have passed → next tick after it finishes).

        Returns:
            Task types that were started by this tick
        """
        started: list[TaskType] = []
        for task_type, cell in self._cells.items():
            async with cell.lock:
                if cell.running or not cell.definition.is_due(now):
                    continue
                self._start_run(cell, now, TaskTrigger.SCHEDULED)
                started.append(task_type)

        self._stats["ticks"] += 1
        self._stats["last_tick_at"] = now.isoformat()
        if started:
            logger.debug(f"Tick started: {', '.join(t.value for t in started)}")
        return started

    async def run_now(self, task_type: TaskType) -> bool:
        """Trigger a task immediately, outside its cadence.

        Same at-most-one guard as tick(). A running (or disabled) task is a no-op that
        gets reported as skipped - this never raises ConcurrencyViolation.

        Returns:
            True if a run was started

        Raises:
            EntityNotFoundException: Task type not registered
        """
        cell = self._get_cell(task_type)
        now = self._clock()
        skip_reason: str | None = None
        error: BaseException | None = None

        async with cell.lock:
            if cell.running:
                error = ConcurrencyViolation(task_type.value)
                skip_reason = str(error)
            elif not cell.definition.enabled:
                skip_reason = f"Task {task_type} is disabled"
            else:
                self._start_run(cell, now, TaskTrigger.MANUAL)

        if skip_reason is not None:
            self._stats["runs_skipped"] += 1
            self._reporter.report(task_type, TaskOutcome.skipped(skip_reason), None, error)
            return False

        logger.info(f"▶️  Manual run of {task_type} started")
        return True

    def _start_run(self, cell: _TaskCell, started_at: datetime, trigger: TaskTrigger) -> None:
        # caller holds cell.lock
        cell.running = True
        cell.running_since = started_at
        cell.run_task = asyncio.create_task(
            self._execute(cell, started_at, trigger),
            name=f"task-{cell.definition.task_type.value}",
        )
        self._stats["runs_started"] += 1

    async def _execute(
        self, cell: _TaskCell, started_at: datetime, trigger: TaskTrigger
    ) -> None:
        task_type = cell.definition.task_type
        set_correlation_id()
        context = TaskContext(task_type=task_type, started_at=started_at, trigger=trigger)

        error: Exception | None = None
        t0 = time.monotonic()
        try:
            outcome = await cell.handler.execute(context)
        except Exception as e:
            # Hey future me - the ONLY place handler failures are caught. The task still
            # gets its timestamps updated below and retries at its next interval.
            error = e
            outcome = TaskOutcome.failed(str(e))
            logger.error(f"❌ Task {task_type} failed: {e}", exc_info=True)
        duration = timedelta(seconds=time.monotonic() - t0)

        async with cell.lock:
            cell.definition = cell.definition.with_run_recorded(started_at, duration)
            cell.running = False
            cell.running_since = None
            cell.run_task = None
            cell.last_status = outcome.status
            if error is not None:
                cell.last_error = str(error)
            elif outcome.status == TaskRunStatus.FAILED:
                cell.last_error = outcome.summary
            else:
                cell.last_error = None
        await self._persist_cell(cell)

        if outcome.status == TaskRunStatus.FAILED:
            self._stats["runs_failed"] += 1
        else:
            self._stats["runs_succeeded"] += 1
        self._reporter.report(task_type, outcome, duration, error)

    async def _persist_cell(self, cell: _TaskCell) -> None:
        # caller must NOT hold cell.lock
        async with cell.persist_lock:
            await self._persist(cell.definition)

    async def _persist(self, definition: TaskDefinition) -> None:
        if self._repository is None:
            return
        try:
            await self._repository.save(definition)
        except Exception as e:
            # in-memory state stays authoritative, next save retries
            logger.error(
                f"Failed to persist task {definition.task_type}: {e}", exc_info=True
            )

    # =========================================================================
    # Runtime mutation
    # =========================================================================

    async def enable(self, task_type: TaskType) -> TaskDefinition:
        """Enable a task. next_run_at = now + interval, missed runs are not caught up."""
        cell = self._get_cell(task_type)
        async with cell.lock:
            changed = not cell.definition.enabled
            if changed:
                cell.definition = cell.definition.with_enabled(self._clock())
            definition = cell.definition
        if changed:
            await self._persist_cell(cell)
            logger.info(f"Task {task_type} enabled")
        return definition

    async def disable(self, task_type: TaskType) -> TaskDefinition:
        """Disable a task. A running handler finishes, the task is not rescheduled."""
        cell = self._get_cell(task_type)
        async with cell.lock:
            changed = cell.definition.enabled
            if changed:
                cell.definition = cell.definition.with_disabled()
            definition = cell.definition
        if changed:
            await self._persist_cell(cell)
            logger.info(f"Task {task_type} disabled")
        return definition

    async def set_interval(self, task_type: TaskType, interval: timedelta) -> TaskDefinition:
        """Change a task's interval and recompute next_run_at from its last run.

        Raises:
            ValidationError: Interval below one minute
        """
        cell = self._get_cell(task_type)
        async with cell.lock:
            cell.definition = cell.definition.with_interval(interval, self._clock())
            definition = cell.definition
        await self._persist_cell(cell)
        logger.info(f"Task {task_type} interval set to {definition.interval_minutes} min")
        return definition

    # =========================================================================
    # Loop driver
    # =========================================================================

    async def start(self) -> None:
        """Start the polling loop. Safe to call multiple times (idempotent)."""
        if self._running:
            logger.warning("Task scheduler is already running")
            return
        self._running = True
        self._loop_task = asyncio.create_task(self._run_loop(), name="task-scheduler")
        logger.info(
            f"🚀 Task scheduler started ({len(self._cells)} tasks, "
            f"polling every {self._poll_interval}s)"
        )

    async def stop(self) -> None:
        """Stop polling and abandon in-flight handlers.

        Abandoned runs are NOT recorded - after the restart they're due again based on
        the last completed run.
        """
        self._running = False
        if self._loop_task:
            self._loop_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._loop_task
            self._loop_task = None

        in_flight = [c.run_task for c in self._cells.values() if c.run_task is not None]
        for task in in_flight:
            task.cancel()
        if in_flight:
            await asyncio.gather(*in_flight, return_exceptions=True)
            logger.info(f"Abandoned {len(in_flight)} in-flight task run(s)")
        for cell in self._cells.values():
            cell.running = False
            cell.running_since = None
            cell.run_task = None
        logger.info("🛑 Task scheduler stopped")

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self.tick(self._clock())
            except Exception as e:
                logger.error(f"Error in task scheduler loop: {e}", exc_info=True)

            try:
                await asyncio.sleep(self._poll_interval)
            except asyncio.CancelledError:
                break

    async def wait_idle(self) -> None:
        """Wait until every currently running handler has finished (tests, shutdown)."""
        in_flight = [c.run_task for c in self._cells.values() if c.run_task is not None]
        if in_flight:
            await asyncio.gather(*in_flight, return_exceptions=True)

    # =========================================================================
    # Observability
    # =========================================================================

    def snapshot(self, task_type: TaskType, now: datetime | None = None) -> TaskSnapshot:
        """Current view of one task.

        Raises:
            EntityNotFoundException: Task type not registered
        """
        return self._snapshot(self._get_cell(task_type), now or self._clock())

    def snapshots(self, now: datetime | None = None) -> list[TaskSnapshot]:
        now = now or self._clock()
        return [self._snapshot(cell, now) for cell in self._cells.values()]

    def _snapshot(self, cell: _TaskCell, now: datetime) -> TaskSnapshot:
        # lock-free read: asyncio is single threaded and we only read attributes
        definition = cell.definition
        if cell.running:
            state = TaskRunState.RUNNING
        elif not definition.enabled:
            state = TaskRunState.DISABLED
        elif definition.is_due(now):
            state = TaskRunState.DUE
        else:
            state = TaskRunState.IDLE

        return TaskSnapshot(
            task_type=definition.task_type,
            name=definition.name,
            interval=definition.interval,
            enabled=definition.enabled,
            state=state,
            last_run_at=definition.last_run_at,
            next_run_at=definition.next_run_at,
            last_duration=definition.last_duration,
            running_since=cell.running_since,
            stuck=self._is_stuck(cell, now),
            last_status=cell.last_status,
            last_error=cell.last_error,
        )

    def _is_stuck(self, cell: _TaskCell, now: datetime) -> bool:
        # Hey future me - the scheduler never kills a handler, it only SHOWS one that
        # hangs. Handlers own their timeouts.
        if not cell.running or cell.running_since is None:
            return False
        limit = max(cell.definition.interval, self._stuck_threshold)
        return now - cell.running_since > limit

    def is_healthy(self, now: datetime | None = None) -> bool:
        """False while any task run looks stuck."""
        now = now or self._clock()
        return not any(self._is_stuck(cell, now) for cell in self._cells.values())

    def get_status(self) -> dict[str, Any]:
        """Get scheduler status for monitoring/UI."""
        now = self._clock()
        return {
            "name": "Task Scheduler",
            "running": self._running,
            "status": "active" if self._running else "stopped",
            "healthy": self.is_healthy(now),
            "poll_interval_seconds": self._poll_interval,
            "tasks": [snap.to_dict() for snap in self.snapshots(now)],
            "stats": self._stats.copy(),
        }

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def registry(self) -> TaskRegistry:
        return self._registry

    def _get_cell(self, task_type: TaskType) -> _TaskCell:
        cell = self._cells.get(task_type)
        if cell is None:
            raise EntityNotFoundException("ScheduledTask", task_type.value)
        return cell
