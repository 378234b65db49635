"""Scheduled Task Entity - one recurring job of the library.

Hey future me - the task TYPE is the identity! There's exactly one definition (and one
handler) per type, definitions are never deleted, only disabled.

STATE MACHINE:
    IDLE → DUE → RUNNING → IDLE (loop)
    IDLE/DUE → DISABLED → IDLE (re-enable recomputes next_run_at = now + interval,
                                missed runs are NOT caught up)

INVARIANT: next_run_at, when set, is last_run_at + interval (or now + interval when the
task never ran) at the moment it was computed. A disabled task has next_run_at = None and
is never selected. Only the mutators below touch the timestamps, so keep it that way.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum

from mediakeeper.domain.exceptions import ValidationError


class TaskType(str, Enum):
    """The closed set of recurring task types."""

    PERIODIC_INDEX_SYNC = "periodic-index-sync"
    LIBRARY_SCAN = "library-scan"
    CLEANUP = "cleanup"
    METADATA_REFRESH = "metadata-refresh"
    BACKUP = "backup"
    DOWNLOAD_MONITOR = "download-monitor"
    REQUESTED_SEARCH = "requested-search"
    COMPLETED_SCAN = "completed-scan"

    def __str__(self) -> str:
        return self.value


class TaskRunState(str, Enum):
    """Runtime state of a task inside the scheduler (never persisted)."""

    IDLE = "idle"
    DUE = "due"
    RUNNING = "running"
    DISABLED = "disabled"

    def __str__(self) -> str:
        return self.value


class TaskRunStatus(str, Enum):
    """How a single run ended."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"

    def __str__(self) -> str:
        return self.value


class TaskTrigger(str, Enum):
    """What started a run."""

    SCHEDULED = "scheduled"
    MANUAL = "manual"


@dataclass(frozen=True)
class TaskOutcome:
    """Result of one handler execution."""

    status: TaskRunStatus
    summary: str = ""

    @classmethod
    def success(cls, summary: str = "") -> "TaskOutcome":
        return cls(TaskRunStatus.SUCCESS, summary)

    @classmethod
    def failed(cls, summary: str = "") -> "TaskOutcome":
        return cls(TaskRunStatus.FAILED, summary)

    @classmethod
    def skipped(cls, summary: str = "") -> "TaskOutcome":
        return cls(TaskRunStatus.SKIPPED, summary)


MIN_INTERVAL = timedelta(minutes=1)


@dataclass(frozen=True)
class TaskDefinition:
    """Persisted schedule of one task type.

    Frozen on purpose: the scheduler swaps whole definitions under the task's lock
    instead of mutating fields from two places.
    """

    task_type: TaskType
    name: str
    interval: timedelta
    enabled: bool = True
    last_run_at: datetime | None = None
    next_run_at: datetime | None = None
    last_duration: timedelta | None = None

    def __post_init__(self) -> None:
        # minutes granularity - anything below a minute can't be honoured by a 60s tick
        if self.interval < MIN_INTERVAL:
            raise ValidationError(
                f"Interval of {self.task_type} must be at least 1 minute, got {self.interval}"
            )

    @property
    def interval_minutes(self) -> int:
        return int(self.interval.total_seconds() // 60)

    def is_due(self, now: datetime) -> bool:
        """Enabled and next_run_at has been reached."""
        return (
            self.enabled and self.next_run_at is not None and self.next_run_at <= now
        )

    # ---- mutators (return new definitions) ----

    def with_run_recorded(
        self, started_at: datetime, duration: timedelta
    ) -> TaskDefinition:
        """Record a finished run (success OR failure).

        next_run_at is computed from the run's start, so a manual run re-bases the
        regular cadence. A task disabled while running stays without next_run_at.
        """
        return replace(
            self,
            last_run_at=started_at,
            last_duration=duration,
            next_run_at=started_at + self.interval if self.enabled else None,
        )

    def with_enabled(self, now: datetime) -> TaskDefinition:
        """Enable and schedule one interval from now (no catch-up)."""
        return replace(self, enabled=True, next_run_at=now + self.interval)

    def with_disabled(self) -> TaskDefinition:
        return replace(self, enabled=False, next_run_at=None)

    def with_interval(self, interval: timedelta, now: datetime) -> TaskDefinition:
        """Change the interval and recompute next_run_at from the last run."""
        updated = replace(self, interval=interval)
        if not updated.enabled:
            return updated
        base = updated.last_run_at if updated.last_run_at is not None else now
        return replace(updated, next_run_at=base + interval)

    def recovered(self, now: datetime) -> TaskDefinition:
        """Recompute next_run_at after a process restart.

        Never ran → due now. Otherwise last_run_at + interval, which may already be in
        the past - then the task fires exactly ONCE on the first tick, we never replay
        the missed runs.
        """
        if not self.enabled:
            return replace(self, next_run_at=None)
        if self.last_run_at is None:
            return replace(self, next_run_at=now)
        return replace(self, next_run_at=self.last_run_at + self.interval)


# Hey future me - these intervals are what a fresh install starts with. Users change
# them through the API, the persisted value then wins over this table on restart.
DEFAULT_TASKS: dict[TaskType, tuple[str, int]] = {
    TaskType.DOWNLOAD_MONITOR: ("Download Monitor", 1),
    TaskType.COMPLETED_SCAN: ("Completed Download Scan", 5),
    TaskType.PERIODIC_INDEX_SYNC: ("Periodic Index Sync", 15),
    TaskType.REQUESTED_SEARCH: ("Requested Search", 60),
    TaskType.METADATA_REFRESH: ("Metadata Refresh", 720),
    TaskType.LIBRARY_SCAN: ("Library Scan", 1440),
    TaskType.BACKUP: ("Backup", 1440),
    TaskType.CLEANUP: ("Cleanup", 1440),
}


def default_definition(task_type: TaskType) -> TaskDefinition:
    """Seed definition for a task type (enabled, never run)."""
    name, minutes = DEFAULT_TASKS[task_type]
    return TaskDefinition(
        task_type=task_type, name=name, interval=timedelta(minutes=minutes)
    )


def default_definitions() -> list[TaskDefinition]:
    return [default_definition(task_type) for task_type in DEFAULT_TASKS]
