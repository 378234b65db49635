"""Logging event reporter - IEventReporter that writes to the log and keeps a short history.

Hey future me - failed runs are visible HERE (and in last_duration), never by the scheduler
halting. The history is a bounded deque so the API can show "what happened recently"
without a database table. It is in-memory only; restart clears it.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from mediakeeper.domain.entities import Decision, TaskOutcome, TaskRunStatus, TaskType
from mediakeeper.domain.ports import IEventReporter
from mediakeeper.infrastructure.observability.logging import get_correlation_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskEvent:
    """One reported task run."""

    task_type: str
    status: str
    summary: str
    duration_seconds: float | None
    error: str | None
    correlation_id: str
    reported_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class DecisionEvent:
    """One reported quality decision."""

    item_id: str
    decision: dict[str, str | None]
    correlation_id: str
    reported_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class LoggingEventReporter(IEventReporter):
    """Reports task runs and decisions via logging."""

    def __init__(self, history_size: int = 200) -> None:
        self._task_events: deque[TaskEvent] = deque(maxlen=history_size)
        self._decision_events: deque[DecisionEvent] = deque(maxlen=history_size)

    def report(
        self,
        task_type: TaskType,
        outcome: TaskOutcome,
        duration: timedelta | None,
        error: BaseException | None = None,
    ) -> None:
        seconds = duration.total_seconds() if duration is not None else None
        event = TaskEvent(
            task_type=task_type.value,
            status=outcome.status.value,
            summary=outcome.summary,
            duration_seconds=seconds,
            error=f"{error.__class__.__name__}: {error}" if error else None,
            correlation_id=get_correlation_id(),
        )
        self._task_events.append(event)

        extra = {"task_type": event.task_type, "status": event.status, "duration": seconds}
        if outcome.status == TaskRunStatus.FAILED:
            logger.error(
                f"❌ Task {task_type} failed after {seconds or 0:.2f}s: "
                f"{event.error or outcome.summary}",
                extra=extra,
            )
        elif outcome.status == TaskRunStatus.SKIPPED:
            logger.info(f"⏭️  Task {task_type} skipped: {outcome.summary}", extra=extra)
        else:
            logger.info(
                f"✅ Task {task_type} finished in {seconds or 0:.2f}s"
                + (f" - {outcome.summary}" if outcome.summary else ""),
                extra=extra,
            )

    def report_decision(self, item_id: str, decision: Decision) -> None:
        payload = decision.to_dict()
        self._decision_events.append(
            DecisionEvent(
                item_id=item_id, decision=payload, correlation_id=get_correlation_id()
            )
        )
        logger.info(
            f"Decision for {item_id}: {payload['kind']}",
            extra={"item_id": item_id, **payload},
        )

    def recent_task_events(self, limit: int | None = None) -> list[dict[str, Any]]:
        """Newest first."""
        events = list(reversed(self._task_events))
        if limit is not None:
            events = events[:limit]
        return [asdict(event) for event in events]

    def recent_decisions(self, limit: int | None = None) -> list[dict[str, Any]]:
        """Newest first."""
        events = list(reversed(self._decision_events))
        if limit is not None:
            events = events[:limit]
        return [asdict(event) for event in events]
