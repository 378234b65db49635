"""Task Definition Registry - task type → (definition, handler).

Hey future me - the task types are a CLOSED set (TaskType enum), so this is plain
tagged dispatch: one handler per type, registered once at startup in lifecycle.py.
Registering the same type twice is a wiring bug and raises DuplicateEntityException
instead of silently replacing the first handler.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable

from mediakeeper.domain.entities import (
    TaskDefinition,
    TaskOutcome,
    TaskTrigger,
    TaskType,
)
from mediakeeper.domain.exceptions import DuplicateEntityException


@dataclass(frozen=True)
class TaskContext:
    """What a handler gets to know about the run it executes."""

    task_type: TaskType
    started_at: datetime
    trigger: TaskTrigger = TaskTrigger.SCHEDULED


@runtime_checkable
class TaskHandler(Protocol):
    """Single-method capability every task handler implements.

    Raise on failure - the scheduler catches, logs and reports it. Returning a
    TaskOutcome with status FAILED is also recorded as a failed run.
    """

    async def execute(self, context: TaskContext) -> TaskOutcome:
        """Run the task once."""
        ...


@dataclass(frozen=True)
class RegisteredTask:
    definition: TaskDefinition
    handler: TaskHandler


class TaskRegistry:
    """Maps every task type to its default definition and handler."""

    def __init__(self) -> None:
        self._tasks: dict[TaskType, RegisteredTask] = {}

    def register(self, definition: TaskDefinition, handler: TaskHandler) -> None:
        """Register a task type.

        Raises:
            DuplicateEntityException: Task type already has a handler
        """
        if definition.task_type in self._tasks:
            raise DuplicateEntityException("TaskHandler", definition.task_type.value)
        self._tasks[definition.task_type] = RegisteredTask(definition, handler)

    def get(self, task_type: TaskType) -> RegisteredTask | None:
        return self._tasks.get(task_type)

    def handler_for(self, task_type: TaskType) -> TaskHandler | None:
        registered = self._tasks.get(task_type)
        return registered.handler if registered else None

    def task_types(self) -> list[TaskType]:
        return list(self._tasks)

    def __contains__(self, task_type: object) -> bool:
        return task_type in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)
