"""Worker system - recurring task scheduling."""

from mediakeeper.application.workers.task_registry import (
    RegisteredTask,
    TaskContext,
    TaskHandler,
    TaskRegistry,
)
from mediakeeper.application.workers.task_scheduler import TaskScheduler, TaskSnapshot

__all__ = [
    "RegisteredTask",
    "TaskContext",
    "TaskHandler",
    "TaskRegistry",
    "TaskScheduler",
    "TaskSnapshot",
]
