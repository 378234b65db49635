"""Tests for TaskRegistry."""

from unittest.mock import AsyncMock

import pytest

from mediakeeper.application.workers import TaskHandler, TaskRegistry
from mediakeeper.domain.entities import TaskType, default_definition
from mediakeeper.domain.exceptions import DuplicateEntityException


class _NoopHandler:
    async def execute(self, context):  # type: ignore[no-untyped-def]
        return None


class TestTaskRegistry:
    def test_register_and_lookup(self) -> None:
        registry = TaskRegistry()
        handler = AsyncMock()
        registry.register(default_definition(TaskType.BACKUP), handler)

        assert TaskType.BACKUP in registry
        assert len(registry) == 1
        assert registry.handler_for(TaskType.BACKUP) is handler
        assert registry.get(TaskType.BACKUP).definition.task_type == TaskType.BACKUP
        assert registry.task_types() == [TaskType.BACKUP]

    def test_unknown_type_returns_none(self) -> None:
        registry = TaskRegistry()
        assert registry.get(TaskType.CLEANUP) is None
        assert registry.handler_for(TaskType.CLEANUP) is None

    def test_register_twice_raises(self) -> None:
        registry = TaskRegistry()
        registry.register(default_definition(TaskType.BACKUP), AsyncMock())

        with pytest.raises(DuplicateEntityException):
            registry.register(default_definition(TaskType.BACKUP), AsyncMock())

        # first handler stays
        assert len(registry) == 1

    def test_handler_protocol_is_runtime_checkable(self) -> None:
        assert isinstance(_NoopHandler(), TaskHandler)
        assert not isinstance(object(), TaskHandler)
