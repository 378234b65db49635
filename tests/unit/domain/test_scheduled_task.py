"""Tests for TaskDefinition timestamp rules."""

from datetime import UTC, datetime, timedelta

import pytest

from mediakeeper.domain.entities import (
    DEFAULT_TASKS,
    TaskDefinition,
    TaskType,
    default_definition,
    default_definitions,
)
from mediakeeper.domain.exceptions import ValidationError

T0 = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)


def _definition(**overrides: object) -> TaskDefinition:
    values: dict[str, object] = {
        "task_type": TaskType.PERIODIC_INDEX_SYNC,
        "name": "Periodic Index Sync",
        "interval": timedelta(minutes=60),
    }
    values.update(overrides)
    return TaskDefinition(**values)  # type: ignore[arg-type]


class TestDefaults:
    def test_every_task_type_has_a_default(self) -> None:
        assert set(DEFAULT_TASKS) == set(TaskType)
        assert len(default_definitions()) == len(TaskType)

    def test_default_intervals(self) -> None:
        assert default_definition(TaskType.DOWNLOAD_MONITOR).interval == timedelta(minutes=1)
        assert default_definition(TaskType.PERIODIC_INDEX_SYNC).interval == timedelta(minutes=15)
        assert default_definition(TaskType.BACKUP).interval == timedelta(days=1)

    def test_defaults_are_enabled_and_never_ran(self) -> None:
        definition = default_definition(TaskType.CLEANUP)
        assert definition.enabled
        assert definition.last_run_at is None
        assert definition.next_run_at is None

    def test_interval_below_one_minute_is_invalid(self) -> None:
        with pytest.raises(ValidationError):
            _definition(interval=timedelta(seconds=30))


class TestTimestamps:
    def test_is_due_boundary(self) -> None:
        definition = _definition(next_run_at=T0)
        assert not definition.is_due(T0 - timedelta(seconds=1))
        assert definition.is_due(T0)

    def test_disabled_is_never_due(self) -> None:
        definition = _definition(enabled=False, next_run_at=T0)
        assert not definition.is_due(T0 + timedelta(days=1))

    def test_run_recorded_rebases_on_start(self) -> None:
        recorded = _definition().with_run_recorded(T0, timedelta(seconds=42))
        assert recorded.last_run_at == T0
        assert recorded.last_duration == timedelta(seconds=42)
        assert recorded.next_run_at == T0 + timedelta(minutes=60)

    def test_run_recorded_while_disabled_keeps_next_cleared(self) -> None:
        recorded = _definition(enabled=False).with_run_recorded(T0, timedelta(seconds=1))
        assert recorded.last_run_at == T0
        assert recorded.next_run_at is None

    def test_enable_schedules_from_now_without_catch_up(self) -> None:
        disabled = _definition(enabled=False, last_run_at=T0 - timedelta(days=3))
        enabled = disabled.with_enabled(T0)
        assert enabled.enabled
        assert enabled.next_run_at == T0 + timedelta(minutes=60)

    def test_disable_clears_next_run(self) -> None:
        disabled = _definition(next_run_at=T0).with_disabled()
        assert not disabled.enabled
        assert disabled.next_run_at is None

    def test_interval_change_recomputes_from_last_run(self) -> None:
        definition = _definition(last_run_at=T0, next_run_at=T0 + timedelta(minutes=60))
        changed = definition.with_interval(timedelta(minutes=15), T0 + timedelta(minutes=5))
        assert changed.next_run_at == T0 + timedelta(minutes=15)

    def test_interval_change_never_ran_uses_now(self) -> None:
        changed = _definition().with_interval(timedelta(minutes=15), T0)
        assert changed.next_run_at == T0 + timedelta(minutes=15)


class TestRecovery:
    def test_never_ran_is_due_now(self) -> None:
        recovered = _definition().recovered(T0)
        assert recovered.next_run_at == T0

    def test_last_run_in_past_fires_once(self) -> None:
        definition = _definition(interval=timedelta(minutes=30), last_run_at=T0)
        recovered = definition.recovered(T0 + timedelta(minutes=90))
        # one interval after the last run, already in the past → due on first tick
        assert recovered.next_run_at == T0 + timedelta(minutes=30)
        assert recovered.is_due(T0 + timedelta(minutes=90))

    def test_disabled_stays_unscheduled(self) -> None:
        recovered = _definition(enabled=False, last_run_at=T0).recovered(T0)
        assert recovered.next_run_at is None
