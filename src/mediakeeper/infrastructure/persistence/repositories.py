"""Repository implementations for data access."""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mediakeeper.domain.entities import QualityProfile, TaskDefinition, TaskType
from mediakeeper.domain.exceptions import PersistenceError
from mediakeeper.domain.ports import IQualityProfileRepository, ITaskRepository
from mediakeeper.domain.value_objects import (
    MediaType,
    QualityLevel,
    QualityRanking,
    default_ranking,
)
from mediakeeper.infrastructure.persistence.models import (
    QualityLevelModel,
    QualityProfileModel,
    ScheduledTaskModel,
    ensure_utc_aware,
)

logger = logging.getLogger(__name__)

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]

_MB = 1024 * 1024


def _mb_to_bytes(value: int | None) -> int | None:
    return value * _MB if value else None


def _bytes_to_mb(value: int | None) -> int | None:
    return value // _MB if value else None


# Hey future me - these repositories outlive a single request (the scheduler holds one for
# the whole process), so they take Database.session_scope instead of a session and open a
# short transaction per call. Every SQLAlchemy failure becomes PersistenceError so the
# scheduler/coordinator only deal with domain errors.
class ScheduledTaskRepository(ITaskRepository):
    """SQLAlchemy repository for scheduled task definitions."""

    def __init__(self, session_scope: SessionScope) -> None:
        self._session_scope = session_scope

    async def load_all(self) -> list[TaskDefinition]:
        try:
            async with self._session_scope() as session:
                result = await session.execute(select(ScheduledTaskModel))
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to load scheduled tasks: {e}", collaborator="database"
            ) from e

        definitions: list[TaskDefinition] = []
        for row in rows:
            try:
                definitions.append(self._to_entity(row))
            except ValueError:
                # task type removed from the enum - keep the row, don't schedule it
                logger.warning(f"Unknown task type in database: {row.task_type}")
        return definitions

    async def save(self, definition: TaskDefinition) -> None:
        try:
            async with self._session_scope() as session:
                model = await session.get(ScheduledTaskModel, definition.task_type.value)
                if model is None:
                    model = ScheduledTaskModel(task_type=definition.task_type.value)
                    session.add(model)
                model.name = definition.name
                model.interval_minutes = definition.interval_minutes
                model.enabled = definition.enabled
                model.last_run_at = definition.last_run_at
                model.next_run_at = definition.next_run_at
                model.last_duration_ms = (
                    int(definition.last_duration.total_seconds() * 1000)
                    if definition.last_duration is not None
                    else None
                )
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to save task {definition.task_type}: {e}",
                collaborator="database",
            ) from e

    @staticmethod
    def _to_entity(model: ScheduledTaskModel) -> TaskDefinition:
        return TaskDefinition(
            task_type=TaskType(model.task_type),
            name=model.name,
            interval=timedelta(minutes=model.interval_minutes),
            enabled=model.enabled,
            last_run_at=ensure_utc_aware(model.last_run_at),
            next_run_at=ensure_utc_aware(model.next_run_at),
            last_duration=(
                timedelta(milliseconds=model.last_duration_ms)
                if model.last_duration_ms is not None
                else None
            ),
        )


class QualityProfileRepository(IQualityProfileRepository):
    """SQLAlchemy repository for quality profiles and rankings."""

    def __init__(self, session_scope: SessionScope) -> None:
        self._session_scope = session_scope

    async def load_ranking(self, media_type: MediaType) -> QualityRanking:
        """Custom ranking rows, or the built-in ranking when there are none.

        Raises:
            PersistenceError: Database failure
            ConfigurationError: Stored ranking has duplicate ids/ranks
        """
        try:
            async with self._session_scope() as session:
                result = await session.execute(
                    select(QualityLevelModel).where(
                        QualityLevelModel.media_type == media_type.value
                    )
                )
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to load quality ranking for {media_type}: {e}",
                collaborator="database",
            ) from e

        if not rows:
            return default_ranking(media_type)
        return QualityRanking(
            media_type=media_type,
            levels=tuple(
                QualityLevel(id=row.level_id, name=row.name, rank=row.rank) for row in rows
            ),
        )

    async def save_ranking(self, ranking: QualityRanking) -> None:
        """Replace the stored ranking of a media type."""
        try:
            async with self._session_scope() as session:
                result = await session.execute(
                    select(QualityLevelModel).where(
                        QualityLevelModel.media_type == ranking.media_type.value
                    )
                )
                for row in result.scalars().all():
                    await session.delete(row)
                await session.flush()
                for level in ranking.levels:
                    session.add(
                        QualityLevelModel(
                            media_type=ranking.media_type.value,
                            level_id=level.id,
                            name=level.name,
                            rank=level.rank,
                        )
                    )
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to save quality ranking for {ranking.media_type}: {e}",
                collaborator="database",
            ) from e

    async def load_profile(self, profile_id: str) -> QualityProfile | None:
        """Load a profile with its level snapshots.

        Items stored without a rank (older rows) take it from the current ranking.
        Returns None if the profile doesn't exist. Validity (cutoff in levels etc.) is
        NOT checked here - decide() does that and raises ConfigurationError.
        """
        try:
            async with self._session_scope() as session:
                model = await session.get(QualityProfileModel, profile_id)
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to load quality profile {profile_id}: {e}",
                collaborator="database",
            ) from e
        if model is None:
            return None

        media_type = MediaType.from_string(model.media_type)
        ranking: QualityRanking | None = None
        snapshots: dict[int, QualityLevel] = {}
        allowed: list[QualityLevel] = []

        for item in model.items:
            level_id = int(item["id"])
            rank = item.get("rank")
            if rank is None:
                ranking = ranking or await self.load_ranking(media_type)
                current = ranking.get(level_id)
                if current is None:
                    logger.warning(
                        f"Profile {model.name}: level {level_id} no longer exists, skipping"
                    )
                    continue
                rank = current.rank
            level = QualityLevel(id=level_id, name=str(item.get("name", level_id)), rank=int(rank))
            snapshots[level_id] = level
            if item.get("allowed", True):
                allowed.append(level)

        # a cutoff outside the allowed levels stays detectable for validate()
        cutoff = snapshots.get(model.cutoff) or QualityLevel(
            id=model.cutoff, name=str(model.cutoff), rank=-1
        )
        return QualityProfile(
            id=model.id,
            name=model.name,
            media_type=media_type,
            levels=tuple(allowed),
            cutoff=cutoff,
            upgrade_allowed=model.upgrade_allowed,
            min_size=_mb_to_bytes(model.min_size_mb),
            max_size=_mb_to_bytes(model.max_size_mb),
        )

    async def save_profile(self, profile: QualityProfile) -> None:
        """Insert or update a profile, snapshotting the ranks of its levels."""
        items: list[dict[str, Any]] = [
            {"id": level.id, "name": level.name, "rank": level.rank, "allowed": True}
            for level in profile.levels
        ]
        try:
            async with self._session_scope() as session:
                model = await session.get(QualityProfileModel, profile.id)
                if model is None:
                    model = QualityProfileModel(id=profile.id)
                    session.add(model)
                model.name = profile.name
                model.media_type = profile.media_type.value
                model.items = items
                model.cutoff = profile.cutoff.id
                model.upgrade_allowed = profile.upgrade_allowed
                model.min_size_mb = _bytes_to_mb(profile.min_size)
                model.max_size_mb = _bytes_to_mb(profile.max_size)
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to save quality profile {profile.id}: {e}",
                collaborator="database",
            ) from e
