"""SQLAlchemy ORM models for mediakeeper."""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


# Hey future me - SQLite doesn't preserve timezone info! Timestamps come back naive. ALWAYS
# run DB datetimes through this before comparing with datetime.now(UTC), otherwise you get
# "can't compare offset-naive and offset-aware datetimes".
def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class ScheduledTaskModel(Base):
    """One row per task type - schedule and last run of a recurring task.

    task_type is the primary key: rows are upserted, never deleted (disable instead).
    """

    __tablename__ = "scheduled_tasks"

    task_type: Mapped[str] = mapped_column(String(50), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    interval_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_run_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    next_run_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_duration_ms: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )


# Hey future me - items is a JSON list of level SNAPSHOTS:
#   [{"id": 5, "name": "Web 1080p", "rank": 5, "allowed": true}, ...]
# The rank is stored with the profile on purpose. Re-ranking a media type later must not
# silently change what an already saved profile means - re-save the profile to pick it up.
# cutoff is a level id that must be one of the allowed items.
class QualityProfileModel(Base):
    """Quality profile of one media type."""

    __tablename__ = "quality_profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    media_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    cutoff: Mapped[int] = mapped_column(Integer, nullable=False)
    upgrade_allowed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # release size limits in MB, NULL = no limit
    min_size_mb: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_size_mb: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )


class QualityLevelModel(Base):
    """Custom quality ranking entry.

    No rows for a media type = the built-in default ranking is used.
    """

    __tablename__ = "quality_levels"
    __table_args__ = (
        UniqueConstraint("media_type", "level_id", name="uq_quality_level_id"),
        UniqueConstraint("media_type", "rank", name="uq_quality_level_rank"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    media_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    level_id: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
