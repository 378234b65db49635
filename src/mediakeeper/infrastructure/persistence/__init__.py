"""Persistence layer - SQLAlchemy models, session management and repositories."""

from mediakeeper.infrastructure.persistence.database import Database
from mediakeeper.infrastructure.persistence.repositories import (
    QualityProfileRepository,
    ScheduledTaskRepository,
)

__all__ = ["Database", "QualityProfileRepository", "ScheduledTaskRepository"]
