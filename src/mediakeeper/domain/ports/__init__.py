"""Domain ports (interfaces) for dependency inversion."""

from abc import ABC, abstractmethod
from datetime import timedelta

from mediakeeper.domain.entities import (
    Decision,
    QualityProfile,
    TaskDefinition,
    TaskOutcome,
    TaskType,
)

# Download client / indexer / library collaborators live in their own modules
from mediakeeper.domain.ports.download_client import (
    DownloadState,
    DownloadStatus,
    IDownloadClient,
    JobHandle,
)
from mediakeeper.domain.ports.indexer import IIndexerClient
from mediakeeper.domain.ports.library import (
    ILibraryCatalog,
    ILibraryMaintenance,
    WantedItem,
)
from mediakeeper.domain.value_objects import MediaType, QualityRanking


# Hey future me, ITaskRepository is a PORT (Hexagonal Architecture)! The scheduler calls
# load_all() once at startup and save() after EVERY run/enable/disable/interval change.
# The SQLAlchemy implementation is in infrastructure/persistence/repositories.py.
class ITaskRepository(ABC):
    """Repository interface for scheduled task definitions."""

    @abstractmethod
    async def load_all(self) -> list[TaskDefinition]:
        """Load every persisted task definition."""
        pass

    @abstractmethod
    async def save(self, definition: TaskDefinition) -> None:
        """Insert or update a task definition (keyed by task type)."""
        pass


class IQualityProfileRepository(ABC):
    """Repository interface for quality profiles and rankings.

    Read-only from the decision engine's perspective.
    """

    @abstractmethod
    async def load_profile(self, profile_id: str) -> QualityProfile | None:
        """Load a profile with snapshots of its included levels."""
        pass

    @abstractmethod
    async def load_ranking(self, media_type: MediaType) -> QualityRanking:
        """Load the quality ranking of a media type."""
        pass


class IEventReporter(ABC):
    """Error/event reporting collaborator.

    Used by the scheduler after every run (and every skipped manual run) and by the
    acquisition handlers for every decision they act on.
    """

    @abstractmethod
    def report(
        self,
        task_type: TaskType,
        outcome: TaskOutcome,
        duration: timedelta | None,
        error: BaseException | None = None,
    ) -> None:
        """Report the outcome of a task run."""
        pass

    @abstractmethod
    def report_decision(self, item_id: str, decision: Decision) -> None:
        """Report a quality decision for a library item."""
        pass


__all__ = [
    "DownloadState",
    "DownloadStatus",
    "IDownloadClient",
    "IEventReporter",
    "IIndexerClient",
    "ILibraryCatalog",
    "ILibraryMaintenance",
    "IQualityProfileRepository",
    "ITaskRepository",
    "JobHandle",
    "WantedItem",
]
