"""Library Ports - the catalog of movies/shows/music/books and its maintenance jobs.

Hey future me - the catalog schema is NOT ours. These interfaces are the only things
the acquisition handlers know about the library: which items want a file, what their
current file is, which releases are blacklisted and where to send
grabs/imports/rejections.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from mediakeeper.domain.entities.quality_decision import Decision
from mediakeeper.domain.entities.quality_profile import CandidateRelease, MediaFile
from mediakeeper.domain.ports.download_client import DownloadStatus, JobHandle
from mediakeeper.domain.value_objects.quality import MediaType


@dataclass(frozen=True)
class WantedItem:
    """A library item (movie, episode, album, book) as the coordinator sees it.

    current_file=None means the item has no file yet.
    """

    id: str
    media_type: MediaType
    title: str
    search_query: str
    profile_id: str
    current_file: MediaFile | None = None
    year: int | None = None
    # 'standard' or 'daily' for TV, daily shows are named by air date
    series_type: str | None = None
    # a grab for this item is still queued, downloading, paused or importing
    has_active_download: bool = False


class ILibraryCatalog(ABC):
    """Interface to the library catalog collaborator."""

    @abstractmethod
    async def list_wanted(self) -> list[WantedItem]:
        """Monitored items that are missing a file or below their profile cutoff.

        Items with a grab still in flight are listed too, flagged has_active_download.
        """
        pass

    @abstractmethod
    async def list_requested(self) -> list[WantedItem]:
        """Items a user explicitly requested that still have no file."""
        pass

    @abstractmethod
    async def get_item(self, item_id: str) -> WantedItem | None:
        """Get an item with its CURRENT file state."""
        pass

    @abstractmethod
    async def find_item_by_download(self, job_id: str) -> WantedItem | None:
        """Resolve a download client job to the item it was grabbed for.

        Returns None for unknown jobs AND for jobs already imported/rejected - the
        client keeps finished jobs in its history, so the monitor sees them every poll.
        """
        pass

    @abstractmethod
    async def record_grab(
        self, item_id: str, decision: Decision, job: JobHandle
    ) -> None:
        """Remember that a release was queued for an item."""
        pass

    @abstractmethod
    async def import_download(
        self, item_id: str, download: DownloadStatus, decision: Decision
    ) -> None:
        """Import a completed download (replacing the current file on Upgrade)."""
        pass

    @abstractmethod
    async def reject_download(
        self, item_id: str, download: DownloadStatus, decision: Decision
    ) -> None:
        """Completed download is not wanted anymore - don't import it."""
        pass

    @abstractmethod
    async def mark_download_failed(self, item_id: str, download: DownloadStatus) -> None:
        """Download client reported a failure."""
        pass

    @abstractmethod
    async def filter_blacklisted(
        self, candidates: list[CandidateRelease]
    ) -> list[CandidateRelease]:
        """Drop releases (by indexer + guid) that are on the blacklist and not expired."""
        pass

    @abstractmethod
    async def blacklist_download(
        self, item_id: str, download: DownloadStatus, reason: str
    ) -> None:
        """Blacklist the release behind a failed download so it isn't grabbed again.

        The catalog knows the release from record_grab(). Expiry and the cleanup of
        expired entries (the `cleanup` maintenance task) are the catalog's business.
        """
        pass


class ILibraryMaintenance(ABC):
    """Filesystem and housekeeping jobs - thin collaborator calls, no decisions.

    Each returns a short human-readable summary for the task event history.
    """

    @abstractmethod
    async def scan_library(self) -> str:
        pass

    @abstractmethod
    async def scan_completed_downloads(self) -> str:
        pass

    @abstractmethod
    async def cleanup(self) -> str:
        pass

    @abstractmethod
    async def backup(self) -> str:
        pass

    @abstractmethod
    async def refresh_metadata(self) -> str:
        pass
