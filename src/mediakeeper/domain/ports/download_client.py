"""Download Client Port (Interface).

Following Hexagonal Architecture (Ports & Adapters), this is a PORT in the domain
layer. The SABnzbd adapter lives in the infrastructure layer.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class DownloadState(str, Enum):
    """Normalized download state across clients."""

    QUEUED = "queued"
    DOWNLOADING = "downloading"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (DownloadState.COMPLETED, DownloadState.FAILED)


@dataclass(frozen=True)
class JobHandle:
    """What the client gives back when a release is queued."""

    job_id: str
    client: str


@dataclass(frozen=True)
class DownloadStatus:
    """One in-flight or recently finished download as reported by the client."""

    job_id: str
    title: str
    state: DownloadState
    size: int = 0
    output_path: str | None = None  # set once completed
    error: str | None = None


class IDownloadClient(ABC):
    """Interface for download client implementations.

    Implementations are stateless - they query the external service on each call.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable client name, e.g. "sabnzbd"."""
        pass

    @abstractmethod
    async def list_active(self) -> list[DownloadStatus]:
        """Queue entries plus recent history (completed/failed).

        Raises:
            TransientNetworkError: Client unreachable
            AuthenticationError: Invalid API key
        """
        pass

    @abstractmethod
    async def fetch(self, source_reference: str, name: str | None = None) -> JobHandle:
        """Queue a release for download.

        Args:
            source_reference: Opaque reference from the indexer (NZB URL)
            name: Optional job name shown in the client

        Raises:
            TransientNetworkError: Client unreachable
            AuthenticationError: Invalid API key
            CollaboratorError: Client refused the job
        """
        pass
