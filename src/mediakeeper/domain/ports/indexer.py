"""Indexer Port (Interface) - search releases on a Prowlarr-style indexer aggregator."""

from abc import ABC, abstractmethod

from mediakeeper.domain.entities.quality_profile import CandidateRelease


class IIndexerClient(ABC):
    """Interface for indexer search.

    Implementations return candidates with whatever quality they can tell (usually
    None - the coordinator fills it from the title). They must NOT swallow failures:
    network problems raise TransientNetworkError, rejected credentials raise
    AuthenticationError, so the scheduler records a failed run.
    """

    @abstractmethod
    async def search(self, query: str, categories: list[int]) -> list[CandidateRelease]:
        """Search all configured indexers.

        Args:
            query: Free-text search query (e.g. "The Matrix 1999")
            categories: Newznab category ids to restrict the search to

        Returns:
            Candidate releases (possibly empty)

        Raises:
            TransientNetworkError: Indexer unreachable or timed out
            AuthenticationError: Invalid API key
        """
        pass
