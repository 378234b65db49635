"""Prowlarr HTTP client - indexer search through Prowlarr's aggregated API."""

import logging
from typing import Any

import httpx

from mediakeeper.config.settings import ProwlarrSettings
from mediakeeper.domain.entities import CandidateRelease
from mediakeeper.domain.exceptions import (
    AuthenticationError,
    CollaboratorError,
    TransientNetworkError,
)
from mediakeeper.domain.ports import IIndexerClient

logger = logging.getLogger(__name__)


class ProwlarrClient(IIndexerClient):
    """HTTP client for Prowlarr search."""

    COLLABORATOR = "prowlarr"

    def __init__(self, settings: ProwlarrSettings) -> None:
        self.settings = settings
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.url,
                headers={
                    "X-Api-Key": self.settings.api_key,
                    "Accept": "application/json",
                },
                timeout=self.settings.timeout,
            )
        return self._client

    # Hey, close the client or leak connections - lifecycle.py calls this on shutdown
    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def search(self, query: str, categories: list[int]) -> list[CandidateRelease]:
        """Search all indexers configured in Prowlarr.

        Quality is left None - Prowlarr doesn't know it, the coordinator parses it from
        the title.

        Raises:
            TransientNetworkError: Prowlarr unreachable, timed out or 5xx
            AuthenticationError: 401/403 (invalid API key)
            CollaboratorError: Any other non-success response
        """
        params: dict[str, Any] = {
            "query": query,
            "type": "search",
            "limit": self.settings.search_limit,
        }
        if categories:
            params["categories"] = ",".join(str(c) for c in categories)

        client = await self._get_client()
        try:
            response = await client.get("/api/v1/search", params=params)
        except httpx.TimeoutException as e:
            raise TransientNetworkError(
                f"Prowlarr search timed out after {self.settings.timeout}s",
                collaborator=self.COLLABORATOR,
            ) from e
        except httpx.TransportError as e:
            raise TransientNetworkError(
                f"Prowlarr unreachable at {self.settings.url}: {e}",
                collaborator=self.COLLABORATOR,
            ) from e

        if response.status_code in (401, 403):
            raise AuthenticationError(
                "Prowlarr rejected the API key",
                collaborator=self.COLLABORATOR,
                http_status=response.status_code,
            )
        if response.status_code >= 500:
            raise TransientNetworkError(
                f"Prowlarr returned HTTP {response.status_code}",
                collaborator=self.COLLABORATOR,
            )
        if response.status_code != 200:
            raise CollaboratorError(
                f"Prowlarr search failed with HTTP {response.status_code}: {response.text[:200]}",
                collaborator=self.COLLABORATOR,
            )

        results = [self._to_candidate(raw) for raw in response.json()]
        candidates = [c for c in results if c is not None]
        logger.debug(f"Prowlarr: '{query}' → {len(candidates)} result(s)")
        return candidates

    @staticmethod
    def _to_candidate(raw: dict[str, Any]) -> CandidateRelease | None:
        # results without a download url can't be grabbed (torrent-only magnet entries etc.)
        download_url = raw.get("downloadUrl")
        title = raw.get("title")
        if not download_url or not title:
            return None
        return CandidateRelease(
            title=title,
            quality=None,
            size=int(raw.get("size") or 0),
            source_reference=download_url,
            indexer=raw.get("indexer"),
            guid=raw.get("guid"),
        )
