"""SABnzbd HTTP client - queue/history polling and NZB grabs."""

import logging
from typing import Any

import httpx

from mediakeeper.config.settings import SabnzbdSettings
from mediakeeper.domain.exceptions import (
    AuthenticationError,
    CollaboratorError,
    TransientNetworkError,
)
from mediakeeper.domain.ports import DownloadState, DownloadStatus, IDownloadClient, JobHandle

logger = logging.getLogger(__name__)

_QUEUE_STATES = {
    "Queued": DownloadState.QUEUED,
    "Grabbing": DownloadState.QUEUED,
    "Fetching": DownloadState.QUEUED,
    "Paused": DownloadState.PAUSED,
}

_HISTORY_STATES = {
    "Completed": DownloadState.COMPLETED,
    "Failed": DownloadState.FAILED,
}


class SabnzbdClient(IDownloadClient):
    """HTTP client for the SABnzbd API.

    Hey future me - SABnzbd has ONE endpoint (/api) and switches on ?mode=. The API key
    goes in the query string, and a wrong key comes back as HTTP 200 with
    {"status": false, "error": "API Key Incorrect"} - NOT a 401! See _call().
    """

    COLLABORATOR = "sabnzbd"

    def __init__(self, settings: SabnzbdSettings) -> None:
        self.settings = settings
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return self.COLLABORATOR

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.url, timeout=self.settings.timeout
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _call(self, mode: str, **params: Any) -> dict[str, Any]:
        query = {"mode": mode, "apikey": self.settings.api_key, "output": "json", **params}
        client = await self._get_client()
        try:
            response = await client.get("/api", params=query)
        except httpx.TimeoutException as e:
            raise TransientNetworkError(
                f"SABnzbd {mode} timed out after {self.settings.timeout}s",
                collaborator=self.COLLABORATOR,
            ) from e
        except httpx.TransportError as e:
            raise TransientNetworkError(
                f"SABnzbd unreachable at {self.settings.url}: {e}",
                collaborator=self.COLLABORATOR,
            ) from e

        if response.status_code in (401, 403):
            raise AuthenticationError(
                "SABnzbd rejected the API key",
                collaborator=self.COLLABORATOR,
                http_status=response.status_code,
            )
        if response.status_code >= 500:
            raise TransientNetworkError(
                f"SABnzbd returned HTTP {response.status_code}",
                collaborator=self.COLLABORATOR,
            )
        if response.status_code != 200:
            raise CollaboratorError(
                f"SABnzbd {mode} failed with HTTP {response.status_code}",
                collaborator=self.COLLABORATOR,
            )

        data: dict[str, Any] = response.json()
        error = data.get("error")
        if error and "api key" in str(error).lower():
            raise AuthenticationError(
                f"SABnzbd: {error}", collaborator=self.COLLABORATOR, http_status=200
            )
        if error:
            raise CollaboratorError(f"SABnzbd: {error}", collaborator=self.COLLABORATOR)
        return data

    async def list_active(self) -> list[DownloadStatus]:
        """Queue slots plus the last history_limit history slots."""
        queue = await self._call("queue")
        history = await self._call("history", limit=self.settings.history_limit)

        downloads = [self._from_queue_slot(slot) for slot in queue.get("queue", {}).get("slots", [])]
        downloads.extend(
            self._from_history_slot(slot)
            for slot in history.get("history", {}).get("slots", [])
        )
        return downloads

    async def fetch(self, source_reference: str, name: str | None = None) -> JobHandle:
        """Add an NZB by URL.

        Raises:
            CollaboratorError: SABnzbd didn't return a job id
        """
        params: dict[str, Any] = {"name": source_reference}
        if self.settings.category:
            params["cat"] = self.settings.category
        if name:
            params["nzbname"] = name

        data = await self._call("addurl", **params)
        nzo_ids = data.get("nzo_ids") or []
        if not data.get("status") or not nzo_ids:
            raise CollaboratorError(
                "SABnzbd did not accept the NZB", collaborator=self.COLLABORATOR
            )
        logger.info(f"SABnzbd queued '{name or source_reference}' as {nzo_ids[0]}")
        return JobHandle(job_id=nzo_ids[0], client=self.COLLABORATOR)

    @staticmethod
    def _from_queue_slot(slot: dict[str, Any]) -> DownloadStatus:
        try:
            size = int(float(slot.get("mb") or 0) * 1024 * 1024)
        except ValueError:
            size = 0
        return DownloadStatus(
            job_id=slot["nzo_id"],
            title=slot.get("filename", ""),
            state=_QUEUE_STATES.get(slot.get("status", ""), DownloadState.DOWNLOADING),
            size=size,
        )

    @staticmethod
    def _from_history_slot(slot: dict[str, Any]) -> DownloadStatus:
        # Extracting/Verifying/Repairing/Moving are post-processing - still in flight
        state = _HISTORY_STATES.get(slot.get("status", ""), DownloadState.DOWNLOADING)
        return DownloadStatus(
            job_id=slot["nzo_id"],
            title=slot.get("name", ""),
            state=state,
            size=int(slot.get("bytes") or 0),
            output_path=slot.get("storage") or None,
            error=slot.get("fail_message") or None,
        )
