"""Tests for the SABnzbd client."""

import re
from collections.abc import AsyncIterator

import httpx
import pytest
from pytest_httpx import HTTPXMock

from mediakeeper.config.settings import SabnzbdSettings
from mediakeeper.domain.exceptions import (
    AuthenticationError,
    CollaboratorError,
    TransientNetworkError,
)
from mediakeeper.domain.ports import DownloadState, JobHandle
from mediakeeper.infrastructure.integrations.sabnzbd_client import SabnzbdClient


def _api(mode: str) -> re.Pattern[str]:
    return re.compile(rf"http://sab\.test/api\?.*mode={mode}.*")


@pytest.fixture
async def client() -> AsyncIterator[SabnzbdClient]:
    client = SabnzbdClient(
        SabnzbdSettings(url="http://sab.test", api_key="sabkey", category="movies", history_limit=10)
    )
    yield client
    await client.close()


class TestListActive:
    async def test_maps_queue_and_history(
        self, client: SabnzbdClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            url=_api("queue"),
            json={
                "queue": {
                    "slots": [
                        {"nzo_id": "nzo_a", "filename": "A.1080p", "status": "Downloading", "mb": "2"},
                        {"nzo_id": "nzo_b", "filename": "B.720p", "status": "Paused", "mb": "1"},
                        {"nzo_id": "nzo_c", "filename": "C.720p", "status": "Queued", "mb": ""},
                    ]
                }
            },
        )
        httpx_mock.add_response(
            url=_api("history"),
            json={
                "history": {
                    "slots": [
                        {
                            "nzo_id": "nzo_d",
                            "name": "D.1080p",
                            "status": "Completed",
                            "bytes": 1234,
                            "storage": "/downloads/complete/D.1080p",
                        },
                        {
                            "nzo_id": "nzo_e",
                            "name": "E.1080p",
                            "status": "Failed",
                            "bytes": 0,
                            "fail_message": "Out of retention",
                        },
                        {"nzo_id": "nzo_f", "name": "F.1080p", "status": "Extracting"},
                    ]
                }
            },
        )

        downloads = {d.job_id: d for d in await client.list_active()}

        assert downloads["nzo_a"].state == DownloadState.DOWNLOADING
        assert downloads["nzo_a"].size == 2 * 1024 * 1024
        assert downloads["nzo_b"].state == DownloadState.PAUSED
        assert downloads["nzo_c"].state == DownloadState.QUEUED
        assert downloads["nzo_c"].size == 0
        assert downloads["nzo_d"].state == DownloadState.COMPLETED
        assert downloads["nzo_d"].output_path == "/downloads/complete/D.1080p"
        assert downloads["nzo_e"].state == DownloadState.FAILED
        assert downloads["nzo_e"].error == "Out of retention"
        # post-processing is still in flight
        assert downloads["nzo_f"].state == DownloadState.DOWNLOADING

        history_request = httpx_mock.get_requests()[1]
        assert history_request.url.params["limit"] == "10"
        assert history_request.url.params["apikey"] == "sabkey"
        assert history_request.url.params["output"] == "json"

    async def test_wrong_api_key_is_authentication_error(
        self, client: SabnzbdClient, httpx_mock: HTTPXMock
    ) -> None:
        # SABnzbd answers 200 with an error field
        httpx_mock.add_response(
            url=_api("queue"), json={"status": False, "error": "API Key Incorrect"}
        )

        with pytest.raises(AuthenticationError) as exc_info:
            await client.list_active()
        assert exc_info.value.http_status == 200
        assert exc_info.value.collaborator == "sabnzbd"

    async def test_other_api_error(self, client: SabnzbdClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=_api("queue"), json={"status": False, "error": "not now"})

        with pytest.raises(CollaboratorError, match="not now"):
            await client.list_active()

    async def test_unreachable_is_transient(
        self, client: SabnzbdClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

        with pytest.raises(TransientNetworkError):
            await client.list_active()

    async def test_server_error_is_transient(
        self, client: SabnzbdClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=_api("queue"), status_code=503)

        with pytest.raises(TransientNetworkError):
            await client.list_active()


class TestFetch:
    async def test_fetch_adds_url(self, client: SabnzbdClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=_api("addurl"), json={"status": True, "nzo_ids": ["SABnzbd_nzo_xyz"]}
        )

        handle = await client.fetch("http://idx/get?id=1", "The.Matrix.1999.1080p")

        assert handle == JobHandle(job_id="SABnzbd_nzo_xyz", client="sabnzbd")
        params = httpx_mock.get_request().url.params  # type: ignore[union-attr]
        assert params["name"] == "http://idx/get?id=1"
        assert params["nzbname"] == "The.Matrix.1999.1080p"
        assert params["cat"] == "movies"

    async def test_fetch_without_job_id_fails(
        self, client: SabnzbdClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=_api("addurl"), json={"status": False, "nzo_ids": []})

        with pytest.raises(CollaboratorError, match="did not accept"):
            await client.fetch("http://idx/get?id=1")

    async def test_name(self, client: SabnzbdClient) -> None:
        assert client.name == "sabnzbd"
