"""Tests for the Prowlarr client."""

import re
from collections.abc import AsyncIterator

import httpx
import pytest
from pytest_httpx import HTTPXMock

from mediakeeper.config.settings import ProwlarrSettings
from mediakeeper.domain.exceptions import (
    AuthenticationError,
    CollaboratorError,
    TransientNetworkError,
)
from mediakeeper.infrastructure.integrations.prowlarr_client import ProwlarrClient

SEARCH_URL = re.compile(r"http://prowlarr\.test/api/v1/search(\?.*)?$")


@pytest.fixture
async def client() -> AsyncIterator[ProwlarrClient]:
    client = ProwlarrClient(
        ProwlarrSettings(url="http://prowlarr.test/", api_key="secret", search_limit=25)
    )
    yield client
    await client.close()


class TestProwlarrSearch:
    async def test_search_maps_results(self, client: ProwlarrClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=SEARCH_URL,
            json=[
                {
                    "title": "The.Matrix.1999.1080p.BluRay-GRP",
                    "size": 8_589_934_592,
                    "downloadUrl": "http://prowlarr.test/1/download?id=abc",
                    "indexer": "NZBgeek",
                    "guid": "abc",
                },
                # magnet-only result, nothing to send to SABnzbd
                {"title": "The.Matrix.1999.720p-GRP", "magnetUrl": "magnet:?xt=urn"},
            ],
        )

        results = await client.search("The Matrix 1999", [2000, 2040])

        assert len(results) == 1
        release = results[0]
        assert release.title == "The.Matrix.1999.1080p.BluRay-GRP"
        assert release.size == 8_589_934_592
        assert release.source_reference == "http://prowlarr.test/1/download?id=abc"
        assert release.indexer == "NZBgeek"
        assert release.quality is None

        request = httpx_mock.get_request()
        assert request is not None
        assert request.headers["X-Api-Key"] == "secret"
        assert request.url.params["query"] == "The Matrix 1999"
        assert request.url.params["categories"] == "2000,2040"
        assert request.url.params["limit"] == "25"

    async def test_search_without_categories(
        self, client: ProwlarrClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=SEARCH_URL, json=[])

        assert await client.search("Anything", []) == []

        request = httpx_mock.get_request()
        assert request is not None
        assert "categories" not in request.url.params

    @pytest.mark.parametrize(
        ("status_code", "expected"),
        [
            (401, AuthenticationError),
            (403, AuthenticationError),
            (502, TransientNetworkError),
            (400, CollaboratorError),
        ],
    )
    async def test_http_errors(
        self,
        client: ProwlarrClient,
        httpx_mock: HTTPXMock,
        status_code: int,
        expected: type[CollaboratorError],
    ) -> None:
        httpx_mock.add_response(url=SEARCH_URL, status_code=status_code, text="nope")

        with pytest.raises(CollaboratorError) as exc_info:
            await client.search("x", [])

        assert type(exc_info.value) is expected
        assert exc_info.value.collaborator == "prowlarr"

    async def test_auth_error_carries_status(
        self, client: ProwlarrClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=SEARCH_URL, status_code=401)

        with pytest.raises(AuthenticationError) as exc_info:
            await client.search("x", [])
        assert exc_info.value.http_status == 401

    async def test_timeout_is_transient(self, client: ProwlarrClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_exception(httpx.ReadTimeout("timed out"))

        with pytest.raises(TransientNetworkError, match="timed out"):
            await client.search("x", [])

    async def test_connection_error_is_transient(
        self, client: ProwlarrClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

        with pytest.raises(TransientNetworkError, match="unreachable"):
            await client.search("x", [])


class TestProwlarrLifecycle:
    async def test_close_is_idempotent(self) -> None:
        client = ProwlarrClient(ProwlarrSettings(url="http://prowlarr.test", api_key="k"))
        await client._get_client()
        await client.close()
        await client.close()
        assert client._client is None
