"""Tests for the COSMIC handshake and two-phase download."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest

from release_retrieval.retrieval.auth import AuthenticatedTransport
from release_retrieval.retrieval.cosmic import CosmicUrlResolver
from release_retrieval.retrieval.file_retriever import FileRetriever
from release_retrieval.retrieval.protocol import (
    Credentials,
    RetrievalFailure,
    RetrievalTarget,
)
from release_retrieval.retrieval.transport import HttpTransport
from release_retrieval.utils.http_client import (
    ConnectionError,
    DownloadedFile,
    HTTPResponse,
)

COSMIC_URL = "https://cancer.sanger.ac.uk/cosmic/file_download/GRCh38/cosmic/v99/file.tsv.gz"
SIGNED_URL = "https://cosmic-downloads.s3.amazonaws.com/file.tsv.gz?signature=abc"


@pytest.fixture
def inner() -> AsyncMock:
    transport = AsyncMock(spec=HttpTransport)

    async def _download(url: str, destination: Path, **kwargs: Any) -> DownloadedFile:
        destination.write_bytes(b"cosmic data")
        return DownloadedFile(
            status=200, reason="OK", url=url, path=destination, bytes_written=11
        )

    transport.download.side_effect = _download
    return transport


@pytest.fixture
def authenticated(inner: AsyncMock) -> AuthenticatedTransport:
    return AuthenticatedTransport(inner, Credentials("user@example.org", "secret"))


@pytest.mark.asyncio
class TestCosmicUrlResolver:
    """Tests for CosmicUrlResolver.resolve()."""

    async def test_returns_signed_url(
        self,
        authenticated: AuthenticatedTransport,
        inner: AsyncMock,
        make_response: Callable[..., HTTPResponse],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """The url field of the JSON answer is returned."""
        inner.open_connection.return_value = make_response(
            200, b'{"url": "%s"}' % SIGNED_URL.encode()
        )
        resolver = CosmicUrlResolver(authenticated)

        with caplog.at_level("INFO"):
            url = await resolver.resolve(COSMIC_URL, timeout=10.0)

        assert url == SIGNED_URL
        assert inner.open_connection.call_args[1]["headers"] == authenticated.auth_headers()
        assert "COSMIC download URL has been set." in caplog.text

    async def test_embedded_quotes_are_stripped(
        self,
        authenticated: AuthenticatedTransport,
        inner: AsyncMock,
        make_response: Callable[..., HTTPResponse],
    ) -> None:
        inner.open_connection.return_value = make_response(
            200, b'{"url": "\\"https://example.org/f\\""}'
        )

        url = await CosmicUrlResolver(authenticated).resolve(COSMIC_URL)

        assert url == "https://example.org/f"

    async def test_non_200_fails(
        self,
        authenticated: AuthenticatedTransport,
        inner: AsyncMock,
        make_response: Callable[..., HTTPResponse],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """A non-200 answer fails the handshake and is logged."""
        inner.open_connection.return_value = make_response(
            401, b"", reason="Unauthorized"
        )

        with caplog.at_level("ERROR"), pytest.raises(RetrievalFailure, match="401"):
            await CosmicUrlResolver(authenticated).resolve(COSMIC_URL)

        assert "Non-200 response: Unauthorized" in caplog.text

    @pytest.mark.parametrize(
        "body",
        [b"<html>not json</html>", b'{"link": "x"}', b'["x"]', b'{"url": ""}'],
    )
    async def test_malformed_answer_fails(
        self,
        body: bytes,
        authenticated: AuthenticatedTransport,
        inner: AsyncMock,
        make_response: Callable[..., HTTPResponse],
    ) -> None:
        """An answer without a usable url field fails the handshake."""
        inner.open_connection.return_value = make_response(200, body)

        with pytest.raises(RetrievalFailure):
            await CosmicUrlResolver(authenticated).resolve(
                COSMIC_URL, destination="/tmp/f"
            )

    async def test_transport_error_fails(
        self, authenticated: AuthenticatedTransport, inner: AsyncMock
    ) -> None:
        """Network errors during the handshake become RetrievalFailure."""
        inner.open_connection.side_effect = ConnectionError("refused")

        with pytest.raises(RetrievalFailure) as exc_info:
            await CosmicUrlResolver(authenticated).resolve(COSMIC_URL)

        assert isinstance(exc_info.value.cause, ConnectionError)


@pytest.mark.asyncio
class TestCosmicDownload:
    """Tests for the two-phase download through FileRetriever."""

    def _retriever(
        self, authenticated: AuthenticatedTransport, destination: Path
    ) -> FileRetriever:
        return FileRetriever(
            "cosmic",
            target=RetrievalTarget(uri=COSMIC_URL, destination=str(destination)),
            transport=authenticated.without_credentials(),
            url_resolver=CosmicUrlResolver(authenticated),
        )

    async def test_signed_url_downloaded_without_credentials(
        self,
        authenticated: AuthenticatedTransport,
        inner: AsyncMock,
        make_response: Callable[..., HTTPResponse],
        tmp_path: Path,
    ) -> None:
        """The handshake carries credentials; the download does not."""
        inner.open_connection.return_value = make_response(
            200, b'{"url": "%s"}' % SIGNED_URL.encode()
        )
        destination = tmp_path / "file.tsv.gz"
        retriever = self._retriever(authenticated, destination)

        await retriever.fetch_data()

        assert destination.read_bytes() == b"cosmic data"
        assert inner.download.call_args[0][0] == SIGNED_URL
        assert "headers" not in inner.download.call_args[1]
        assert retriever.last_download_url == SIGNED_URL
        assert retriever.data_url == COSMIC_URL

    async def test_failed_handshake_skips_download(
        self,
        authenticated: AuthenticatedTransport,
        inner: AsyncMock,
        make_response: Callable[..., HTTPResponse],
        tmp_path: Path,
    ) -> None:
        """No download is attempted when the handshake fails."""
        inner.open_connection.return_value = make_response(403, b"", reason="Forbidden")
        retriever = self._retriever(authenticated, tmp_path / "file.tsv.gz")

        with pytest.raises(RetrievalFailure):
            await retriever.fetch_data()

        inner.download.assert_not_awaited()
