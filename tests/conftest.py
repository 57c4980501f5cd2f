"""Shared pytest fixtures for release retrieval tests.

Fixtures are organized into categories:
- HTTP fixtures (buffered responses, streamed aiohttp responses)
- FTP fixtures (ftplib.FTP stand-ins)
- Shared state fixtures (Ensembl quota)

Usage:
    # In any test file, fixtures are automatically available:
    def test_example(make_response):
        response = make_response(200, b"ok")
        assert response.is_success
"""

from __future__ import annotations

import ftplib
from collections.abc import AsyncIterator, Callable, Iterator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from release_retrieval.ensembl import response_processor
from release_retrieval.utils.http_client import HTTPResponse

# =============================================================================
# HTTP Fixtures
# =============================================================================


async def _chunks(data: bytes, size: int) -> AsyncIterator[bytes]:
    for start in range(0, len(data), size):
        yield data[start : start + size]


def build_aiohttp_response(
    status: int = 200,
    body: bytes = b"",
    *,
    reason: str = "OK",
    url: str = "https://example.org/file",
    headers: dict[str, str] | None = None,
) -> AsyncMock:
    """Build a stand-in for aiohttp.ClientResponse."""
    mock_response = AsyncMock()
    mock_response.status = status
    mock_response.reason = reason
    mock_response.url = url
    mock_response.headers = headers or {}
    mock_response.read = AsyncMock(return_value=body)
    mock_response.content = MagicMock()
    mock_response.content.iter_chunked = lambda size: _chunks(body, size)
    return mock_response


@pytest.fixture
def aiohttp_response() -> Callable[..., AsyncMock]:
    """Factory fixture for aiohttp response stand-ins.

    Usage:
        def test_example(aiohttp_response):
            mock_response = aiohttp_response(404, b"missing", reason="Not Found")
    """
    return build_aiohttp_response


@pytest.fixture
def make_response() -> Callable[..., HTTPResponse]:
    """Factory fixture for buffered HTTPResponse objects."""

    def _make(
        status: int = 200,
        content: bytes = b"",
        headers: dict[str, str] | None = None,
        reason: str = "",
        url: str = "https://rest.ensembl.org/test",
    ) -> HTTPResponse:
        return HTTPResponse(
            status=status,
            headers=headers or {},
            content=content,
            url=url,
            reason=reason,
        )

    return _make


# =============================================================================
# FTP Fixtures
# =============================================================================


@pytest.fixture
def ftp_session() -> MagicMock:
    """An ftplib.FTP stand-in serving b"ftp payload" with a 226 reply.

    MODE C is refused so the payload is delivered as-is.
    """
    ftp = MagicMock(spec=ftplib.FTP)
    ftp.lastresp = "230"
    ftp.sendcmd.side_effect = ftplib.error_perm("504 Command not implemented for that parameter")

    def _retrbinary(cmd: str, callback: Callable[[bytes], Any], *args: Any) -> str:
        callback(b"ftp payload")
        return "226 Transfer complete"

    ftp.retrbinary.side_effect = _retrbinary
    return ftp


@pytest.fixture
def ftp_factory(ftp_session: MagicMock) -> MagicMock:
    """Callable standing in for ftplib.FTP, returning ``ftp_session``."""
    return MagicMock(return_value=ftp_session)


# =============================================================================
# Shared State Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def restore_requests_remaining() -> Iterator[None]:
    """Restore the process-wide Ensembl quota after each test."""
    saved = response_processor.requests_remaining.get()
    yield
    response_processor.requests_remaining.set(saved)
