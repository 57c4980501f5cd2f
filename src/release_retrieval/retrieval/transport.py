"""HTTP transport used by the file retrievers.

``HttpTransport`` is the unauthenticated download strategy. It exposes the
primitives the retrieval engine is built on; decorators such as
``AuthenticatedTransport`` wrap it and add request headers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from release_retrieval.utils.http_client import (
    DownloadedFile,
    HTTPClient,
    HTTPClientConfig,
    HTTPResponse,
)

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path


@runtime_checkable
class Transport(Protocol):
    """The HTTP primitives a retriever needs."""

    async def open_connection(
        self, url: str, *, timeout: float | None = None
    ) -> HTTPResponse: ...

    async def fetch_content(self, url: str, *, timeout: float | None = None) -> str: ...

    async def fetch_json(self, url: str, *, timeout: float | None = None) -> Any: ...

    async def download(
        self, url: str, destination: Path, *, timeout: float | None = None
    ) -> DownloadedFile: ...

    async def close(self) -> None: ...


class HttpTransport:
    """Plain HTTP transport on top of HTTPClient.

    Args:
        client: HTTP client to use. When omitted the transport creates and
            owns one, and close() releases it.
        config: Configuration for an owned client
    """

    def __init__(
        self,
        client: HTTPClient | None = None,
        *,
        config: HTTPClientConfig | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or HTTPClient(config)

    @property
    def client(self) -> HTTPClient:
        return self._client

    async def open_connection(
        self,
        url: str,
        *,
        timeout: float | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HTTPResponse:
        """Issue a GET and return the buffered response, whatever its status."""
        return await self._client.get(url, headers=headers, timeout=timeout)

    async def fetch_content(
        self,
        url: str,
        *,
        timeout: float | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> str:
        """Issue a GET and return the body as text."""
        response = await self.open_connection(url, timeout=timeout, headers=headers)
        return response.text()

    async def fetch_json(
        self,
        url: str,
        *,
        timeout: float | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Issue a GET and parse the body as JSON.

        Raises:
            ValueError: If the body is not valid JSON
        """
        response = await self.open_connection(url, timeout=timeout, headers=headers)
        return response.json()

    async def download(
        self,
        url: str,
        destination: Path,
        *,
        timeout: float | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> DownloadedFile:
        """Stream the body of a GET to ``destination``."""
        return await self._client.download(
            url, destination, headers=headers, timeout=timeout
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.close()
