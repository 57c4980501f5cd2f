"""Authenticated HTTP transport.

Wraps another transport and injects an ``Authorization: Basic`` header into
every request issued through it. The ``*_without_credentials`` methods go
straight to the wrapped transport, for the cases where a source hands out a
pre-signed URL that must be fetched anonymously.

Credentials may be given as a callable, which is asked again on every request.
The factories pass one that reads the retriever's target, so changing
``retriever.credentials`` after construction takes effect.

Example usage:
    auth = AuthenticatedTransport(HttpTransport(), Credentials("user", "secret"))
    response = await auth.open_connection("https://example.org/file")
    await auth.download_without_credentials(signed_url, Path("/tmp/file"))
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from release_retrieval.retrieval.protocol import Credentials, InvalidConfigurationError
from release_retrieval.retrieval.transport import HttpTransport

if TYPE_CHECKING:
    from pathlib import Path

    from release_retrieval.utils.http_client import DownloadedFile, HTTPResponse

AUTHORIZATION_HEADER = "Authorization"


class AuthenticatedTransport:
    """Transport decorator adding Basic authentication."""

    def __init__(
        self,
        inner: HttpTransport,
        credentials: Credentials | Callable[[], Credentials | None],
    ) -> None:
        self._inner = inner
        self._credentials = credentials

    @property
    def credentials(self) -> Credentials:
        """The credentials sent with the next request.

        Raises:
            InvalidConfigurationError: If the credentials source yields None
        """
        if isinstance(self._credentials, Credentials):
            return self._credentials
        credentials = self._credentials()
        if credentials is None:
            raise InvalidConfigurationError("An authenticated retriever needs credentials")
        return credentials

    def auth_headers(self) -> dict[str, str]:
        return {AUTHORIZATION_HEADER: self.credentials.basic_auth_header}

    def without_credentials(self) -> HttpTransport:
        """The wrapped, unauthenticated transport."""
        return self._inner

    async def open_connection(
        self, url: str, *, timeout: float | None = None
    ) -> HTTPResponse:
        return await self._inner.open_connection(
            url, timeout=timeout, headers=self.auth_headers()
        )

    async def fetch_content(self, url: str, *, timeout: float | None = None) -> str:
        return await self._inner.fetch_content(
            url, timeout=timeout, headers=self.auth_headers()
        )

    async def fetch_json(self, url: str, *, timeout: float | None = None) -> Any:
        return await self._inner.fetch_json(
            url, timeout=timeout, headers=self.auth_headers()
        )

    async def download(
        self, url: str, destination: Path, *, timeout: float | None = None
    ) -> DownloadedFile:
        return await self._inner.download(
            url, destination, timeout=timeout, headers=self.auth_headers()
        )

    async def open_connection_without_credentials(
        self, url: str, *, timeout: float | None = None
    ) -> HTTPResponse:
        return await self._inner.open_connection(url, timeout=timeout)

    async def fetch_content_without_credentials(
        self, url: str, *, timeout: float | None = None
    ) -> str:
        return await self._inner.fetch_content(url, timeout=timeout)

    async def fetch_json_without_credentials(
        self, url: str, *, timeout: float | None = None
    ) -> Any:
        return await self._inner.fetch_json(url, timeout=timeout)

    async def download_without_credentials(
        self, url: str, destination: Path, *, timeout: float | None = None
    ) -> DownloadedFile:
        return await self._inner.download(url, destination, timeout=timeout)

    async def close(self) -> None:
        await self._inner.close()
