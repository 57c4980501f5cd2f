"""HTTP client utility used by the file retrievers and the Ensembl client.

This module wraps aiohttp with the small surface the retrieval engine needs:
a buffered GET for handshakes and web service calls, and a streamed GET that
writes the response body straight to a destination file.

Transport failures are classified into a closed set of outcomes
(``TransportFailure``). Only a connection-establishment timeout is marked as
retryable: it is the one failure where no bytes were exchanged with the peer.

Example usage:
    async with HTTPClient() as client:
        response = await client.get("https://rest.ensembl.org/info/ping")
        data = response.json()

    config = HTTPClientConfig(timeout=60)
    async with HTTPClient(config) as client:
        downloaded = await client.download(url, Path("/tmp/data.txt"))
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import aiohttp

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "release-retrieval/1.0"


class TransportFailure(Enum):
    """Closed set of transport-level failure outcomes."""

    CONNECT_TIMEOUT = "connect_timeout"
    CONNECTION_REFUSED = "connection_refused"
    READ_TIMEOUT = "read_timeout"
    IO_ERROR = "io_error"

    @property
    def retryable(self) -> bool:
        """Only a timeout while establishing the connection may be retried."""
        return self is TransportFailure.CONNECT_TIMEOUT


@dataclass(frozen=True, slots=True)
class HTTPClientConfig:
    """Configuration for the HTTP client.

    Attributes:
        timeout: Connect and read timeout in seconds
        user_agent: User-Agent header value
        chunk_size: Size of the chunks streamed to disk by download()
        verify_ssl: Whether to verify SSL certificates
    """

    timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT
    chunk_size: int = 64 * 1024
    verify_ssl: bool = True

    @property
    def default_headers(self) -> dict[str, str]:
        """Get default headers for all requests."""
        return {
            "User-Agent": self.user_agent,
            "Accept": "*/*",
        }


def build_timeout(seconds: float) -> aiohttp.ClientTimeout:
    """Build an aiohttp timeout with connect and read limits set to ``seconds``.

    The pool-acquisition limit (``connect``) and the overall ``total`` limit
    are left unset so that a timeout raised while opening the socket is always
    reported as ``aiohttp.ConnectionTimeoutError``.
    """
    return aiohttp.ClientTimeout(
        total=None,
        connect=None,
        sock_connect=seconds,
        sock_read=seconds,
    )


@dataclass
class HTTPResponse:
    """Wrapper for buffered HTTP response data.

    Attributes:
        status: HTTP status code
        headers: Response headers
        content: Raw response content as bytes
        url: Final URL after redirects
        reason: Status line reason phrase
    """

    status: int
    headers: dict[str, str]
    content: bytes
    url: str
    reason: str = ""

    @classmethod
    async def from_aiohttp_response(
        cls, response: aiohttp.ClientResponse
    ) -> HTTPResponse:
        """Create HTTPResponse from aiohttp response.

        Args:
            response: The aiohttp ClientResponse object

        Returns:
            HTTPResponse with all data extracted
        """
        content = await response.read()
        return cls(
            status=response.status,
            headers=dict(response.headers),
            content=content,
            url=str(response.url),
            reason=response.reason or "",
        )

    def header(self, name: str) -> str | None:
        """Look up a header value case-insensitively."""
        if name in self.headers:
            return self.headers[name]
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    def json(self) -> Any:
        """Parse response content as JSON.

        Raises:
            ValueError: If content is not valid JSON
        """
        try:
            return json.loads(self.content.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ValueError(f"Invalid JSON response: {e}") from e

    def text(self, encoding: str = "utf-8") -> str:
        """Get response content as text."""
        return self.content.decode(encoding)

    @property
    def is_success(self) -> bool:
        """Check if response indicates success (2xx status)."""
        return 200 <= self.status < 300

    @property
    def retry_after(self) -> str | None:
        """Raw Retry-After header value, if present."""
        return self.header("Retry-After")


@dataclass(frozen=True, slots=True)
class DownloadedFile:
    """Outcome of a streamed download.

    Attributes:
        status: HTTP status code of the response whose body was written
        reason: Status line reason phrase
        url: Final URL after redirects
        path: File the body was written to
        bytes_written: Number of body bytes written
    """

    status: int
    reason: str
    url: str
    path: Path
    bytes_written: int

    @property
    def is_ok(self) -> bool:
        return self.status == 200


class HTTPClientError(Exception):
    """Base exception for HTTP client errors."""

    failure: TransportFailure = TransportFailure.IO_ERROR

    def __init__(
        self,
        message: str,
        url: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.cause = cause

    @property
    def retryable(self) -> bool:
        return self.failure.retryable


class ConnectionError(HTTPClientError):
    """Raised when the server refuses the connection or is unreachable."""

    failure = TransportFailure.CONNECTION_REFUSED


class TimeoutError(HTTPClientError):
    """Raised when a request times out."""

    failure = TransportFailure.READ_TIMEOUT


class ConnectTimeoutError(TimeoutError):
    """Raised when the connection could not be established in time."""

    failure = TransportFailure.CONNECT_TIMEOUT


@contextmanager
def _translate_errors(method: str, url: str) -> Iterator[None]:
    """Map aiohttp exceptions onto the HTTPClientError hierarchy."""
    try:
        yield
    except aiohttp.ConnectionTimeoutError as e:
        logger.warning("Connect timeout for %s %s: %s", method, url, e)
        raise ConnectTimeoutError(
            f"Connection to {url} timed out", url=url, cause=e
        ) from e
    except aiohttp.ServerTimeoutError as e:
        logger.warning("Read timeout for %s %s: %s", method, url, e)
        raise TimeoutError(f"Request timed out for {url}", url=url, cause=e) from e
    except aiohttp.ClientConnectorError as e:
        logger.warning("Connection error for %s %s: %s", method, url, e)
        raise ConnectionError(f"Failed to connect to {url}", url=url, cause=e) from e
    except aiohttp.ClientError as e:
        logger.warning("HTTP error for %s %s: %s", method, url, e)
        raise HTTPClientError(f"HTTP error for {url}: {e}", url=url, cause=e) from e
    except asyncio.TimeoutError as e:
        logger.warning("Timeout for %s %s", method, url)
        raise TimeoutError(f"Request timed out for {url}", url=url, cause=e) from e


class HTTPClient:
    """Async HTTP client.

    The session is created lazily on first use and can be reused across
    requests. Use as an async context manager to ensure cleanup.

    Example:
        async with HTTPClient() as client:
            response = await client.get("https://rest.ensembl.org/info/ping")
            if response.is_success:
                data = response.json()
    """

    def __init__(self, config: HTTPClientConfig | None = None) -> None:
        self.config = config or HTTPClientConfig()
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> HTTPClient:
        await self._create_session()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    async def _create_session(self) -> None:
        """Create the aiohttp session."""
        if self._session is not None:
            return

        connector = aiohttp.TCPConnector(ssl=self.config.verify_ssl)
        self._session = aiohttp.ClientSession(
            connector=connector,
            timeout=build_timeout(self.config.timeout),
            headers=self.config.default_headers,
        )
        logger.debug("Created HTTP session (timeout=%.1fs)", self.config.timeout)

    async def close(self) -> None:
        """Close the session and release resources."""
        if self._session is not None:
            await self._session.close()
            self._session = None
            logger.debug("Closed HTTP session")

    @property
    def is_open(self) -> bool:
        """Check if the session is open."""
        return self._session is not None and not self._session.closed

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            await self._create_session()
        if self._session is None:
            raise RuntimeError("HTTP session not initialized")
        return self._session

    def _request_kwargs(
        self,
        headers: Mapping[str, str] | None,
        timeout: float | None,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        if headers:
            kwargs["headers"] = dict(headers)
        if timeout is not None:
            kwargs["timeout"] = build_timeout(timeout)
        return kwargs

    async def get(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> HTTPResponse:
        """Perform a GET request and buffer the body.

        Args:
            url: The URL to request
            headers: Additional headers to send
            timeout: Override the configured connect/read timeout

        Returns:
            HTTPResponse with response data

        Raises:
            ConnectTimeoutError: If the connection could not be established in time
            ConnectionError: If the connection was refused
            TimeoutError: If reading the response timed out
            HTTPClientError: For other HTTP errors
        """
        session = await self._ensure_session()
        kwargs = self._request_kwargs(headers, timeout)

        logger.debug("HTTP GET %s", url)
        with _translate_errors("GET", url):
            async with session.request("GET", url, **kwargs) as response:
                http_response = await HTTPResponse.from_aiohttp_response(response)
        logger.debug("HTTP GET %s -> %d", url, http_response.status)
        return http_response

    async def download(
        self,
        url: str,
        destination: Path,
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> DownloadedFile:
        """Stream the body of a GET request to ``destination``.

        The body is written to a sibling ``.part`` file which replaces the
        destination only once the body has been read completely, so an
        interrupted transfer never leaves a truncated file behind. The body is
        written whatever the status code; callers decide what a non-200 means.
        File operations run in worker threads, off the event loop.

        Raises:
            Same as get(). OSError is raised for local write failures.
        """
        session = await self._ensure_session()
        kwargs = self._request_kwargs(headers, timeout)
        partial = destination.with_name(destination.name + ".part")

        logger.debug("HTTP GET %s -> %s", url, destination)
        try:
            with _translate_errors("GET", url):
                async with session.request("GET", url, **kwargs) as response:
                    written = 0
                    fh = await asyncio.to_thread(open, partial, "wb")
                    try:
                        async for chunk in response.content.iter_chunked(
                            self.config.chunk_size
                        ):
                            await asyncio.to_thread(fh.write, chunk)
                            written += len(chunk)
                    finally:
                        await asyncio.to_thread(fh.close)
                    await asyncio.to_thread(partial.replace, destination)
                    return DownloadedFile(
                        status=response.status,
                        reason=response.reason or "",
                        url=str(response.url),
                        path=destination,
                        bytes_written=written,
                    )
        finally:
            await asyncio.to_thread(partial.unlink, missing_ok=True)
