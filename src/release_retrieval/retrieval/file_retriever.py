"""File retriever: staleness check, protocol dispatch and download.

A FileRetriever keeps one local file up to date with a remote source. On
each fetch_data() call it:

1. checks that a source URI and a destination path are configured,
2. re-downloads only when the local file is missing or older than max_age,
3. dispatches on the URI scheme to the HTTP or the FTP download path,
4. verifies that a readable file exists at the destination afterwards.

The HTTP path retries only connection-establishment timeouts, up to
``num_retries`` extra attempts. FTP transfers are not retried; a 5xx reply
from the server fails the fetch even if bytes were received.

Authentication and the COSMIC handshake are composed in rather than
subclassed: pass an ``AuthenticatedTransport`` as ``transport`` and/or a
``CosmicUrlResolver`` as ``url_resolver`` (see factory.build_retriever).

Example usage:
    retriever = FileRetriever(
        "uniprot",
        target=RetrievalTarget(
            uri="ftp://ftp.ebi.ac.uk/pub/databases/uniprot/README",
            destination="/tmp/uniprot/README",
            max_age=timedelta(hours=12),
        ),
    )
    path = await retriever.fetch_data()
"""

from __future__ import annotations

import asyncio
import ftplib
import logging
import os
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol
from urllib.parse import unquote, urlsplit

from release_retrieval.retrieval.protocol import (
    SUPPORTED_FTP_SCHEMES,
    SUPPORTED_HTTP_SCHEMES,
    Credentials,
    FtpTransferError,
    MissingOutputError,
    RetrievalFailure,
    RetrievalTarget,
    UnsupportedSchemeError,
)
from release_retrieval.retrieval.retry_handler import RetryConfig, RetryHandler
from release_retrieval.retrieval.transport import HttpTransport
from release_retrieval.utils.ftp_client import FTPClient, FTPClientConfig
from release_retrieval.utils.http_client import HTTPClientConfig, HTTPClientError

if TYPE_CHECKING:
    from release_retrieval.retrieval.auth import AuthenticatedTransport
    from release_retrieval.utils.http_client import DownloadedFile


class UrlResolver(Protocol):
    """Pre-download step that swaps the configured URI for the real download URL."""

    async def resolve(
        self,
        url: str,
        *,
        timeout: float | None = None,
        destination: str | None = None,
    ) -> str: ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _is_connect_timeout(error: BaseException) -> bool:
    return isinstance(error, HTTPClientError) and error.retryable


def _creation_time(stat: os.stat_result) -> datetime:
    created = getattr(stat, "st_birthtime", None) or stat.st_ctime
    return datetime.fromtimestamp(created, UTC)


def _stat_or_none(path: Path) -> os.stat_result | None:
    try:
        return path.stat()
    except (FileNotFoundError, NotADirectoryError):
        return None


def _write_atomically(path: Path, data: bytes) -> None:
    partial = path.with_name(path.name + ".part")
    try:
        partial.write_bytes(data)
        partial.replace(path)
    finally:
        partial.unlink(missing_ok=True)


class FileRetriever:
    """Downloads a file over HTTP(S) or FTP when the local copy is stale.

    Args:
        retriever_name: Logical name used in diagnostics
        target: Source, destination and fetch parameters
        transport: HTTP transport (plain or authenticated). Created and owned
            by the retriever when omitted.
        url_resolver: Optional step run before an HTTP download to obtain the
            actual download URL
        ftp_factory: Callable returning an ftplib.FTP-like object
        logger: Logger to report to. Defaults to a logger named after the
            retriever.
        clock: Returns the current time; used for the staleness check
        retry_delay: Seconds to wait between connect-timeout retries
        owns_transport: Whether close() also closes ``transport``
    """

    def __init__(
        self,
        retriever_name: str | None = None,
        *,
        target: RetrievalTarget | None = None,
        transport: HttpTransport | AuthenticatedTransport | None = None,
        url_resolver: UrlResolver | None = None,
        ftp_factory: Callable[..., Any] | None = None,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] = _utcnow,
        retry_delay: float = 0.0,
        owns_transport: bool | None = None,
    ) -> None:
        self._retriever_name = retriever_name
        self._target = target or RetrievalTarget()
        self._transport = transport
        self._owns_transport = transport is None if owns_transport is None else owns_transport
        self._url_resolver = url_resolver
        self._ftp_factory = ftp_factory
        self._injected_logger = logger
        self._clock = clock
        self._retry_delay = retry_delay
        self._in_context = False
        self.last_download_url: str | None = None

    # Configuration

    @property
    def target(self) -> RetrievalTarget:
        return self._target

    @property
    def retriever_name(self) -> str | None:
        return self._retriever_name

    @retriever_name.setter
    def retriever_name(self, name: str | None) -> None:
        self._retriever_name = name

    @property
    def data_url(self) -> str | None:
        return self._target.uri

    @data_url.setter
    def data_url(self, uri: str | None) -> None:
        self._target.uri = uri

    @property
    def fetch_destination(self) -> str:
        return self._target.destination

    @fetch_destination.setter
    def fetch_destination(self, destination: str) -> None:
        self._target.destination = destination

    @property
    def max_age(self) -> timedelta:
        return self._target.max_age

    @max_age.setter
    def max_age(self, age: timedelta) -> None:
        self._target.max_age = age

    @property
    def num_retries(self) -> int:
        return self._target.num_retries

    @num_retries.setter
    def num_retries(self, retries: int) -> None:
        self._target.num_retries = retries

    @property
    def timeout(self) -> timedelta:
        return self._target.timeout

    @timeout.setter
    def timeout(self, timeout: timedelta) -> None:
        self._target.timeout = timeout

    @property
    def passive_ftp(self) -> bool:
        return self._target.passive_ftp

    @passive_ftp.setter
    def passive_ftp(self, passive: bool) -> None:
        self._target.passive_ftp = passive

    @property
    def credentials(self) -> Credentials | None:
        return self._target.credentials

    @credentials.setter
    def credentials(self, credentials: Credentials | None) -> None:
        self._target.credentials = credentials

    @property
    def logger(self) -> logging.Logger:
        if self._injected_logger is not None:
            return self._injected_logger
        if self._retriever_name and self._retriever_name.strip():
            return logging.getLogger(f"{__name__}.{self._retriever_name.strip()}")
        return logging.getLogger(__name__)

    # Lifecycle

    async def __aenter__(self) -> FileRetriever:
        self._in_context = True
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        self._in_context = False
        await self.close()

    async def close(self) -> None:
        """Close the HTTP transport if this retriever owns it."""
        if self._transport is not None and self._owns_transport:
            await self._transport.close()

    def _http_transport(self) -> HttpTransport | AuthenticatedTransport:
        if self._transport is None:
            self._transport = HttpTransport(
                config=HTTPClientConfig(timeout=self._target.timeout_seconds)
            )
            self._owns_transport = True
        return self._transport

    # Fetch

    async def fetch_data(self) -> Path:
        """Make sure an up to date copy of the source exists at the destination.

        Returns:
            Path of the local file

        Raises:
            InvalidConfigurationError: If the URI or the destination is missing
            UnsupportedSchemeError: If the URI scheme is not http(s) or (s)ftp
            RetriesExceeded: If every HTTP connect attempt timed out
            FtpTransferError: If the FTP server answered with a 5xx reply
            RetrievalFailure: For any other download problem
            MissingOutputError: If no file exists at the destination afterwards
        """
        target = self._target
        target.validate()
        path = target.path

        try:
            if await self._needs_download(path):
                await self.download_data(path)
                self.logger.debug("Download is complete.")
        finally:
            if not self._in_context:
                await self.close()

        await self._report_output(path)
        return path

    async def _needs_download(self, path: Path) -> bool:
        stat = await asyncio.to_thread(_stat_or_none, path)
        if stat is None:
            self.logger.debug("File %s does not exist and must be downloaded.", path)
            return True

        created = _creation_time(stat)
        if self._clock() - created > self._target.max_age:
            self.logger.debug(
                "File %s is older than allowed amount (%s) so it will be downloaded again.",
                path,
                self._target.max_age,
            )
            return True

        self.logger.debug(
            "File %s is not older than allowed amount (%s) so it will not be downloaded.",
            path,
            self._target.max_age,
        )
        return False

    async def _report_output(self, path: Path) -> None:
        stat = await asyncio.to_thread(_stat_or_none, path)
        if stat is None:
            self.logger.error(
                'File "%s" still does not exist after executing the file retriever!', path
            )
            raise MissingOutputError(
                f"File {path} still does not exist after executing the file retriever",
                destination=str(path),
            )

        if not await asyncio.to_thread(os.access, path, os.R_OK):
            self.logger.error("File %s is not readable!", path)
            return

        self.logger.info(
            "File Info: Name: %s, Size: %d, Created: %s, Modified: %s",
            path,
            stat.st_size,
            _creation_time(stat).isoformat(),
            datetime.fromtimestamp(stat.st_mtime, UTC).isoformat(),
        )

    async def download_data(self, path: Path) -> None:
        """Download the source to ``path``, whatever the age of the local file."""
        uri = str(self._target.uri)
        scheme = urlsplit(uri).scheme.lower()
        self.logger.debug("Scheme is: %s", scheme)

        if scheme not in SUPPORTED_HTTP_SCHEMES and scheme not in SUPPORTED_FTP_SCHEMES:
            self.logger.error("URI %s uses an unsupported scheme: %s", uri, scheme)
            raise UnsupportedSchemeError(uri, scheme, destination=str(path))

        try:
            await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
        except OSError as e:
            self.logger.error(
                "Unable to create parent directory of download destination: %s", path
            )
            raise RetrievalFailure(
                f"Unable to create parent directory of download destination: {path}",
                destination=str(path),
                cause=e,
            ) from e

        if scheme in SUPPORTED_HTTP_SCHEMES:
            await self._http_download(uri, path)
        else:
            await self._ftp_download(uri, path)

    # HTTP

    async def _http_download(self, uri: str, path: Path) -> None:
        timeout = self._target.timeout_seconds
        url = uri
        if self._url_resolver is not None:
            url = await self._url_resolver.resolve(
                uri, timeout=timeout, destination=str(path)
            )
        self.last_download_url = url

        transport = self._http_transport()
        handler = RetryHandler(
            RetryConfig(
                max_retries=self._target.num_retries,
                base_delay=self._retry_delay,
                max_delay=max(self._retry_delay, 60.0),
            ),
            logger=self.logger,
        )

        try:
            downloaded = await handler.execute(
                lambda: transport.download(url, path, timeout=timeout),
                is_retryable=_is_connect_timeout,
                operation_name=f"Download of {path.name}",
                destination=str(path),
            )
        except (HTTPClientError, OSError) as e:
            self.logger.error("Exception caught: %s", e)
            raise RetrievalFailure(
                f"Error performing download of {path}: {e}",
                destination=str(path),
                cause=e,
            ) from e

        self._log_status(downloaded)

    def _log_status(self, downloaded: DownloadedFile) -> None:
        if downloaded.is_ok:
            return
        if 400 <= downloaded.status < 600:
            self.logger.error(
                "Response code was 4xx/5xx: %d, Status line is: %s",
                downloaded.status,
                downloaded.reason,
            )
        else:
            self.logger.warning('Response was not "200". It was: %s', downloaded.reason)

    # FTP

    async def _ftp_download(self, uri: str, path: Path) -> None:
        parts = urlsplit(uri)
        credentials = self._target.credentials
        client = FTPClient(
            FTPClientConfig(
                timeout=self._target.timeout_seconds,
                passive=self._target.passive_ftp,
            ),
            ftp_factory=self._ftp_factory,
            logger=self.logger,
        )
        self.last_download_url = uri

        try:
            transfer = await asyncio.to_thread(
                client.retrieve,
                parts.hostname or "",
                unquote(parts.path),
                port=parts.port,
                user=credentials.username if credentials else None,
                password=credentials.password if credentials else None,
            )
        except ftplib.all_errors as e:
            self.logger.error("Error performing FTP download of %s: %s", uri, e)
            raise RetrievalFailure(
                f"Error performing FTP download of {uri}: {e}",
                destination=str(path),
                cause=e,
            ) from e

        reply = transfer.reply
        if reply.is_permanent_failure:
            self.logger.error(
                "5xx reply code detected (%d), reply string is: %s",
                reply.code,
                reply.message,
            )
            raise FtpTransferError(reply.code, reply.message, destination=str(path))

        if transfer.data is None:
            return

        try:
            await asyncio.to_thread(_write_atomically, path, transfer.data)
        except OSError as e:
            raise RetrievalFailure(
                f"Unable to write {path}: {e}", destination=str(path), cause=e
            ) from e
