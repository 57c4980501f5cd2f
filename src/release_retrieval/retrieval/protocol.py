"""Retriever protocol, target configuration and error types.

Every retriever variant (plain, authenticated, COSMIC) satisfies the
``DataRetriever`` protocol. Using Python's Protocol (structural subtyping)
lets callers and tests swap implementations without inheritance.

Example usage:
    retriever: DataRetriever = build_retriever(source)
    retriever.max_age = timedelta(hours=12)
    try:
        await retriever.fetch_data()
    except RetrievalError as e:
        logger.error("Could not refresh %s: %s", e.destination, e)
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Protocol, runtime_checkable
from urllib.parse import urlsplit

SUPPORTED_HTTP_SCHEMES = frozenset({"http", "https"})
SUPPORTED_FTP_SCHEMES = frozenset({"ftp", "sftp"})

DEFAULT_TIMEOUT = timedelta(seconds=30)
DEFAULT_MAX_AGE = timedelta(days=1)
DEFAULT_NUM_RETRIES = 1


@dataclass(frozen=True, slots=True)
class Credentials:
    """User name and password for authenticated sources."""

    username: str
    password: str = field(repr=False)

    @property
    def basic_auth_header(self) -> str:
        """Value of an ``Authorization: Basic`` header for these credentials."""
        token = base64.b64encode(f"{self.username}:{self.password}".encode())
        return f"Basic {token.decode('ascii')}"


@dataclass
class RetrievalTarget:
    """Where a file comes from, where it goes and how it is fetched.

    Owned by a single retriever and only changed before fetch_data() runs.

    Attributes:
        uri: Source URI (http, https, ftp or sftp)
        destination: Local path the file is written to
        max_age: Age after which an existing local copy is fetched again
        timeout: Connect/read timeout for each network call
        num_retries: Extra attempts allowed after a connect timeout
        passive_ftp: Switch FTP sessions to passive mode before login
        credentials: Optional user name and password
    """

    uri: str | None = None
    destination: str = ""
    max_age: timedelta = DEFAULT_MAX_AGE
    timeout: timedelta = DEFAULT_TIMEOUT
    num_retries: int = DEFAULT_NUM_RETRIES
    passive_ftp: bool = False
    credentials: Credentials | None = None

    def validate(self) -> None:
        """Check the preconditions of a fetch.

        Raises:
            InvalidConfigurationError: If the URI is unset or malformed, the
                destination is blank, or the retry count is negative.
        """
        if self.uri is None or not str(self.uri).strip():
            raise InvalidConfigurationError(
                "You must provide a URI from which the file will be downloaded!"
            )
        if self.destination is None or not str(self.destination).strip():
            raise InvalidConfigurationError(
                "You must provide a destination to which the file will be downloaded!"
            )
        try:
            # .port raises for a port outside 0-65535
            urlsplit(str(self.uri)).port
        except ValueError as e:
            raise InvalidConfigurationError(
                f"Malformed URI {self.uri}: {e}",
                destination=self.destination,
                cause=e,
            ) from e
        if self.num_retries < 0:
            raise InvalidConfigurationError(
                f"num_retries must be non-negative, got {self.num_retries}",
                destination=self.destination,
            )

    @property
    def path(self) -> Path:
        return Path(self.destination)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout.total_seconds()


@runtime_checkable
class DataRetriever(Protocol):
    """Protocol for anything that can refresh a local copy of remote data.

    fetch_data() must be idempotent from the caller's point of view: calling
    it twice in a row while the local file is still fresh performs no network
    I/O the second time.
    """

    @property
    def retriever_name(self) -> str | None:
        """Logical name used in diagnostics and log file names."""
        ...

    @retriever_name.setter
    def retriever_name(self, name: str | None) -> None: ...

    @property
    def data_url(self) -> str | None: ...

    @data_url.setter
    def data_url(self, uri: str | None) -> None: ...

    @property
    def fetch_destination(self) -> str: ...

    @fetch_destination.setter
    def fetch_destination(self, destination: str) -> None: ...

    @property
    def max_age(self) -> timedelta: ...

    @max_age.setter
    def max_age(self, age: timedelta) -> None: ...

    async def fetch_data(self) -> Path:
        """Make sure a fresh copy of the data exists at the destination.

        Returns:
            Path of the local file

        Raises:
            RetrievalError: If the file could not be retrieved
        """
        ...


class RetrievalError(Exception):
    """Base exception for retrieval errors."""

    def __init__(
        self,
        message: str,
        destination: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize the retrieval error.

        Args:
            message: Human-readable error description
            destination: Local path the retrieval was writing to
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.destination = destination
        self.cause = cause

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.destination:
            parts.append(f"destination={self.destination}")
        return " ".join(parts)


class InvalidConfigurationError(RetrievalError):
    """Raised when a retriever is missing its URI or destination."""

    pass


class UnsupportedSchemeError(RetrievalError):
    """Raised when the source URI uses a scheme no download path handles."""

    def __init__(self, uri: str, scheme: str, **kwargs: object) -> None:
        super().__init__(
            f"URI {uri} uses an unsupported scheme: {scheme}",
            **kwargs,  # type: ignore[arg-type]
        )
        self.uri = uri
        self.scheme = scheme


class RetriesExceeded(RetrievalError):
    """Raised when every connect attempt timed out."""

    def __init__(
        self,
        message: str,
        attempts: int,
        num_retries: int,
        **kwargs: object,
    ) -> None:
        super().__init__(message, **kwargs)  # type: ignore[arg-type]
        self.attempts = attempts
        self.num_retries = num_retries


class FtpTransferError(RetrievalError):
    """Raised when an FTP server answers with a 5xx reply."""

    def __init__(
        self,
        reply_code: int,
        reply_string: str,
        **kwargs: object,
    ) -> None:
        super().__init__(
            f"5xx reply code detected ({reply_code}), reply string is: {reply_string}",
            **kwargs,  # type: ignore[arg-type]
        )
        self.reply_code = reply_code
        self.reply_string = reply_string


class RetrievalFailure(RetrievalError):
    """Raised for any other retrieval problem (handshake, I/O, local filesystem)."""

    pass


class MissingOutputError(RetrievalError):
    """Raised when no file exists at the destination after fetching."""

    pass
