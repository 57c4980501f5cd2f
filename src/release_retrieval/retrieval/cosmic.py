"""COSMIC two-phase download support.

COSMIC files cannot be downloaded in a single step. The file URL is first
requested with Basic authentication; on success the server answers with a
small JSON document whose ``url`` field is a time-limited, pre-signed
location. That location is then downloaded without credentials.

``CosmicUrlResolver`` performs the first phase. The file retriever runs it
before its normal HTTP download and never downloads when it fails.
The signed URL is only used for that download. The retriever's ``data_url``
keeps the configured URI, and the URL actually fetched is recorded in
``FileRetriever.last_download_url``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from release_retrieval.retrieval.protocol import RetrievalFailure
from release_retrieval.utils.http_client import HTTPClientError

if TYPE_CHECKING:
    from release_retrieval.retrieval.auth import AuthenticatedTransport

DOWNLOAD_URL_FIELD = "url"


class CosmicUrlResolver:
    """Exchanges credentials for a signed download URL.

    resolve() returns the signed URL and leaves the configured URI as it is,
    so every stale fetch starts with a fresh handshake.
    """

    def __init__(
        self,
        transport: AuthenticatedTransport,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._transport = transport
        self._logger = logger or logging.getLogger(__name__)

    async def resolve(
        self,
        url: str,
        *,
        timeout: float | None = None,
        destination: str | None = None,
    ) -> str:
        """Return the download URL COSMIC hands out for ``url``.

        Raises:
            RetrievalFailure: If the request fails, the status is not 200, or
                the body is not a JSON object with a string ``url`` field.
        """
        try:
            response = await self._transport.open_connection(url, timeout=timeout)
        except HTTPClientError as e:
            self._logger.error(
                "Request for the COSMIC download URL failed, probably caused by "
                "some network communication issue. Message: %s",
                e,
            )
            raise RetrievalFailure(
                f"Could not request COSMIC download URL from {url}: {e}",
                destination=destination,
                cause=e,
            ) from e

        if response.status != 200:
            self._logger.error("Non-200 response: %s", response.reason or response.status)
            raise RetrievalFailure(
                f"COSMIC handshake for {url} returned status {response.status}",
                destination=destination,
            )

        try:
            document = response.json()
        except ValueError as e:
            raise RetrievalFailure(
                f"COSMIC handshake for {url} did not return JSON",
                destination=destination,
                cause=e,
            ) from e

        download_url = (
            document.get(DOWNLOAD_URL_FIELD) if isinstance(document, dict) else None
        )
        if not isinstance(download_url, str) or not download_url.strip():
            self._logger.error(
                "The URL from COSMIC might be malformed. URL is: \"%s\"", download_url
            )
            raise RetrievalFailure(
                f"COSMIC handshake for {url} did not contain a '{DOWNLOAD_URL_FIELD}' field",
                destination=destination,
            )

        self._logger.info("COSMIC download URL has been set.")
        return download_url.replace('"', "")
