"""Ensembl REST client.

Runs the retry loop around ``EnsemblServiceResponseProcessor``: each response
is handed to the processor, and the request is re-issued after the wait it
asks for for as long as it says a retry is worthwhile.

Example usage:
    async with EnsemblClient() as client:
        result = await client.get("/info/ping")
        if result.status == 200:
            print(result.result)
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import urljoin

from release_retrieval.ensembl.rate_limiter import ENSEMBL_REQUESTS_PER_SECOND, RateLimiter
from release_retrieval.ensembl.response_processor import (
    EnsemblServiceResponseProcessor,
    EnsemblServiceResult,
)
from release_retrieval.utils.http_client import HTTPClient

if TYPE_CHECKING:
    from collections.abc import Mapping

ENSEMBL_REST_URL = "https://rest.ensembl.org/"
JSON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


class EnsemblClient:
    """Rate-limited Ensembl REST client.

    Args:
        http_client: HTTP client to use; created and owned when omitted
        rate_limiter: Request pacing; one is created from requests_per_second
            when omitted
        requests_per_second: Rate for a created rate limiter
        base_url: Prefix for relative request paths
        logger: Logger passed to the response processors
    """

    def __init__(
        self,
        http_client: HTTPClient | None = None,
        *,
        rate_limiter: RateLimiter | None = None,
        requests_per_second: float = ENSEMBL_REQUESTS_PER_SECOND,
        base_url: str = ENSEMBL_REST_URL,
        logger: logging.Logger | None = None,
    ) -> None:
        self._owns_client = http_client is None
        self._client = http_client or HTTPClient()
        self._rate_limiter = rate_limiter or RateLimiter(requests_per_second)
        self._base_url = base_url
        self._logger = logger or logging.getLogger(__name__)

    async def __aenter__(self) -> EnsemblClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.close()

    def new_processor(self) -> EnsemblServiceResponseProcessor:
        return EnsemblServiceResponseProcessor(self._logger)

    async def get(
        self,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        processor: EnsemblServiceResponseProcessor | None = None,
    ) -> EnsemblServiceResult:
        """GET ``path``, retrying for as long as the processor allows.

        Args:
            path: Absolute URL, or a path relative to base_url
            headers: Request headers; JSON headers by default
            processor: Processor carrying the backoff state. A new one is used
                when omitted, so backoff starts over for each call.

        Returns:
            The decision for the last response received

        Raises:
            HTTPClientError: For transport failures
        """
        url = urljoin(self._base_url, path)
        processor = processor or self.new_processor()
        request_headers = dict(headers) if headers is not None else JSON_HEADERS

        while True:
            async with self._rate_limiter.acquire():
                response = await self._client.get(url, headers=request_headers)
            decision = processor.process_response(response)
            if not decision.ok_to_retry:
                return decision

            wait = decision.wait_time.total_seconds()
            self._logger.info(
                "Retrying %s (status %d) in %.1f seconds", url, decision.status, wait
            )
            if wait > 0:
                await asyncio.sleep(wait)

    async def get_json(self, path: str, **kwargs: Any) -> Any:
        """GET ``path`` and parse a 200 response as JSON.

        Returns:
            Parsed document, or None when the final status was not 200
        """
        decision = await self.get(path, **kwargs)
        if decision.status != 200:
            return None
        return json.loads(decision.result)
