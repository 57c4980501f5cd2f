"""Factory functions for file retrievers.

The three retriever flavours differ only in what is composed into the base
engine:

- ``plain``: unauthenticated transport
- ``authenticated``: transport that adds Basic authentication
- ``cosmic``: authenticated handshake that yields a signed URL, followed by an
  unauthenticated download of that URL

Example usage:
    settings = get_settings()
    for source in load_sources("sources.json"):
        async with build_retriever(source, settings) as retriever:
            await retriever.fetch_data()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from release_retrieval.retrieval.auth import AuthenticatedTransport
from release_retrieval.retrieval.cosmic import CosmicUrlResolver
from release_retrieval.retrieval.file_retriever import FileRetriever
from release_retrieval.retrieval.protocol import InvalidConfigurationError
from release_retrieval.retrieval.transport import HttpTransport
from release_retrieval.utils.http_client import DEFAULT_USER_AGENT, HTTPClientConfig

if TYPE_CHECKING:
    from collections.abc import Callable

    from release_retrieval.config.settings import RetrievalSettings, SourceConfig
    from release_retrieval.retrieval.protocol import RetrievalTarget
    from release_retrieval.utils.http_client import HTTPClient


def create_file_retriever(
    name: str | None,
    target: RetrievalTarget,
    *,
    http_client: HTTPClient | None = None,
    user_agent: str = DEFAULT_USER_AGENT,
    **kwargs: Any,
) -> FileRetriever:
    """Create a retriever that downloads without credentials."""
    transport = _base_transport(target, http_client, user_agent)
    return FileRetriever(name, target=target, transport=transport, owns_transport=True, **kwargs)


def create_authenticated_retriever(
    name: str | None,
    target: RetrievalTarget,
    *,
    http_client: HTTPClient | None = None,
    user_agent: str = DEFAULT_USER_AGENT,
    **kwargs: Any,
) -> FileRetriever:
    """Create a retriever whose HTTP requests carry Basic authentication."""
    _require_credentials(target)
    transport = AuthenticatedTransport(
        _base_transport(target, http_client, user_agent), lambda: target.credentials
    )
    return FileRetriever(name, target=target, transport=transport, owns_transport=True, **kwargs)


def create_cosmic_retriever(
    name: str | None,
    target: RetrievalTarget,
    *,
    http_client: HTTPClient | None = None,
    user_agent: str = DEFAULT_USER_AGENT,
    **kwargs: Any,
) -> FileRetriever:
    """Create a retriever for COSMIC's two-phase download.

    The handshake is sent with credentials; the signed URL it returns is
    downloaded without them.
    """
    _require_credentials(target)
    authenticated = AuthenticatedTransport(
        _base_transport(target, http_client, user_agent), lambda: target.credentials
    )
    logger = kwargs.get("logger")
    return FileRetriever(
        name,
        target=target,
        transport=authenticated.without_credentials(),
        url_resolver=CosmicUrlResolver(authenticated, logger=logger),
        owns_transport=True,
        **kwargs,
    )


_FACTORIES: dict[str, Callable[..., FileRetriever]] = {
    "plain": create_file_retriever,
    "authenticated": create_authenticated_retriever,
    "cosmic": create_cosmic_retriever,
}


def build_retriever(
    source: SourceConfig,
    settings: RetrievalSettings,
    *,
    http_client: HTTPClient | None = None,
    logger: logging.Logger | None = None,
) -> FileRetriever:
    """Build the retriever for a configured source.

    Args:
        source: Source configuration
        settings: Defaults for values the source leaves unset
        http_client: Shared HTTP client. A new one is created per retriever
            when omitted.
        logger: Logger for the retriever. Defaults to one named after the source.

    Returns:
        FileRetriever composed for ``source.kind``
    """
    factory = _FACTORIES[source.kind]
    return factory(
        source.name,
        source.to_target(settings),
        http_client=http_client,
        user_agent=settings.user_agent,
        logger=logger,
        retry_delay=settings.retry_delay_seconds,
    )


def _base_transport(
    target: RetrievalTarget,
    http_client: HTTPClient | None,
    user_agent: str,
) -> HttpTransport:
    if http_client is not None:
        return HttpTransport(http_client)
    return HttpTransport(
        config=HTTPClientConfig(timeout=target.timeout_seconds, user_agent=user_agent)
    )


def _require_credentials(target: RetrievalTarget) -> None:
    if target.credentials is None:
        raise InvalidConfigurationError(
            "An authenticated retriever needs credentials",
            destination=target.destination or None,
        )
