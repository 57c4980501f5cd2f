"""Fetch CLI command.

Refreshes the local copy of every configured source whose copy is missing
or stale.

Usage:
    python -m release_retrieval.cli fetch --sources sources.json
    python -m release_retrieval.cli fetch --sources sources.json --only cosmic
    python -m release_retrieval.cli fetch --sources sources.json --log-dir logs --gunzip
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from release_retrieval.config.settings import get_settings, load_sources
from release_retrieval.retrieval.factory import build_retriever
from release_retrieval.retrieval.protocol import RetrievalError
from release_retrieval.utils.gunzip import GUnzipTask, gunzip_all, gunzip_target
from release_retrieval.utils.http_client import HTTPClient, HTTPClientConfig
from release_retrieval.utils.logging import configure_retriever_logger

if TYPE_CHECKING:
    from release_retrieval.config.settings import RetrievalSettings, SourceConfig

logger = logging.getLogger(__name__)


@dataclass
class FetchOutcome:
    """Result of refreshing one source."""

    name: str
    path: Path | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def fetch_sources(
    sources: list[SourceConfig],
    settings: RetrievalSettings,
    log_dir: Path | None = None,
    http_client: HTTPClient | None = None,
) -> list[FetchOutcome]:
    """Run fetch_data() for each source in turn.

    A failing source is recorded and does not stop the others.
    """
    owns_client = http_client is None
    client = http_client or HTTPClient(
        HTTPClientConfig(timeout=settings.timeout_seconds, user_agent=settings.user_agent)
    )
    outcomes: list[FetchOutcome] = []
    try:
        for source in sources:
            source_logger = configure_retriever_logger(source.name, log_dir)
            try:
                retriever = build_retriever(
                    source, settings, http_client=client, logger=source_logger
                )
                async with retriever:
                    path = await retriever.fetch_data()
            except RetrievalError as e:
                source_logger.error("Retrieval of %s failed: %s", source.name, e)
                outcomes.append(FetchOutcome(name=source.name, error=str(e)))
                continue
            outcomes.append(FetchOutcome(name=source.name, path=path))
    finally:
        if owns_client:
            await client.close()
    return outcomes


def _gunzip_fetched(outcomes: list[FetchOutcome]) -> None:
    tasks = [
        GUnzipTask(outcome.path, gunzip_target(outcome.path))
        for outcome in outcomes
        if outcome.path is not None and outcome.path.suffix == ".gz"
    ]
    if tasks:
        gunzip_all(tasks)


async def _run_fetch_async(
    sources_path: str,
    only: list[str] | None = None,
    log_dir: str | None = None,
    gunzip: bool = False,
) -> int:
    """Run the fetch command asynchronously.

    Returns:
        Exit code (0 when every source was refreshed)
    """
    settings = get_settings()
    try:
        sources = load_sources(sources_path)
    except (OSError, ValueError) as e:
        print(f"Could not read sources from {sources_path}: {e}")
        return 2

    if only:
        unknown = set(only) - {source.name for source in sources}
        if unknown:
            print(f"Unknown source(s): {', '.join(sorted(unknown))}")
            return 2
        sources = [source for source in sources if source.name in only]

    directory = Path(log_dir) if log_dir else settings.log_dir
    outcomes = await fetch_sources(sources, settings, log_dir=directory)

    if gunzip:
        try:
            await asyncio.to_thread(_gunzip_fetched, outcomes)
        except OSError as e:
            print(f"Decompression failed: {e}")
            return 1

    print(f"\nFetched {sum(o.ok for o in outcomes)}/{len(outcomes)} source(s):")
    for outcome in outcomes:
        if outcome.ok:
            print(f"  {outcome.name}: {outcome.path}")
        else:
            print(f"  {outcome.name}: FAILED ({outcome.error})")

    return 0 if all(o.ok for o in outcomes) else 1


def run_fetch(
    sources_path: str,
    only: list[str] | None = None,
    log_dir: str | None = None,
    gunzip: bool = False,
) -> int:
    """Run fetch command.

    Args:
        sources_path: JSON file listing the sources
        only: Names of the sources to fetch (all when omitted)
        log_dir: Directory for per-source log files
        gunzip: Decompress fetched ``.gz`` files next to them

    Returns:
        Exit code (0 for success)
    """
    return asyncio.run(
        _run_fetch_async(
            sources_path=sources_path,
            only=only,
            log_dir=log_dir,
            gunzip=gunzip,
        )
    )
