"""Parallel gzip decompression.

Downloaded source files are often large gzip archives. Decompressing them
one after another is slow, so ``gunzip_all`` runs a batch of ``GUnzipTask``
objects on a thread pool. Source archives are left in place.

Example usage:
    gunzip_all([
        GUnzipTask(Path("large_file_1.dat.gz"), Path("large_file_1.dat")),
        GUnzipTask(Path("large_text_file.csv.gz"), Path("/data/large_text_file.csv")),
    ])
"""

from __future__ import annotations

import gzip
import logging
import shutil
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

COPY_BUFFER_SIZE = 1024 * 1024


@dataclass(frozen=True, slots=True)
class GUnzipTask:
    """Decompress ``source`` into ``target``; calling the task runs it."""

    source: Path
    target: Path

    def decompress(self) -> None:
        logger.info("Extracting %s to %s", self.source, self.target)
        with gzip.open(self.source, "rb") as gz, open(self.target, "wb") as out:
            shutil.copyfileobj(gz, out, COPY_BUFFER_SIZE)
        logger.info("Completed: Extraction of %s to %s", self.source, self.target)

    def __call__(self) -> bool:
        self.decompress()
        return True


def gunzip_target(source: Path) -> Path:
    """Default target for ``source``: the same path without its ``.gz`` suffix."""
    source = Path(source)
    if source.suffix == ".gz":
        return source.with_suffix("")
    return source.with_name(source.name + ".out")


def gunzip_all(tasks: Iterable[GUnzipTask], max_workers: int | None = None) -> list[bool]:
    """Run ``tasks`` in parallel and wait for all of them.

    Returns:
        One result per task, in order

    Raises:
        OSError: The first failure (in task order), raised once every task
            has finished. gzip.BadGzipFile is an OSError.
    """
    tasks = list(tasks)
    if not tasks:
        return []

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(task) for task in tasks]

    results: list[bool] = []
    first_error: BaseException | None = None
    for task, future in zip(tasks, futures, strict=True):
        error = future.exception()
        if error is None:
            results.append(future.result())
            continue
        logger.error("Extraction of %s failed: %s", task.source, error)
        results.append(False)
        if first_error is None:
            first_error = error
    if first_error is not None:
        raise first_error
    return results
