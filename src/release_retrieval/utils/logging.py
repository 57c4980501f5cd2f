"""Per-retriever log files.

Each retriever can log to a file of its own, named after the retriever, so
that the output of one source's refresh can be read in isolation.

Example usage:
    logger = configure_retriever_logger("uniprot", Path("logs"))
    retriever = FileRetriever("uniprot", target=target, logger=logger)
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

PACKAGE_LOGGER = "release_retrieval"
LOG_FORMAT = "%(asctime)s %(levelname)-5s %(name)s - %(message)s"

DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10MB
DEFAULT_BACKUP_COUNT = 5

NOISY_LOGGERS = ["aiohttp", "asyncio"]


def suppress_noisy_loggers() -> None:
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_retriever_logger(
    name: str | None,
    log_dir: Path | None = None,
    *,
    level: int = logging.DEBUG,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
) -> logging.Logger:
    """Return the logger for retriever ``name``.

    When ``log_dir`` is given, a rotating file handler writing
    ``<log_dir>/<name>.log`` is attached. Calling this again for the same
    name and directory does not attach a second handler.

    Args:
        name: Retriever name. A blank name returns the package logger.
        log_dir: Directory for the log file
        level: Level of the file handler
        max_bytes: Size at which the log file is rotated
        backup_count: Number of rotated files kept

    Returns:
        The configured logger
    """
    suppress_noisy_loggers()

    if not name or not name.strip():
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        package_logger.warning(
            "Retriever has no name, so no custom log file will be used."
        )
        return package_logger

    name = name.strip()
    logger = logging.getLogger(f"{PACKAGE_LOGGER}.{name}")
    if log_dir is None:
        return logger

    log_path = (Path(log_dir) / f"{name}.log").resolve()
    for handler in logger.handlers:
        if (
            isinstance(handler, RotatingFileHandler)
            and Path(handler.baseFilename) == log_path
        ):
            return logger

    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    if logger.level == logging.NOTSET or logger.level > level:
        logger.setLevel(level)
    return logger
