"""Retrieval configuration using pydantic-settings.

Process-wide defaults come from environment variables (prefix
``RELEASE_RETRIEVAL_``). The list of sources to keep up to date is read from
a JSON file; any value a source leaves unset falls back to the defaults.

Example sources file:
    {
      "sources": [
        {"name": "uniprot", "uri": "ftp://ftp.ebi.ac.uk/pub/README",
         "destination": "/data/uniprot/README"},
        {"name": "cosmic", "kind": "cosmic",
         "uri": "https://cancer.sanger.ac.uk/cosmic/file_download/GRCh38/cosmic/v92/classification.csv",
         "destination": "/data/cosmic/classification.csv",
         "username": "me@example.org", "password": "secret"}
      ]
    }
"""

from __future__ import annotations

import json
import logging
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from release_retrieval.retrieval.protocol import Credentials, RetrievalTarget
from release_retrieval.utils.http_client import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)

SourceKind = Literal["plain", "authenticated", "cosmic"]


class RetrievalSettings(BaseSettings):
    """Defaults shared by every configured source.

    All settings can be overridden via environment variables.
    The prefix RELEASE_RETRIEVAL_ is used for all settings.

    Example:
        export RELEASE_RETRIEVAL_TIMEOUT_SECONDS=60
        export RELEASE_RETRIEVAL_PASSIVE_FTP=true
    """

    model_config = SettingsConfigDict(
        env_prefix="RELEASE_RETRIEVAL_",
        case_sensitive=False,
    )

    # Fetch defaults
    timeout_seconds: float = Field(default=30.0, gt=0)
    num_retries: int = Field(default=1, ge=0)
    max_age_seconds: float = Field(default=86400.0, ge=0)
    passive_ftp: bool = False
    retry_delay_seconds: float = Field(default=0.0, ge=0)

    # Logging
    log_dir: Path | None = None

    # HTTP
    user_agent: str = DEFAULT_USER_AGENT

    # Ensembl REST pacing
    ensembl_requests_per_second: float = Field(default=15.0, gt=0)


class SourceConfig(BaseModel):
    """One external source and where its file goes."""

    name: str = Field(min_length=1, description="Logical name of the source")
    uri: str = Field(min_length=1, description="Source URI")
    destination: str = Field(min_length=1, description="Local destination path")
    kind: SourceKind = "plain"
    max_age_seconds: float | None = Field(default=None, ge=0)
    timeout_seconds: float | None = Field(default=None, gt=0)
    num_retries: int | None = Field(default=None, ge=0)
    passive_ftp: bool | None = None
    username: str | None = None
    password: SecretStr | None = None

    @model_validator(mode="after")
    def _check_credentials(self) -> SourceConfig:
        if self.kind != "plain" and (not self.username or self.password is None):
            raise ValueError(f"{self.kind} source {self.name!r} needs a username and password")
        return self

    @property
    def credentials(self) -> Credentials | None:
        if not self.username:
            return None
        password = self.password.get_secret_value() if self.password else ""
        return Credentials(self.username, password)

    def to_target(self, settings: RetrievalSettings) -> RetrievalTarget:
        """Build the retrieval target, filling unset values from ``settings``."""
        max_age = settings.max_age_seconds if self.max_age_seconds is None else self.max_age_seconds
        timeout = settings.timeout_seconds if self.timeout_seconds is None else self.timeout_seconds
        return RetrievalTarget(
            uri=self.uri,
            destination=self.destination,
            max_age=timedelta(seconds=max_age),
            timeout=timedelta(seconds=timeout),
            num_retries=settings.num_retries if self.num_retries is None else self.num_retries,
            passive_ftp=settings.passive_ftp if self.passive_ftp is None else self.passive_ftp,
            credentials=self.credentials,
        )


class SourcesFile(BaseModel):
    sources: list[SourceConfig] = Field(default_factory=list)


def load_sources(path: str | Path) -> list[SourceConfig]:
    """Read the JSON sources file at ``path``.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the file is not valid JSON
        pydantic.ValidationError: If a source entry is invalid
    """
    with open(path, encoding="utf-8") as fh:
        document = json.load(fh)
    return SourcesFile.model_validate(document).sources


def load_env_file() -> Path | None:
    """Load the nearest .env file, searching up from the working directory.

    Returns:
        Path of the loaded file, or None if there is none
    """
    found = find_dotenv(usecwd=True)
    if not found:
        return None
    load_dotenv(found)
    logger.debug("Loaded environment from %s", found)
    return Path(found)


@lru_cache
def get_settings() -> RetrievalSettings:
    """Get cached settings instance.

    Variables from a .env file are loaded first; variables already set in the
    environment take precedence.

    Returns:
        RetrievalSettings loaded from environment.
    """
    load_env_file()
    return RetrievalSettings()
