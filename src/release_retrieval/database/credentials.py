"""Database connection parameters read from release properties.

Release steps talk to two databases, the curator database and the release
database. Their connection parameters live in the step's properties file
under a shared prefix:

    release.database.host=localhost
    release.database.name=release_current
    release.database.user=writer
    release.database.password=secret
    release.database.port=3306

Usage:
    props = MandatoryProperties.from_file("config.properties")
    creds = release_credentials(props)
    adaptor = GraphDatabaseAdaptor(**creds.dsn)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

CURATOR_DATABASE_PREFIX = "curator.database"
RELEASE_DATABASE_PREFIX = "release.database"

DEFAULT_HOST = "localhost"
DEFAULT_USER = "root"
DEFAULT_PASSWORD = "root"
DEFAULT_PORT = 3306


@dataclass(frozen=True)
class DatabaseCredentials:
    """MySQL connection credentials for the graph database adaptor."""

    host: str
    port: int
    database: str
    username: str
    password: str = field(repr=False)

    @property
    def dsn(self) -> dict[str, Any]:
        """Return connection parameters as keyword arguments."""
        return {
            "host": self.host,
            "port": self.port,
            "database": self.database,
            "user": self.username,
            "password": self.password,
        }


def _lookup(properties: Mapping[str, str], key: str, default: str | None) -> str | None:
    # Mapping.get() on MandatoryProperties falls back instead of raising
    value = properties.get(key)
    if value is None or not value.strip():
        return default
    return value.strip()


def credentials_from_properties(
    prefix: str, properties: Mapping[str, str]
) -> DatabaseCredentials:
    """Read ``<prefix>.host/.name/.user/.password/.port`` from ``properties``.

    Host, user, password and port fall back to localhost, root, root and
    3306. The database name has no default.

    Raises:
        ValueError: If the name is missing or the port is not an integer
    """
    name = _lookup(properties, f"{prefix}.name", None)
    if name is None:
        raise ValueError(f"No database name configured under {prefix}.name")

    port = _lookup(properties, f"{prefix}.port", str(DEFAULT_PORT))
    try:
        port_number = int(port or DEFAULT_PORT)
    except ValueError as e:
        raise ValueError(f"{prefix}.port is not a number: {port!r}") from e

    return DatabaseCredentials(
        host=_lookup(properties, f"{prefix}.host", DEFAULT_HOST) or DEFAULT_HOST,
        port=port_number,
        database=name,
        username=_lookup(properties, f"{prefix}.user", DEFAULT_USER) or DEFAULT_USER,
        password=_lookup(properties, f"{prefix}.password", DEFAULT_PASSWORD) or DEFAULT_PASSWORD,
    )


def curator_credentials(properties: Mapping[str, str]) -> DatabaseCredentials:
    return credentials_from_properties(CURATOR_DATABASE_PREFIX, properties)


def release_credentials(properties: Mapping[str, str]) -> DatabaseCredentials:
    return credentials_from_properties(RELEASE_DATABASE_PREFIX, properties)
