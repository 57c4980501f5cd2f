"""Release database boundary: connection parameters, instance store protocol and InstanceEdit creation."""

from release_retrieval.database.credentials import (
    DatabaseCredentials,
    curator_credentials,
    release_credentials,
)
from release_retrieval.database.exceptions import (
    DatabaseError,
    FetchFailed,
    PersonNotFound,
    StorageFailed,
    UpdateFailed,
)
from release_retrieval.database.instance_edit import (
    create_default_instance_edit,
    create_instance_edit,
)
from release_retrieval.database.store import Instance, InstanceStore

__all__ = [
    "DatabaseCredentials",
    "DatabaseError",
    "FetchFailed",
    "Instance",
    "InstanceStore",
    "PersonNotFound",
    "StorageFailed",
    "UpdateFailed",
    "create_default_instance_edit",
    "create_instance_edit",
    "curator_credentials",
    "release_credentials",
]
