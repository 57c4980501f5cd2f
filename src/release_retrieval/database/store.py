"""Instance store boundary.

Release steps record who changed the database through InstanceEdit
instances. The store itself (a MySQL-backed graph database adaptor) is an
external collaborator; this module defines only the shape of the objects
exchanged with it and the calls made on it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

INSTANCE_EDIT = "InstanceEdit"
PERSON = "Person"


@dataclass
class Instance:
    """A database instance: schema class plus attribute values.

    Attributes:
        schema_class: Name of the schema class (e.g. "Person")
        attributes: Attribute values by attribute name
        db_id: Database ID, None until the instance is stored
        display_name: Human-readable name
    """

    schema_class: str
    attributes: dict[str, Any] = field(default_factory=dict)
    db_id: int | None = None
    display_name: str = ""

    def get(self, attribute: str, default: Any = None) -> Any:
        return self.attributes.get(attribute, default)


@runtime_checkable
class InstanceStore(Protocol):
    """Calls made on the release database."""

    async def fetch_instance(self, db_id: int) -> Instance | None:
        """Fetch the instance with ``db_id``, or None if there is none."""
        ...

    async def store_instance(self, instance: Instance) -> int:
        """Store a new instance and return its database ID."""
        ...

    async def update_instance(self, instance: Instance) -> None:
        """Write the attributes of an existing instance back."""
        ...
