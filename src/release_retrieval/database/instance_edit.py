"""InstanceEdit creation.

Every release step that writes to the database attributes its changes to a
Person through an InstanceEdit carrying an author, a timestamp and a note.

Example usage:
    edit = await create_instance_edit(store, person_id=8948690, creator_name="AddLinks")
    reference.attributes["created"] = edit
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from release_retrieval.database.exceptions import (
    FetchFailed,
    PersonNotFound,
    StorageFailed,
    UpdateFailed,
)
from release_retrieval.database.store import INSTANCE_EDIT, Instance

if TYPE_CHECKING:
    from collections.abc import Callable

    from release_retrieval.database.store import InstanceStore

logger = logging.getLogger(__name__)

DATE_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def _display_name(person: Instance, date_time: str) -> str:
    surname = person.get("surname")
    initial = person.get("initial")
    if surname and initial:
        author = f"{surname}, {initial}"
    else:
        author = surname or person.display_name
    return f"{author}, {date_time}"


def build_instance_edit(
    person: Instance,
    note: str,
    *,
    now: Callable[[], datetime] = datetime.now,
) -> Instance:
    """Build an unsaved InstanceEdit authored by ``person``."""
    date_time = now().strftime(DATE_TIME_FORMAT)
    return Instance(
        schema_class=INSTANCE_EDIT,
        attributes={"author": [person], "dateTime": date_time, "note": note},
        display_name=_display_name(person, date_time),
    )


async def create_default_instance_edit(
    store: InstanceStore,
    person_id: int,
    need_store: bool,
    note: str,
) -> Instance:
    """Create an InstanceEdit authored by the Person with ``person_id``.

    Args:
        store: Database the person is read from and the edit written to
        person_id: Database ID of the author
        need_store: Store the new edit in the database
        note: Note recorded on the edit

    Returns:
        The new InstanceEdit (with its db_id set when stored)

    Raises:
        FetchFailed: If the person could not be fetched
        PersonNotFound: If no person exists with ``person_id``
        StorageFailed: If the edit could not be stored
    """
    try:
        person = await store.fetch_instance(person_id)
    except Exception as e:
        raise FetchFailed(f"Could not fetch Person {person_id}: {e}") from e
    if person is None:
        raise PersonNotFound(person_id)

    edit = build_instance_edit(person, note)
    if need_store:
        try:
            edit.db_id = await store.store_instance(edit)
        except Exception as e:
            raise StorageFailed(f"Could not store InstanceEdit: {e}") from e
        logger.debug("Stored InstanceEdit %s (%s)", edit.db_id, edit.display_name)
    return edit


async def create_instance_edit(
    store: InstanceStore,
    person_id: int,
    creator_name: str,
) -> Instance:
    """Create, store and update an InstanceEdit noted "Inserted by <creator_name>".

    Raises:
        FetchFailed, PersonNotFound, StorageFailed: See create_default_instance_edit()
        UpdateFailed: If the stored edit could not be updated
    """
    edit = await create_default_instance_edit(
        store, person_id, True, f"Inserted by {creator_name}"
    )
    try:
        await store.update_instance(edit)
    except Exception as e:
        raise UpdateFailed(f"Could not update InstanceEdit {edit.db_id}: {e}") from e
    return edit
