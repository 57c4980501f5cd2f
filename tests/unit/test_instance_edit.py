"""Tests for InstanceEdit creation."""

from __future__ import annotations

from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from release_retrieval.database import (
    FetchFailed,
    Instance,
    InstanceStore,
    PersonNotFound,
    StorageFailed,
    UpdateFailed,
    create_default_instance_edit,
    create_instance_edit,
)
from release_retrieval.database.instance_edit import build_instance_edit
from release_retrieval.database.store import INSTANCE_EDIT, PERSON


def _person() -> Instance:
    return Instance(
        schema_class=PERSON,
        attributes={"surname": "Smith", "initial": "J"},
        db_id=8948690,
        display_name="Smith, J",
    )


def _store(person: Instance | None = None) -> AsyncMock:
    store = AsyncMock(spec=InstanceStore)
    store.fetch_instance.return_value = person
    store.store_instance.return_value = 12345
    return store


class TestBuildInstanceEdit:
    """Tests for build_instance_edit()."""

    def test_attributes_and_display_name(self) -> None:
        person = _person()

        edit = build_instance_edit(
            person, "Inserted by AddLinks", now=lambda: datetime(2024, 3, 1, 9, 30, 0)
        )

        assert edit.schema_class == INSTANCE_EDIT
        assert edit.get("author") == [person]
        assert edit.get("dateTime") == "2024-03-01 09:30:00"
        assert edit.get("note") == "Inserted by AddLinks"
        assert edit.display_name == "Smith, J, 2024-03-01 09:30:00"
        assert edit.db_id is None

    def test_display_name_without_initial(self) -> None:
        person = Instance(schema_class=PERSON, attributes={"surname": "Smith"})

        edit = build_instance_edit(person, "note", now=lambda: datetime(2024, 1, 1))

        assert edit.display_name == "Smith, 2024-01-01 00:00:00"


@pytest.mark.asyncio
class TestCreateDefaultInstanceEdit:
    """Tests for create_default_instance_edit()."""

    async def test_stored_when_requested(self) -> None:
        store = _store(_person())

        edit = await create_default_instance_edit(store, 8948690, True, "note")

        store.fetch_instance.assert_awaited_once_with(8948690)
        store.store_instance.assert_awaited_once_with(edit)
        assert edit.db_id == 12345

    async def test_not_stored_unless_requested(self) -> None:
        store = _store(_person())

        edit = await create_default_instance_edit(store, 8948690, False, "note")

        store.store_instance.assert_not_awaited()
        assert edit.db_id is None

    async def test_missing_person(self) -> None:
        """An unknown person ID raises PersonNotFound."""
        with pytest.raises(PersonNotFound) as exc_info:
            await create_default_instance_edit(_store(None), 42, True, "note")

        assert exc_info.value.db_id == 42
        assert "Could not fetch Person entity with ID 42" in str(exc_info.value)

    async def test_fetch_error(self) -> None:
        store = _store()
        store.fetch_instance.side_effect = RuntimeError("connection lost")

        with pytest.raises(FetchFailed, match="connection lost"):
            await create_default_instance_edit(store, 42, True, "note")

    async def test_store_error(self) -> None:
        store = _store(_person())
        store.store_instance.side_effect = RuntimeError("read only")

        with pytest.raises(StorageFailed, match="read only"):
            await create_default_instance_edit(store, 42, True, "note")


@pytest.mark.asyncio
class TestCreateInstanceEdit:
    """Tests for create_instance_edit()."""

    async def test_note_names_creator(self) -> None:
        """The note records the creator and the edit is stored then updated."""
        store = _store(_person())

        edit = await create_instance_edit(store, 8948690, "AddLinks")

        assert edit.get("note") == "Inserted by AddLinks"
        store.store_instance.assert_awaited_once()
        store.update_instance.assert_awaited_once_with(edit)

    async def test_update_error(self) -> None:
        store = _store(_person())
        store.update_instance.side_effect = RuntimeError("deadlock")

        with pytest.raises(UpdateFailed, match="deadlock"):
            await create_instance_edit(store, 8948690, "AddLinks")
