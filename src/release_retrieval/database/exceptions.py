"""Errors raised when talking to the release database."""

from __future__ import annotations


class DatabaseError(Exception):
    """Raised when database operations fail."""

    pass


class FetchFailed(DatabaseError):
    """Raised when an instance could not be fetched."""

    pass


class StorageFailed(DatabaseError):
    """Raised when a new instance could not be stored."""

    pass


class UpdateFailed(DatabaseError):
    """Raised when an existing instance could not be updated."""

    pass


class PersonNotFound(DatabaseError):
    """Raised when no Person instance exists with the requested ID."""

    def __init__(self, db_id: int) -> None:
        super().__init__(
            f"Could not fetch Person entity with ID {db_id}. "
            "Please check that a Person entity exists in the database with this ID."
        )
        self.db_id = db_id
