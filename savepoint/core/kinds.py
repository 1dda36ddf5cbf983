"""
savepoint Operation & Error Kind Enums
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Core enums naming the engine's operations and the ways they can fail.
"""

from enum import StrEnum

__all__ = ["Operation", "ErrorKind", "NotifyLevel"]


class Operation(StrEnum):
    """
    A mutating request the engine can serve.

    Each one runs through the mutation serializer and is recorded in
    the operation journal. Listing is a plain read and has no member.
    """

    SAVE = "SAVE"
    ROLLBACK = "ROLLBACK"
    UNDO_ROLLBACK = "UNDO_ROLLBACK"
    DELETE = "DELETE"
    BACKUP = "BACKUP"
    RESTORE = "RESTORE"

    def touches_project_root(self) -> bool:
        """Return True if this operation rewrites the working tree."""
        return self in (
            Operation.ROLLBACK,
            Operation.UNDO_ROLLBACK,
            Operation.RESTORE,
        )


class ErrorKind(StrEnum):
    """
    Why an operation failed.

    - NOT_FOUND: referenced save point, backup or project root is absent.
    - ALREADY_EXISTS: name collision on create.
    - IO_FAILURE: a copy, delete, read or write error.
    - INTERRUPTED: the worker was cancelled or shut down mid-operation.
    - NOTHING_TO_UNDO: no pre-rollback record exists.
    - INVALID_NAME: the name cannot be stored as a single entry.
    """

    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    IO_FAILURE = "IO_FAILURE"
    INTERRUPTED = "INTERRUPTED"
    NOTHING_TO_UNDO = "NOTHING_TO_UNDO"
    INVALID_NAME = "INVALID_NAME"


class NotifyLevel(StrEnum):
    """Severity passed to the host when reporting an outcome."""

    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
