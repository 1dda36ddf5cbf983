"""
savepoint Custom Exceptions
~~~~~~~~~~~~~~~~~~~~~~~~~~~

All custom exception classes for savepoint, organized by domain.
Every distinct failure mode has its own exception type, and every
engine exception carries the ``ErrorKind`` it is reported as.

**Structured Error Messages**

Name and collision errors render three structured sections:
- ``what_happened``: Clear plain-English description
- ``entry``: The save point involved
- ``how_to_fix``: Concrete, actionable steps
"""

from __future__ import annotations

from savepoint.core.kinds import ErrorKind

__all__ = [
    # Base
    "SavePointError",
    # Config
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigValidationError",
    # Storage
    "StorageError",
    "StoreIOError",
    "MetadataMissingError",
    # Snapshot
    "SnapshotError",
    "SnapshotNotFoundError",
    "SnapshotExistsError",
    "InvalidNameError",
    "ProjectRootNotFoundError",
    "BackupNotFoundError",
    # Rollback
    "RollbackError",
    "NothingToUndoError",
    "OperationInterruptedError",
]


# ── Formatting Helper ────────────────────────────────────────────────────────

_SEPARATOR = "─" * 52


def _format_structured_error(
    title: str,
    what_happened: str,
    entry: str,
    how_to_fix: str,
) -> str:
    """Build a structured, multi-line error message."""
    lines = [
        f"  {title}",
        f"  {_SEPARATOR}",
        "  What happened:",
        *[f"    {line}" for line in what_happened.strip().splitlines()],
        "",
        "  Save point:",
        f"    {entry}",
        "",
        "  How to fix:",
        *[f"    {line}" for line in how_to_fix.strip().splitlines()],
    ]
    return "\n".join(lines)


# ── Base Exception ───────────────────────────────────────────────────────────


class SavePointError(Exception):
    """Base exception for all savepoint errors."""

    kind: ErrorKind = ErrorKind.IO_FAILURE

    def __init__(self, message: str = "", details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)

    @property
    def summary(self) -> str:
        """The one-line message, without any structured rendering."""
        return str(self.args[0]) if self.args else ""


# ── Config Exceptions ────────────────────────────────────────────────────────


class ConfigError(SavePointError):
    """Base exception for configuration-related errors."""


class ConfigFileNotFoundError(ConfigError):
    """Raised when a configuration file cannot be found at the specified path."""

    kind = ErrorKind.NOT_FOUND


class ConfigValidationError(ConfigError):
    """Raised when configuration values fail validation."""


# ── Storage Exceptions ───────────────────────────────────────────────────────


class StorageError(SavePointError):
    """Base exception for snapshot and backup storage errors."""


class StoreIOError(StorageError):
    """Raised when a copy, delete, read or write could not be carried out."""


class MetadataMissingError(StorageError):
    """Raised in strict mode when a stored entry has no sidecar record."""


# ── Snapshot Exceptions ──────────────────────────────────────────────────────


class SnapshotError(SavePointError):
    """Base exception for save point errors."""


class SnapshotNotFoundError(SnapshotError):
    """Raised when a save point with the given name does not exist."""

    kind = ErrorKind.NOT_FOUND


class SnapshotExistsError(SnapshotError):
    """
    Raised when a save point name is already taken.

    Structured fields:
    - ``what_happened``: description of the collision
    - ``how_to_fix``: actionable remediation steps
    """

    kind = ErrorKind.ALREADY_EXISTS

    def __init__(
        self,
        message: str = "Save point already exists",
        name: str = "",
        details: dict | None = None,
    ) -> None:
        self.name = name
        self.what_happened = f"A save point named '{name}' is already stored."
        self.how_to_fix = (
            "1. Pick a different name for the new save point\n"
            f"2. Or delete the old one first: savepoint delete {name}"
        )
        super().__init__(message, details)

    def __str__(self) -> str:
        return _format_structured_error(
            title=f"SnapshotExistsError: {self.args[0]}",
            what_happened=self.what_happened,
            entry=self.name,
            how_to_fix=self.how_to_fix,
        )


class InvalidNameError(SnapshotError):
    """
    Raised when a save point name cannot be used as a storage entry.

    Structured fields:
    - ``what_happened``: which rule the name breaks
    - ``how_to_fix``: actionable remediation steps
    """

    kind = ErrorKind.INVALID_NAME

    def __init__(
        self,
        message: str = "Invalid save point name",
        name: str = "",
        reason: str = "",
        details: dict | None = None,
    ) -> None:
        self.name = name
        self.reason = reason
        self.what_happened = reason or f"'{name}' is not a usable save point name."
        self.how_to_fix = (
            "1. Use a single path segment without / \\ : * ? \" < > |\n"
            "2. Avoid the reserved name 'preRollback', a leading dot,\n"
            "   and .txt/.zip endings"
        )
        super().__init__(message, details)

    def __str__(self) -> str:
        return _format_structured_error(
            title=f"InvalidNameError: {self.args[0]}",
            what_happened=self.what_happened,
            entry=repr(self.name),
            how_to_fix=self.how_to_fix,
        )


class ProjectRootNotFoundError(SnapshotError):
    """Raised when the project root directory does not exist."""

    kind = ErrorKind.NOT_FOUND


class BackupNotFoundError(SnapshotError):
    """Raised when there is no usable project backup to restore."""

    kind = ErrorKind.NOT_FOUND


# ── Rollback Exceptions ──────────────────────────────────────────────────────


class RollbackError(SavePointError):
    """Base exception for rollback errors."""


class NothingToUndoError(RollbackError):
    """Raised when undo is requested but no pre-rollback record exists."""

    kind = ErrorKind.NOTHING_TO_UNDO


class OperationInterruptedError(RollbackError):
    """Raised when a mutation is cancelled or its worker is shut down."""

    kind = ErrorKind.INTERRUPTED
