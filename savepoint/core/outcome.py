"""
savepoint Outcome & Record Data Models
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Defines the dataclasses that flow out of the engine: the per-walk
CopyReport, the stored record types, and OperationResult, the single
success/failure value every public operation returns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from savepoint.core.kinds import ErrorKind, Operation

__all__ = [
    "CopyFailure",
    "CopyReport",
    "SavePointInfo",
    "PreRollbackRecord",
    "BackupInfo",
    "OperationResult",
]


@dataclass(frozen=True)
class CopyFailure:
    """One entry a tree walk could not process."""

    path: str
    error: str


@dataclass
class CopyReport:
    """
    Partial-result record of a tree walk.

    Walks continue past per-entry errors; this is where those errors
    end up so callers can inspect them instead of reading a console.

    Attributes:
        files: Regular files copied, archived or deleted.
        directories: Directories created or removed.
        skipped: Symlinks, special files and excluded entries left alone.
        failures: Entries that raised while being processed.
    """

    files: int = 0
    directories: int = 0
    skipped: list[str] = field(default_factory=list)
    failures: list[CopyFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Return True if no entry failed."""
        return not self.failures

    def record_failure(self, path: Path | str, exc: BaseException) -> None:
        self.failures.append(CopyFailure(path=str(path), error=str(exc)))

    def merge(self, other: CopyReport) -> CopyReport:
        """Fold another report into this one and return self."""
        self.files += other.files
        self.directories += other.directories
        self.skipped.extend(other.skipped)
        self.failures.extend(other.failures)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "files": self.files,
            "directories": self.directories,
            "skipped": list(self.skipped),
            "failures": [{"path": f.path, "error": f.error} for f in self.failures],
        }


@dataclass(frozen=True)
class SavePointInfo:
    """
    A stored save point as reported by a listing.

    Attributes:
        name: User-chosen name, unique within the project.
        timestamp: Creation time in the store's fixed-width format.
        message: Free text; may be empty.
        content_path: Where the copied tree (or archive) lives.
    """

    name: str
    timestamp: str
    message: str
    content_path: Path

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "timestamp": self.timestamp,
            "message": self.message,
            "content_path": str(self.content_path),
        }


@dataclass(frozen=True)
class PreRollbackRecord:
    """The single safety copy taken just before the latest rollback."""

    content_path: Path
    timestamp: str
    origin: str = ""


@dataclass(frozen=True)
class BackupInfo:
    """The single whole-project backup."""

    content_path: Path
    timestamp: str
    message: str = ""


@dataclass
class OperationResult:
    """
    The outcome of one engine operation.

    Public operations never raise past the engine boundary; they
    return one of these instead, and the host turns it into a dialog
    or a notification.

    Attributes:
        operation: Which operation ran.
        success: Whether it completed.
        message: Human-readable summary for the host.
        error_kind: Why it failed, if it did.
        target: The save point name involved, if any.
        report: Aggregated walk report for the copy/delete phases.
        duration_ms: Wall-clock duration in milliseconds.
        timestamp: When the operation finished.
    """

    operation: Operation
    success: bool
    message: str = ""
    error_kind: ErrorKind | None = None
    target: str | None = None
    report: CopyReport | None = None
    duration_ms: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __bool__(self) -> bool:
        return self.success

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-safe dictionary."""
        return {
            "operation": self.operation.value,
            "success": self.success,
            "message": self.message,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "target": self.target,
            "report": self.report.to_dict() if self.report else None,
            "duration_ms": self.duration_ms,
            "timestamp": self.timestamp.isoformat(),
        }
