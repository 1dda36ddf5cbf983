"""savepoint core module — operation kinds and outcome models."""

from savepoint.core.kinds import ErrorKind, NotifyLevel, Operation
from savepoint.core.outcome import (
    BackupInfo,
    CopyFailure,
    CopyReport,
    OperationResult,
    PreRollbackRecord,
    SavePointInfo,
)

__all__ = [
    "Operation",
    "ErrorKind",
    "NotifyLevel",
    "CopyFailure",
    "CopyReport",
    "SavePointInfo",
    "PreRollbackRecord",
    "BackupInfo",
    "OperationResult",
]
