"""
savepoint — Named save points and one-step rollback for project trees.

savepoint captures whole-directory snapshots of a project under a
per-project storage key and lets a user:

- Save the project tree under a name, with an optional message
- List save points, newest first
- Roll the tree back to any save point
- Undo the most recent rollback (one level, always the latest)
- Keep a single whole-project backup and restore from it

Quick Start::

    from savepoint import SavePointSession

    with SavePointSession.default("/work/app") as session:
        session.save("before-refactor", "all tests green")
        result = session.rollback_to("before-refactor")
        if not result:
            print(result.error_kind, result.message)
        session.undo_rollback()
"""

from savepoint.config.schema import SavePointConfig
from savepoint.core.host import ConsoleHost, HostBridge, NullHost
from savepoint.core.kinds import ErrorKind, NotifyLevel, Operation
from savepoint.core.outcome import (
    BackupInfo,
    CopyFailure,
    CopyReport,
    OperationResult,
    PreRollbackRecord,
    SavePointInfo,
)
from savepoint.core.session import SavePointSession
from savepoint.observability.exporters.stdout_exporter import StdoutExporter
from savepoint.rollback.controller import RollbackController
from savepoint.storage.path_key import PathKeyCodec, encode_project_key

__version__ = "0.1.0"

__all__ = [
    # Main class
    "SavePointSession",
    "RollbackController",
    "SavePointConfig",
    # Enums
    "Operation",
    "ErrorKind",
    "NotifyLevel",
    # Data models
    "CopyFailure",
    "CopyReport",
    "SavePointInfo",
    "PreRollbackRecord",
    "BackupInfo",
    "OperationResult",
    # Host integration
    "HostBridge",
    "NullHost",
    "ConsoleHost",
    # Storage keys
    "PathKeyCodec",
    "encode_project_key",
    # Exporters
    "StdoutExporter",
    # Version
    "__version__",
]
