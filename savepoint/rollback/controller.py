"""
Rollback Controller
~~~~~~~~~~~~~~~~~~~

Orchestrates save, rollback, undo-rollback, delete, backup and restore
for one project by composing the tree copier and the stores, and runs
every mutation through the mutation serializer.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from collections.abc import Callable
from pathlib import Path

from savepoint.core.kinds import ErrorKind, Operation
from savepoint.core.outcome import (
    BackupInfo,
    CopyReport,
    OperationResult,
    PreRollbackRecord,
    SavePointInfo,
)
from savepoint.exceptions import (
    BackupNotFoundError,
    NothingToUndoError,
    ProjectRootNotFoundError,
    SavePointError,
    StoreIOError,
)
from savepoint.rollback.serializer import MutationSerializer
from savepoint.storage.backup_store import BackupStore
from savepoint.storage.encodings import ContentEncoding
from savepoint.storage.snapshot_store import SnapshotStore, validate_name
from savepoint.storage.tree_copier import TreeCopier

__all__ = ["RollbackController"]

logger = logging.getLogger(__name__)

_Work = Callable[[], tuple[str, CopyReport]]


def _require_complete(report: CopyReport, what: str) -> None:
    """Turn a walk with per-entry failures into a failed operation."""
    if report.failures:
        raise StoreIOError(
            f"{what}: {len(report.failures)} entries could not be processed "
            f"(first: {report.failures[0].path}: {report.failures[0].error})",
            details={"report": report},
        )


class RollbackController:
    """
    The state machine over one project's save points.

    Every public operation returns an OperationResult and never raises:
    engine exceptions and OSErrors are converted into failed results
    carrying an ErrorKind and a readable message.

    Only the single pre-rollback record can be undone: every rollback
    replaces it, a successful save clears it, and undo consumes it.
    """

    def __init__(
        self,
        project_root: str | os.PathLike[str],
        snapshots: SnapshotStore,
        backups: BackupStore,
        copier: TreeCopier,
        serializer: MutationSerializer | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self._root = Path(project_root)
        self._snapshots = snapshots
        self._backups = backups
        self._copier = copier
        self._serializer = serializer or MutationSerializer()
        self._cancel = cancel_event

    @property
    def project_root(self) -> Path:
        return self._root

    @property
    def snapshots(self) -> SnapshotStore:
        return self._snapshots

    @property
    def backups(self) -> BackupStore:
        return self._backups

    @property
    def serializer(self) -> MutationSerializer:
        return self._serializer

    # ── Mutations ─────────────────────────────────────────────────

    def save(self, name: str, message: str = "") -> OperationResult:
        """
        Capture the project root as a new save point.

        Fails with ALREADY_EXISTS on a name collision. A successful save
        clears the pre-rollback record.
        """

        def work() -> tuple[str, CopyReport]:
            self._require_root()
            validate_name(name)
            self._snapshots.reserve(name)
            try:
                report = self._snapshots.capture(name, self._root)
                _require_complete(report, f"Save point '{name}' is incomplete")
                self._snapshots.commit(name, message)
            except BaseException:
                self._snapshots.release(name)
                raise

            if self._snapshots.read_pre_rollback() is not None:
                cleared = self._snapshots.clear_pre_rollback()
                if not cleared.ok:
                    logger.warning("Pre-rollback copy could not be fully cleared")
                logger.debug("Cleared pre-rollback copy after save %s", name)
            return f"Save point '{name}' created.", report

        return self._execute(Operation.SAVE, work, target=name)

    def rollback_to(self, name: str) -> OperationResult:
        """
        Replace the project root with the content of save point ``name``.

        The current tree is copied into the pre-rollback record first; if
        that copy is incomplete the project root is left untouched.
        """

        def work() -> tuple[str, CopyReport]:
            self._require_root()
            info = self._snapshots.get(name)

            safety = self._snapshots.write_pre_rollback(self._root, origin=name)
            if safety.failures:
                # A partial copy must never be offered to undo
                self._snapshots.clear_pre_rollback()
                _require_complete(
                    safety, "Pre-rollback copy is incomplete, project left unchanged"
                )

            report = self._replace_root(info.content_path)
            _require_complete(
                report,
                f"Rollback to '{name}' is incomplete; undo restores the previous state",
            )
            return f"Rolled back to save point '{name}'.", report

        return self._execute(Operation.ROLLBACK, work, target=name)

    def undo_rollback(self) -> OperationResult:
        """
        Put back the tree captured just before the latest rollback.

        Fails with NOTHING_TO_UNDO if there is no pre-rollback record. The
        record is deleted only after it has been copied back completely.
        """

        def work() -> tuple[str, CopyReport]:
            record = self._snapshots.read_pre_rollback()
            if record is None:
                raise NothingToUndoError("There is no recent rollback to undo.")
            self._require_root()

            report = self._replace_root(record.content_path)
            _require_complete(
                report, "Undo is incomplete; the pre-rollback copy was kept"
            )
            cleared = self._snapshots.clear_pre_rollback()
            if not cleared.ok:
                logger.warning("Pre-rollback copy could not be fully removed after undo")
            origin = f" of '{record.origin}'" if record.origin else ""
            return f"Undid the rollback{origin}.", report

        return self._execute(Operation.UNDO_ROLLBACK, work, target=None)

    def delete_save_point(self, name: str) -> OperationResult:
        """
        Delete save point ``name``.

        Fails with NOT_FOUND for an unknown name, and with IO_FAILURE if
        the stored content survives the delete.
        """

        def work() -> tuple[str, CopyReport]:
            report = self._snapshots.delete(name)
            return f"Save point '{name}' deleted.", report

        return self._execute(Operation.DELETE, work, target=name)

    def backup_project(self, message: str = "") -> OperationResult:
        """Replace the single project backup with the current tree."""

        def work() -> tuple[str, CopyReport]:
            self._require_root()
            info, report = self._backups.write(self._root, message)
            _require_complete(report, "Project backup is incomplete")
            return f"Project backed up at {info.timestamp}.", report

        return self._execute(Operation.BACKUP, work, target=None)

    def restore_project(self) -> OperationResult:
        """
        Replace the project root with the project backup.

        Fails with NOT_FOUND if the backup is absent or empty. This does
        not create or consult the pre-rollback record.
        """

        def work() -> tuple[str, CopyReport]:
            if not self._backups.has_backup():
                raise BackupNotFoundError("No project backup available to restore.")
            self._require_root()
            report = self._replace_root(
                self._backups.content_path, self._backups.encoding
            )
            _require_complete(report, "Restore from backup is incomplete")
            return "Project restored from backup.", report

        return self._execute(Operation.RESTORE, work, target=None)

    def cancel_current(self) -> None:
        """Ask the running tree walk, if any, to stop at the next entry."""
        if self._cancel is None:
            logger.warning("Cancellation requested but no cancel event is configured")
            return
        self._cancel.set()

    # ── Reads ─────────────────────────────────────────────────────

    def list_save_points(self) -> list[SavePointInfo]:
        """List committed save points, newest first. Not serialized."""
        return self._snapshots.list()

    def pre_rollback(self) -> PreRollbackRecord | None:
        return self._snapshots.read_pre_rollback()

    def backup_info(self) -> BackupInfo | None:
        return self._backups.read()

    def close(self) -> None:
        """Shut the mutation worker down."""
        self._serializer.close()

    # ── Internals ─────────────────────────────────────────────────

    def _require_root(self) -> None:
        if not self._root.is_dir():
            raise ProjectRootNotFoundError(
                f"Project root does not exist: {self._root}"
            )

    def _replace_root(
        self, content_path: Path, encoding: ContentEncoding | None = None
    ) -> CopyReport:
        """Clear the project root, then copy stored content into it."""
        encoding = encoding or self._snapshots.encoding
        report = self._copier.clear_tree(self._root)
        report.merge(encoding.materialize(content_path, self._root))
        return report

    def _execute(
        self,
        operation: Operation,
        work: _Work,
        target: str | None,
    ) -> OperationResult:
        """Run ``work`` on the serializer and fold the outcome into a result."""
        start = time.perf_counter()
        report: CopyReport | None = None
        error_kind: ErrorKind | None = None

        def guarded() -> tuple[str, CopyReport]:
            if self._cancel is not None:
                self._cancel.clear()
            return work()

        try:
            message, report = self._serializer.run(guarded)
            success = True
        except SavePointError as exc:
            success = False
            message = exc.summary
            error_kind = exc.kind
            candidate = exc.details.get("report")
            if isinstance(candidate, CopyReport):
                report = candidate
        except (OSError, UnicodeError) as exc:
            success = False
            message = f"{operation.value.replace('_', ' ').capitalize()} failed: {exc}"
            error_kind = ErrorKind.IO_FAILURE

        duration_ms = int((time.perf_counter() - start) * 1000)
        if success:
            logger.info("%s %s succeeded in %dms", operation.value, target or "", duration_ms)
        else:
            logger.error(
                "%s %s failed (%s): %s",
                operation.value,
                target or "",
                error_kind,
                message,
            )

        return OperationResult(
            operation=operation,
            success=success,
            message=message,
            error_kind=error_kind,
            target=target,
            report=report,
            duration_ms=duration_ms,
        )
