"""
SavePointSession — Main Session Class
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

The primary entry point for savepoint. Wires the stores, the tree
copier and the rollback controller for one project root, and wraps
every operation with the host hooks and the operation journal.
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from pathlib import Path
from typing import Any

from savepoint.config.defaults import DEFAULT_CONFIG
from savepoint.config.loader import load_config, load_config_from_dict
from savepoint.config.schema import SavePointConfig
from savepoint.core.host import HostBridge, NullHost
from savepoint.core.kinds import NotifyLevel, Operation
from savepoint.core.outcome import (
    BackupInfo,
    OperationResult,
    PreRollbackRecord,
    SavePointInfo,
)
from savepoint.observability.exporters import create_exporter
from savepoint.observability.journal import OperationJournal
from savepoint.rollback.controller import RollbackController
from savepoint.rollback.serializer import MutationSerializer
from savepoint.storage.backup_store import BackupStore
from savepoint.storage.encodings import create_encoding
from savepoint.storage.path_key import PathKeyCodec
from savepoint.storage.snapshot_store import SnapshotStore
from savepoint.storage.tree_copier import TreeCopier

__all__ = ["SavePointSession"]

logger = logging.getLogger(__name__)


def _nested_in(path: Path, root: Path) -> bool:
    return path == root or root in path.parents


class SavePointSession:
    """
    Save points, rollback and project backup for one project root.

    Each session owns one mutation worker; close it (or use the session
    as a context manager) when done.

    Example::

        with SavePointSession.default("/work/app") as session:
            session.save("before-refactor", "green test suite")
            ...
            session.rollback_to("before-refactor")
            session.undo_rollback()
    """

    def __init__(
        self,
        project_root: str | os.PathLike[str],
        config: SavePointConfig | None = None,
        host: HostBridge | None = None,
    ) -> None:
        self._config = config or SavePointConfig()
        self._host = host or NullHost()
        self._root = Path(project_root).absolute()

        storage = self._config.storage
        self._codec = PathKeyCodec(storage.key_substitute)
        self._project_key = self._codec.encode(str(self._root))
        self._data_dir = storage.resolved_data_root() / self._project_key
        self._backup_dir = storage.resolved_backup_root() / self._project_key

        # ── Subsystems ────────────────────────────────────────────
        self._cancel_event = threading.Event()
        self._copier = TreeCopier(
            exclude=self._config.snapshots.exclude,
            exclude_paths=self._nested_store_roots(),
            cancel_event=self._cancel_event,
        )
        encoding = create_encoding(storage.encoding, self._copier)
        timestamp_format = self._config.snapshots.timestamp_format
        self._snapshots = SnapshotStore(
            self._data_dir,
            encoding,
            timestamp_format=timestamp_format,
            strict_metadata=self._config.snapshots.strict_metadata,
        )
        self._backups = BackupStore(
            self._backup_dir,
            encoding,
            timestamp_format=timestamp_format,
        )
        self._controller = RollbackController(
            self._root,
            self._snapshots,
            self._backups,
            self._copier,
            serializer=MutationSerializer(),
            cancel_event=self._cancel_event,
        )
        self._journal = OperationJournal(
            max_entries=self._config.observability.journal_max_entries
        )

        self._setup_exporters()
        logger.debug(
            "Opened session for %s (key=%s, encoding=%s)",
            self._root,
            self._project_key,
            encoding.name,
        )

    # ── Class Methods (constructors) ──────────────────────────────

    @classmethod
    def from_config(
        cls,
        project_root: str | os.PathLike[str],
        path: str | os.PathLike[str],
        host: HostBridge | None = None,
    ) -> SavePointSession:
        """
        Create a session from a YAML config file.

        Args:
            project_root: The project directory to snapshot.
            path: Path to savepoint.yaml.
            host: Host integration; defaults to a NullHost.
        """
        return cls(project_root, config=load_config(path), host=host)

    @classmethod
    def default(
        cls,
        project_root: str | os.PathLike[str],
        host: HostBridge | None = None,
    ) -> SavePointSession:
        """Create a session with the default configuration."""
        return cls(project_root, config=load_config_from_dict(DEFAULT_CONFIG), host=host)

    # ── Setup Methods ─────────────────────────────────────────────

    def _nested_store_roots(self) -> list[Path]:
        """
        Top-level project entries that contain a store directory.

        Excluding the whole entry keeps snapshots from carrying empty
        copies of the store's parent folders.
        """
        root = self._root.resolve()
        nested: list[Path] = []
        for store_dir in (self._data_dir, self._backup_dir):
            resolved = store_dir.resolve()
            if resolved == root or not _nested_in(resolved, root):
                continue
            top = root / resolved.relative_to(root).parts[0]
            logger.warning(
                "Storage directory %s is inside the project; %s will be excluded",
                resolved,
                top,
            )
            if top not in nested:
                nested.append(top)
        return nested

    def _setup_exporters(self) -> None:
        """Configure journal exporters from config."""
        for exporter_name in self._config.observability.exporters:
            self._journal.add_exporter(create_exporter(exporter_name))

    # ── Properties ─────────────────────────────────────────────────

    @property
    def project_root(self) -> Path:
        return self._root

    @property
    def project_key(self) -> str:
        return self._project_key

    @property
    def config(self) -> SavePointConfig:
        return self._config

    @property
    def host(self) -> HostBridge:
        return self._host

    @property
    def journal(self) -> OperationJournal:
        return self._journal

    @property
    def controller(self) -> RollbackController:
        return self._controller

    @property
    def version(self) -> str:
        """Return the savepoint version string."""
        from savepoint import __version__

        return __version__

    # ── Primary API: Save points ──────────────────────────────────

    def save(self, name: str, message: str = "") -> OperationResult:
        """
        Save the current project tree under ``name``.

        Fails with ALREADY_EXISTS if the name is taken.
        """
        return self._run(Operation.SAVE, self._controller.save, name, message)

    def prompt_and_save(self) -> OperationResult | None:
        """
        Ask the host for a name and message, then save.

        Returns None if the user cancelled either prompt.
        """
        name = self._host.request_name()
        if not name:
            return None
        message = self._host.request_message()
        if message is None:
            return None
        return self.save(name, message)

    def rollback_to(self, name: str, confirm: bool = False) -> OperationResult | None:
        """
        Replace the project tree with save point ``name``.

        With ``confirm=True`` the host is asked first; a declined prompt
        returns None and changes nothing.
        """
        if confirm and not self._host.confirm(
            f"Roll back the project to save point '{name}'?"
        ):
            return None
        return self._run(Operation.ROLLBACK, self._controller.rollback_to, name)

    def undo_rollback(self, confirm: bool = False) -> OperationResult | None:
        """Undo the most recent rollback, if there is one to undo."""
        if confirm and not self._host.confirm("Undo the last rollback?"):
            return None
        return self._run(Operation.UNDO_ROLLBACK, self._controller.undo_rollback)

    def delete_save_point(self, name: str, confirm: bool = False) -> OperationResult | None:
        """Delete save point ``name``."""
        if confirm and not self._host.confirm(f"Delete save point '{name}'?"):
            return None
        return self._run(Operation.DELETE, self._controller.delete_save_point, name)

    def list_save_points(self) -> list[SavePointInfo]:
        """List committed save points, newest first."""
        return self._controller.list_save_points()

    def pre_rollback(self) -> PreRollbackRecord | None:
        """Return the current pre-rollback record, or None."""
        return self._controller.pre_rollback()

    # ── Primary API: Project backup ───────────────────────────────

    def backup_project(self, message: str = "") -> OperationResult:
        """Replace the project backup with the current tree."""
        return self._run(Operation.BACKUP, self._controller.backup_project, message)

    def restore_project(self, confirm: bool = False) -> OperationResult | None:
        """
        Replace the project tree with the project backup.

        A restore cannot be undone.
        """
        if confirm and not self._host.confirm(
            "Restore the project from its backup? This cannot be undone."
        ):
            return None
        return self._run(Operation.RESTORE, self._controller.restore_project)

    def backup_info(self) -> BackupInfo | None:
        return self._controller.backup_info()

    # ── Primary API: Async ────────────────────────────────────────

    async def save_async(self, name: str, message: str = "") -> OperationResult:
        """Async version of save(); runs off the event loop."""
        return await asyncio.to_thread(self.save, name, message)

    async def rollback_async(self, name: str) -> OperationResult | None:
        """Async version of rollback_to()."""
        return await asyncio.to_thread(self.rollback_to, name)

    async def undo_rollback_async(self) -> OperationResult | None:
        """Async version of undo_rollback()."""
        return await asyncio.to_thread(self.undo_rollback)

    # ── Primary API: Introspection ────────────────────────────────

    def storage_locations(self) -> dict[str, str]:
        """Where this project's save points and backup are stored."""
        return {
            "project_root": str(self._root),
            "project_key": self._project_key,
            "save_points": str(self._data_dir),
            "backup": str(self._backup_dir),
            "encoding": self._snapshots.encoding.name,
        }

    def get_stats(self) -> dict[str, Any]:
        """Journal statistics for this session."""
        return self._journal.get_stats()

    def cancel(self) -> None:
        """Interrupt the tree walk currently in progress, if any."""
        self._controller.cancel_current()

    # ── Lifecycle ─────────────────────────────────────────────────

    def close(self) -> None:
        """Shut the session's mutation worker down."""
        self._controller.close()
        logger.debug("Closed session for %s", self._root)

    def __enter__(self) -> SavePointSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ── Internal ──────────────────────────────────────────────────

    def _run(self, operation: Operation, action: Any, *args: Any) -> OperationResult:
        """Wrap a controller call with the host hooks and the journal."""
        try:
            self._host.flush_unsaved_edits()
        except Exception as exc:
            logger.error("Host failed to flush unsaved edits: %s", exc)

        result: OperationResult = action(*args)

        if operation.touches_project_root():
            try:
                self._host.refresh_file_view()
            except Exception as exc:
                logger.error("Host failed to refresh the file view: %s", exc)

        self._journal.record(result)
        level = NotifyLevel.SUCCESS if result.success else NotifyLevel.ERROR
        try:
            self._host.notify(level, result.message)
        except Exception as exc:
            logger.error("Host failed to show the notification: %s", exc)
        return result

    def __repr__(self) -> str:
        return f"<SavePointSession root={str(self._root)!r} key={self._project_key!r}>"
