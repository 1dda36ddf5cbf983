"""
Backup Store
~~~~~~~~~~~~

The single whole-project backup slot kept outside the save point
history::

    <backup_root>/<projectKey>/
        backup/ or backup.zip      mirrored project tree
        message.txt                "Backup : <timestamp>" then the message
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path

from savepoint.core.outcome import BackupInfo, CopyReport
from savepoint.exceptions import StoreIOError
from savepoint.storage.encodings import ContentEncoding
from savepoint.storage.snapshot_store import write_text_atomic

__all__ = ["BackupStore"]

logger = logging.getLogger(__name__)

_BACKUP_NAME = "backup"
_MESSAGE_FILE = "message.txt"
_BACKUP_PREFIX = "Backup : "


class BackupStore:
    """At most one live backup per project; each write replaces the last."""

    def __init__(
        self,
        base_dir: str | os.PathLike[str],
        encoding: ContentEncoding,
        timestamp_format: str = "%Y-%m-%d %H:%M:%S",
    ) -> None:
        self._base = Path(base_dir)
        self._encoding = encoding
        self._timestamp_format = timestamp_format

    @property
    def base_dir(self) -> Path:
        return self._base

    @property
    def encoding(self) -> ContentEncoding:
        return self._encoding

    @property
    def content_path(self) -> Path:
        return self._encoding.content_path(self._base, _BACKUP_NAME)

    @property
    def message_path(self) -> Path:
        return self._base / _MESSAGE_FILE

    def has_backup(self) -> bool:
        """True when a backup exists and holds at least one entry."""
        path = self.content_path
        return self._encoding.exists(path) and not self._encoding.is_empty(path)

    def read(self) -> BackupInfo | None:
        """Return the current backup's metadata, or None if there is none."""
        if not self._encoding.exists(self.content_path):
            return None
        timestamp = ""
        message = ""
        try:
            text = self.message_path.read_text(encoding="utf-8", errors="surrogateescape")
            lines = text.splitlines()
        except (OSError, UnicodeDecodeError):
            lines = []
        if lines:
            first = lines[0]
            timestamp = first[len(_BACKUP_PREFIX):] if first.startswith(_BACKUP_PREFIX) else first
            message = "\n".join(lines[1:]).strip()
        return BackupInfo(content_path=self.content_path, timestamp=timestamp.strip(), message=message)

    def write(self, source: str | os.PathLike[str], message: str = "") -> tuple[BackupInfo, CopyReport]:
        """
        Replace the backup with a fresh mirror of ``source``.

        Raises:
            StoreIOError: If the previous backup cannot be removed or the
                new one cannot be created.
        """
        path = self.content_path
        removed = self._encoding.remove(path)
        if self._encoding.exists(path):
            raise StoreIOError(
                "Cannot replace the previous project backup.",
                details={"failures": [f.path for f in removed.failures]},
            )
        try:
            self._encoding.reserve(path)
        except OSError as exc:
            raise StoreIOError(f"Cannot create project backup at {path}: {exc}") from exc

        try:
            report = self._encoding.capture(Path(source), path)
        except BaseException:
            self._encoding.remove(path)
            raise

        timestamp = datetime.now().strftime(self._timestamp_format)
        text = f"{_BACKUP_PREFIX}{timestamp}"
        if message:
            text += f"\n{message}"
        try:
            write_text_atomic(self.message_path, text)
        except (OSError, UnicodeError) as exc:
            raise StoreIOError(f"Cannot write backup metadata: {exc}") from exc

        logger.info("Backed up %s to %s", source, path)
        return BackupInfo(content_path=path, timestamp=timestamp, message=message), report

    def __repr__(self) -> str:
        return f"<BackupStore base_dir={str(self._base)!r} encoding={self._encoding.name}>"
