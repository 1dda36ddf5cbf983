"""
Snapshot Store
~~~~~~~~~~~~~~

Owns the on-disk layout of one project's named save points, their
sidecar metadata records, and the single pre-rollback safety copy.

Layout under the project's base directory::

    <name>/ or <name>.zip      copied project tree
    <name>.txt                 line 1: timestamp, remaining lines: message
    preRollback/ or .zip       pre-rollback copy (zero or one)
    preRollback.txt            "preRollBack : <timestamp>" then "origin : <label>"
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from datetime import datetime
from pathlib import Path

from savepoint.core.outcome import CopyReport, PreRollbackRecord, SavePointInfo
from savepoint.exceptions import (
    InvalidNameError,
    MetadataMissingError,
    SnapshotExistsError,
    SnapshotNotFoundError,
    StoreIOError,
)
from savepoint.storage.encodings import ContentEncoding

__all__ = [
    "SnapshotStore",
    "PRE_ROLLBACK_NAME",
    "SIDECAR_SUFFIX",
    "validate_name",
    "write_text_atomic",
]

logger = logging.getLogger(__name__)

PRE_ROLLBACK_NAME = "preRollback"
SIDECAR_SUFFIX = ".txt"
_PRE_ROLLBACK_PREFIX = "preRollBack : "
_ORIGIN_PREFIX = "origin : "

_RESTRICTED_RE = re.compile(r'[\\/:*?"<>|\x00-\x1f]')
_RESERVED_SUFFIXES = (".txt", ".zip")


def validate_name(name: str) -> str:
    """
    Check that ``name`` can be stored as a single save point entry.

    Returns:
        The name, unchanged.

    Raises:
        InvalidNameError: If the name is empty, reserved, or contains
            characters that are illegal in a path segment.
    """
    if not name or not name.strip():
        raise InvalidNameError("Save point name cannot be empty", name=name,
                               reason="The name is empty.")
    if name != name.strip():
        raise InvalidNameError("Save point name has surrounding whitespace", name=name,
                               reason="Leading or trailing whitespace is not allowed.")
    if name.startswith("."):
        raise InvalidNameError("Save point name starts with a dot", name=name,
                               reason="Dot-prefixed names are reserved for store internals.")
    if name == PRE_ROLLBACK_NAME:
        raise InvalidNameError("Save point name is reserved", name=name,
                               reason=f"'{PRE_ROLLBACK_NAME}' holds the undo copy.")
    if _RESTRICTED_RE.search(name):
        raise InvalidNameError("Save point name contains illegal characters", name=name,
                               reason="Path separators and reserved characters are not allowed.")
    if name.lower().endswith(_RESERVED_SUFFIXES):
        raise InvalidNameError("Save point name has a reserved extension", name=name,
                               reason=".txt and .zip endings clash with store files.")
    return name


def write_text_atomic(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` via a temp file and ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(
            fd, "w", encoding="utf-8", errors="surrogateescape", newline="\n"
        ) as f:
            f.write(text)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


class SnapshotStore:
    """
    Named save points for one project key.

    Entries become visible to ``list()`` only once their sidecar record
    is committed, so a reservation whose copy is still running never
    shows up half-populated.

    Args:
        base_dir: The per-project directory, created on first write.
        encoding: How content roots are represented on disk.
        timestamp_format: strftime format; must render at a fixed width.
        strict_metadata: Raise instead of silently dropping entries
            whose sidecar record is missing.
    """

    def __init__(
        self,
        base_dir: str | os.PathLike[str],
        encoding: ContentEncoding,
        timestamp_format: str = "%Y-%m-%d %H:%M:%S",
        strict_metadata: bool = False,
    ) -> None:
        self._base = Path(base_dir)
        self._encoding = encoding
        self._timestamp_format = timestamp_format
        self._strict = strict_metadata

    @property
    def base_dir(self) -> Path:
        return self._base

    @property
    def encoding(self) -> ContentEncoding:
        return self._encoding

    def timestamp(self) -> str:
        """Current local time in the store's fixed-width format."""
        return datetime.now().strftime(self._timestamp_format)

    def content_path(self, name: str) -> Path:
        return self._encoding.content_path(self._base, name)

    def sidecar_path(self, name: str) -> Path:
        return self._base / f"{name}{SIDECAR_SUFFIX}"

    def exists(self, name: str) -> bool:
        """Presence is decided by the content root, not the sidecar."""
        return self._encoding.exists(self.content_path(validate_name(name)))

    # ── Create ────────────────────────────────────────────────────

    def reserve(self, name: str) -> Path:
        """
        Claim an empty content root for ``name`` before any copy begins.

        Raises:
            SnapshotExistsError: If the name is taken.
            StoreIOError: If the content root cannot be created.
        """
        validate_name(name)
        path = self.content_path(name)
        try:
            self._encoding.reserve(path)
        except FileExistsError as exc:
            raise SnapshotExistsError(
                f"Save point '{name}' already exists.", name=name
            ) from exc
        except OSError as exc:
            raise StoreIOError(f"Cannot reserve save point '{name}': {exc}") from exc
        logger.debug("Reserved save point %s at %s", name, path)
        return path

    def capture(self, name: str, source: str | os.PathLike[str]) -> CopyReport:
        """Fill the reserved content root of ``name`` from ``source``."""
        return self._encoding.capture(Path(source), self.content_path(name))

    def commit(self, name: str, message: str = "", timestamp: str | None = None) -> SavePointInfo:
        """
        Write the sidecar record, making the entry visible.

        Raises:
            StoreIOError: If the record cannot be written.
        """
        ts = timestamp or self.timestamp()
        try:
            write_text_atomic(self.sidecar_path(name), f"{ts}\n{message}")
        except (OSError, UnicodeError) as exc:
            raise StoreIOError(f"Cannot write metadata for '{name}': {exc}") from exc
        return SavePointInfo(
            name=name,
            timestamp=ts,
            message=message,
            content_path=self.content_path(name),
        )

    def release(self, name: str) -> None:
        """Drop a reservation (content and any sidecar) that was never completed."""
        report = self._encoding.remove(self.content_path(name))
        sidecar = self.sidecar_path(name)
        try:
            sidecar.unlink(missing_ok=True)
        except OSError as exc:
            report.record_failure(sidecar, exc)
        if not report.ok:
            logger.error("Could not fully release reservation for %s", name)

    def create(
        self,
        name: str,
        message: str,
        source: str | os.PathLike[str],
    ) -> tuple[SavePointInfo, CopyReport]:
        """Reserve, capture and commit ``name`` in one call."""
        self.reserve(name)
        try:
            report = self.capture(name, source)
            info = self.commit(name, message)
        except BaseException:
            self.release(name)
            raise
        return info, report

    # ── Read ──────────────────────────────────────────────────────

    def get(self, name: str) -> SavePointInfo:
        """
        Return the committed entry ``name``.

        Raises:
            SnapshotNotFoundError: If it is absent or not yet committed.
        """
        validate_name(name)
        path = self.content_path(name)
        info = self._read_entry(name, path) if self._encoding.exists(path) else None
        if info is None:
            raise SnapshotNotFoundError(f"Save point '{name}' not found.")
        return info

    def list(self) -> list[SavePointInfo]:
        """
        List committed save points, newest first.

        Excludes the pre-rollback copy, sidecar files, and any entry
        without a sidecar record (a reservation still being copied, or
        a leftover from an interrupted write).
        """
        if not self._base.is_dir():
            return []
        try:
            paths = list(self._base.iterdir())
        except OSError as exc:
            raise StoreIOError(f"Cannot list save points in {self._base}: {exc}") from exc

        entries: list[SavePointInfo] = []
        for path in paths:
            if path.name.endswith(SIDECAR_SUFFIX) or path.name.startswith("."):
                continue
            name = self._encoding.entry_name(path)
            if name is None or name == PRE_ROLLBACK_NAME:
                continue
            info = self._read_entry(name, path)
            if info is not None:
                entries.append(info)

        entries.sort(key=lambda e: e.name)
        entries.sort(key=lambda e: e.timestamp, reverse=True)
        return entries

    def _read_entry(self, name: str, path: Path) -> SavePointInfo | None:
        sidecar = self.sidecar_path(name)
        try:
            text = sidecar.read_text(encoding="utf-8", errors="surrogateescape")
            lines = text.splitlines()
        except FileNotFoundError:
            lines = []
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Unreadable metadata for save point %s: %s", name, exc)
            lines = []

        if not lines or not lines[0].strip():
            if self._strict:
                raise MetadataMissingError(
                    f"Save point '{name}' has no metadata record at {sidecar}"
                )
            logger.debug("Skipping save point %s without metadata", name)
            return None

        message = "\n".join(lines[1:])
        return SavePointInfo(
            name=name,
            timestamp=lines[0].strip(),
            message=message if message.strip() else "",
            content_path=path,
        )

    # ── Delete ────────────────────────────────────────────────────

    def delete(self, name: str) -> CopyReport:
        """
        Remove a save point's content root and sidecar record.

        Raises:
            SnapshotNotFoundError: If there is no such save point.
            StoreIOError: If the content root survives the attempt; the
                sidecar is then kept so the entry stays listed.
        """
        validate_name(name)
        path = self.content_path(name)
        if not self._encoding.exists(path):
            raise SnapshotNotFoundError(f"Save point '{name}' not found.")

        report = self._encoding.remove(path)
        if self._encoding.exists(path):
            raise StoreIOError(
                f"Failed to delete save point '{name}'.",
                details={"failures": [f.path for f in report.failures]},
            )
        try:
            self.sidecar_path(name).unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove metadata for %s: %s", name, exc)
            report.record_failure(self.sidecar_path(name), exc)
        logger.info("Deleted save point %s", name)
        return report

    # ── Pre-rollback record ───────────────────────────────────────

    @property
    def pre_rollback_path(self) -> Path:
        return self.content_path(PRE_ROLLBACK_NAME)

    def read_pre_rollback(self) -> PreRollbackRecord | None:
        """Return the pre-rollback record, or None if there is none."""
        path = self.pre_rollback_path
        if not self._encoding.exists(path):
            return None

        timestamp = ""
        origin = ""
        try:
            sidecar = self.sidecar_path(PRE_ROLLBACK_NAME)
            text = sidecar.read_text(encoding="utf-8", errors="surrogateescape")
            lines = text.splitlines()
        except (OSError, UnicodeDecodeError):
            lines = []
        for line in lines:
            if line.startswith(_PRE_ROLLBACK_PREFIX):
                timestamp = line[len(_PRE_ROLLBACK_PREFIX):].strip()
            elif line.startswith(_ORIGIN_PREFIX):
                origin = line[len(_ORIGIN_PREFIX):].strip()
        return PreRollbackRecord(content_path=path, timestamp=timestamp, origin=origin)

    def write_pre_rollback(self, source: str | os.PathLike[str], origin: str = "") -> CopyReport:
        """
        Replace the pre-rollback record with a fresh copy of ``source``.

        Any previous record is destroyed first; only one level of undo
        ever exists.

        Raises:
            StoreIOError: If the old record cannot be removed or the new
                copy cannot start.
        """
        cleared = self.clear_pre_rollback()
        if self._encoding.exists(self.pre_rollback_path):
            raise StoreIOError(
                "Cannot replace the previous pre-rollback copy.",
                details={"failures": [f.path for f in cleared.failures]},
            )

        path = self.pre_rollback_path
        try:
            self._encoding.reserve(path)
        except OSError as exc:
            raise StoreIOError(f"Cannot create pre-rollback copy: {exc}") from exc

        try:
            report = self._encoding.capture(Path(source), path)
        except BaseException:
            self._encoding.remove(path)
            raise

        text = f"{_PRE_ROLLBACK_PREFIX}{self.timestamp()}"
        if origin:
            text += f"\n{_ORIGIN_PREFIX}{origin}"
        try:
            write_text_atomic(self.sidecar_path(PRE_ROLLBACK_NAME), text)
        except (OSError, UnicodeError) as exc:
            raise StoreIOError(f"Cannot write pre-rollback metadata: {exc}") from exc
        logger.info("Wrote pre-rollback copy (origin=%s)", origin or "-")
        return report

    def clear_pre_rollback(self) -> CopyReport:
        """Delete the pre-rollback record; a missing record is a no-op."""
        report = self._encoding.remove(self.pre_rollback_path)
        sidecar = self.sidecar_path(PRE_ROLLBACK_NAME)
        try:
            sidecar.unlink(missing_ok=True)
        except OSError as exc:
            report.record_failure(sidecar, exc)
        return report

    def __repr__(self) -> str:
        return f"<SnapshotStore base_dir={str(self._base)!r} encoding={self._encoding.name}>"
