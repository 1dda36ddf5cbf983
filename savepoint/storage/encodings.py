"""
Content Encodings
~~~~~~~~~~~~~~~~~

Interchangeable on-disk representations of a stored tree: a plain
directory mirror, or a single ``.zip`` archive of the same subtree.
A store instance picks one and uses it for every entry it writes.
"""

from __future__ import annotations

import logging
import os
import zipfile
from abc import ABC, abstractmethod
from pathlib import Path

from savepoint.core.outcome import CopyReport
from savepoint.exceptions import StoreIOError
from savepoint.storage.tree_copier import TreeCopier

__all__ = [
    "ContentEncoding",
    "DirectoryEncoding",
    "ZipEncoding",
    "create_encoding",
]

logger = logging.getLogger(__name__)


class ContentEncoding(ABC):
    """
    Abstract base class for content encodings.

    Each encoding is responsible for:
    1. Naming the content root of an entry (content_path)
    2. Reserving it before any data is written (reserve)
    3. Capturing a live tree into it (capture)
    4. Writing it back out over a live tree (materialize)
    5. Removing it (remove)
    """

    def __init__(self, copier: TreeCopier) -> None:
        self._copier = copier

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier used in configuration."""
        ...

    @abstractmethod
    def content_path(self, base: Path, entry: str) -> Path:
        """Return where the content of ``entry`` lives under ``base``."""
        ...

    @abstractmethod
    def entry_name(self, path: Path) -> str | None:
        """Map a path found in a store back to its entry name, or None."""
        ...

    @abstractmethod
    def reserve(self, path: Path) -> None:
        """
        Claim ``path`` for a new entry.

        Raises:
            FileExistsError: If the content root already exists.
        """
        ...

    @abstractmethod
    def capture(self, source: Path, path: Path) -> CopyReport:
        """Store the live tree at ``source`` into the reserved ``path``."""
        ...

    @abstractmethod
    def materialize(self, path: Path, target: Path) -> CopyReport:
        """Copy stored content at ``path`` out over the directory ``target``."""
        ...

    @abstractmethod
    def is_empty(self, path: Path) -> bool:
        """Return True if the content root holds nothing."""
        ...

    def exists(self, path: Path) -> bool:
        return path.exists()

    def remove(self, path: Path) -> CopyReport:
        """Delete the content root; a missing root is a no-op."""
        return self._copier.remove_tree(path)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


class DirectoryEncoding(ContentEncoding):
    """Content stored as a plain directory mirror of the tree."""

    @property
    def name(self) -> str:
        return "directory"

    def content_path(self, base: Path, entry: str) -> Path:
        return base / entry

    def entry_name(self, path: Path) -> str | None:
        return path.name if path.is_dir() else None

    def reserve(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.mkdir()

    def capture(self, source: Path, path: Path) -> CopyReport:
        return self._copier.copy_tree(source, path)

    def materialize(self, path: Path, target: Path) -> CopyReport:
        return self._copier.copy_tree(path, target)

    def is_empty(self, path: Path) -> bool:
        if not path.is_dir():
            return True
        with os.scandir(path) as it:
            return next(it, None) is None


class ZipEncoding(ContentEncoding):
    """Content stored as a single deflated ``.zip`` archive."""

    suffix = ".zip"

    @property
    def name(self) -> str:
        return "zip"

    def content_path(self, base: Path, entry: str) -> Path:
        return base / f"{entry}{self.suffix}"

    def entry_name(self, path: Path) -> str | None:
        if path.suffix == self.suffix and path.is_file():
            return path.stem
        return None

    def reserve(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        # Exclusive create so two reservations cannot both succeed
        with open(path, "xb"):
            pass

    def capture(self, source: Path, path: Path) -> CopyReport:
        report = CopyReport()
        try:
            with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                for file_path, arcname in self._copier.iter_files(source, report):
                    try:
                        if arcname.endswith("/"):
                            zf.writestr(arcname, b"")
                            report.directories += 1
                        else:
                            zf.write(file_path, arcname)
                            report.files += 1
                    except (OSError, UnicodeError) as exc:
                        # A name that is not valid UTF-8 cannot be stored in a zip
                        logger.error("Failed to archive %s: %s", file_path, exc)
                        report.record_failure(file_path, exc)
        except (OSError, zipfile.BadZipFile) as exc:
            raise StoreIOError(f"Cannot write archive {path}: {exc}") from exc
        return report

    def materialize(self, path: Path, target: Path) -> CopyReport:
        report = CopyReport()
        try:
            target.mkdir(parents=True, exist_ok=True)
            zf = zipfile.ZipFile(path)
        except (OSError, zipfile.BadZipFile) as exc:
            raise StoreIOError(f"Cannot open archive {path}: {exc}") from exc

        root = target.resolve()
        with zf:
            for info in zf.infolist():
                dest = (root / info.filename).resolve()
                # Refuse members that would land outside the target
                if dest != root and root not in dest.parents:
                    logger.warning("Skipping unsafe archive member: %s", info.filename)
                    report.skipped.append(info.filename)
                    continue
                try:
                    if info.is_dir():
                        if not dest.is_dir():
                            dest.mkdir(parents=True, exist_ok=True)
                            report.directories += 1
                    else:
                        dest.parent.mkdir(parents=True, exist_ok=True)
                        with zf.open(info) as src, open(dest, "wb") as out:
                            while chunk := src.read(1024 * 1024):
                                out.write(chunk)
                        report.files += 1
                except (OSError, zipfile.BadZipFile) as exc:
                    logger.error("Failed to extract %s: %s", info.filename, exc)
                    report.record_failure(info.filename, exc)
        return report

    def is_empty(self, path: Path) -> bool:
        if not path.is_file() or path.stat().st_size == 0:
            return True
        try:
            with zipfile.ZipFile(path) as zf:
                return not zf.namelist()
        except zipfile.BadZipFile:
            return True


def create_encoding(name: str, copier: TreeCopier) -> ContentEncoding:
    """
    Create a content encoding by its configured name.

    Raises:
        ValueError: For an unknown encoding name.
    """
    if name == "directory":
        return DirectoryEncoding(copier)
    if name == "zip":
        return ZipEncoding(copier)
    raise ValueError(f"Unknown storage encoding: {name!r}. Use 'directory' or 'zip'.")
