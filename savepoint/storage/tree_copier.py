"""
Tree Copier
~~~~~~~~~~~

Recursive directory copy and clear with continue-on-error semantics.

A walk only raises when it cannot start at all (missing source,
destination root cannot be created, root cannot be enumerated).
Per-entry errors are logged, recorded on the returned CopyReport,
and the walk moves on to the siblings.
"""

from __future__ import annotations

import logging
import os
import shutil
import threading
from collections.abc import Iterable, Iterator
from fnmatch import fnmatch
from pathlib import Path

from savepoint.core.outcome import CopyReport
from savepoint.exceptions import OperationInterruptedError, StoreIOError

__all__ = ["TreeCopier", "CopyReport"]

logger = logging.getLogger(__name__)


def _is_within(path: Path, root: Path) -> bool:
    return path == root or root in path.parents


class TreeCopier:
    """
    Copies and clears directory trees, one entry at a time.

    Args:
        exclude: fnmatch patterns matched against entry names. Matching
            entries are neither copied nor cleared.
        exclude_paths: Absolute paths that are never entered, e.g. a
            snapshot store that lives inside the project it snapshots.
        cancel_event: When set, the running walk stops at the next entry
            and raises OperationInterruptedError.
    """

    def __init__(
        self,
        exclude: Iterable[str] | None = None,
        exclude_paths: Iterable[str | os.PathLike[str]] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self._patterns = list(exclude or [])
        self._exclude_paths = [Path(p).resolve() for p in exclude_paths or []]
        self._cancel = cancel_event

    def is_excluded(self, path: Path, check_paths: bool = True) -> bool:
        """Check a single entry against the name patterns and, optionally, paths."""
        if any(fnmatch(path.name, pattern) for pattern in self._patterns):
            return True
        if check_paths and self._exclude_paths:
            resolved = path.resolve()
            return any(_is_within(resolved, p) for p in self._exclude_paths)
        return False

    # ── Copy ──────────────────────────────────────────────────────

    def copy_tree(
        self,
        source: str | os.PathLike[str],
        destination: str | os.PathLike[str],
    ) -> CopyReport:
        """
        Mirror ``source`` into ``destination``, overwriting existing files.

        Symlinks and special files are skipped with a warning.

        Raises:
            StoreIOError: If the walk cannot start.
            OperationInterruptedError: If the cancel event is set.
        """
        src = Path(source)
        dst = Path(destination)
        if not src.is_dir():
            raise StoreIOError(f"Source directory does not exist: {src}")
        try:
            dst.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreIOError(f"Cannot create destination {dst}: {exc}") from exc

        entries = self._scan_root(src)
        report = CopyReport()
        # Copying a tree into itself would recurse forever
        guard = dst.resolve() if _is_within(dst.resolve(), src.resolve()) else None
        # Stored content read back out of an excluded store is copied whole
        check_paths = not self._inside_excluded_path(src)
        self._copy_entries(entries, dst, report, guard, check_paths)
        logger.debug(
            "Copied %s -> %s (%d files, %d failures)",
            src,
            dst,
            report.files,
            len(report.failures),
        )
        return report

    def _copy_entries(
        self,
        entries: list[os.DirEntry[str]],
        dst_dir: Path,
        report: CopyReport,
        guard: Path | None,
        check_paths: bool,
    ) -> None:
        for entry in entries:
            self._check_cancelled()
            src_path = Path(entry.path)
            target = dst_dir / entry.name

            if self.is_excluded(src_path, check_paths) or (
                guard is not None and _is_within(src_path.resolve(), guard)
            ):
                report.skipped.append(entry.path)
                continue

            try:
                if entry.is_symlink():
                    logger.warning("Skipping symbolic link: %s", entry.path)
                    report.skipped.append(entry.path)
                elif entry.is_dir(follow_symlinks=False):
                    if not target.is_dir():
                        target.mkdir(parents=True, exist_ok=True)
                        report.directories += 1
                    children = list(os.scandir(src_path))
                    self._copy_entries(children, target, report, guard, check_paths)
                elif entry.is_file(follow_symlinks=False):
                    shutil.copy2(src_path, target)
                    report.files += 1
                    logger.debug("Copied file: %s to %s", src_path, target)
                else:
                    logger.warning("Skipping special file: %s", entry.path)
                    report.skipped.append(entry.path)
            except OSError as exc:
                logger.error("Failed to copy %s: %s", entry.path, exc)
                report.record_failure(entry.path, exc)

    # ── Clear ─────────────────────────────────────────────────────

    def clear_tree(self, directory: str | os.PathLike[str]) -> CopyReport:
        """
        Delete everything inside ``directory``, keeping the directory.

        Excluded entries are left in place.

        Raises:
            StoreIOError: If ``directory`` is missing or cannot be listed.
            OperationInterruptedError: If the cancel event is set.
        """
        root = Path(directory)
        if not root.is_dir():
            raise StoreIOError(f"Directory does not exist: {root}")
        report = CopyReport()
        self._clear_entries(self._scan_root(root), report, honour_excludes=True)
        logger.debug(
            "Cleared %s (%d files, %d failures)", root, report.files, len(report.failures)
        )
        return report

    def remove_tree(self, path: str | os.PathLike[str]) -> CopyReport:
        """
        Delete ``path`` itself, file or directory, ignoring exclusions.

        A missing path is a no-op.
        """
        target = Path(path)
        report = CopyReport()
        if target.is_symlink() or target.is_file():
            try:
                target.unlink()
                report.files += 1
            except OSError as exc:
                logger.error("Failed to delete %s: %s", target, exc)
                report.record_failure(target, exc)
            return report
        if not target.exists():
            return report

        self._clear_entries(self._scan_root(target), report, honour_excludes=False)
        try:
            target.rmdir()
            report.directories += 1
        except OSError as exc:
            logger.error("Failed to delete directory %s: %s", target, exc)
            report.record_failure(target, exc)
        return report

    def _clear_entries(
        self,
        entries: list[os.DirEntry[str]],
        report: CopyReport,
        honour_excludes: bool,
    ) -> bool:
        """Delete entries; return True if nothing was left behind."""
        emptied = True
        for entry in entries:
            self._check_cancelled()
            path = Path(entry.path)
            if honour_excludes and self.is_excluded(path):
                report.skipped.append(entry.path)
                emptied = False
                continue
            try:
                if entry.is_dir(follow_symlinks=False):
                    children = list(os.scandir(path))
                    if self._clear_entries(children, report, honour_excludes):
                        path.rmdir()
                        report.directories += 1
                    else:
                        emptied = False
                else:
                    path.unlink()
                    report.files += 1
                    logger.debug("Deleted: %s", path)
            except OSError as exc:
                logger.error("Failed to delete %s: %s", entry.path, exc)
                report.record_failure(entry.path, exc)
                emptied = False
        return emptied

    # ── Enumeration ───────────────────────────────────────────────

    def iter_files(
        self,
        source: str | os.PathLike[str],
        report: CopyReport,
    ) -> Iterator[tuple[Path, str]]:
        """
        Yield ``(path, relative_posix_name)`` for every regular file.

        Directories are yielded too, with a trailing ``/`` on the
        relative name, so empty directories survive archiving.
        Skips and enumeration failures are recorded on ``report``.
        """
        root = Path(source)
        if not root.is_dir():
            raise StoreIOError(f"Source directory does not exist: {root}")
        yield from self._iter_entries(self._scan_root(root), root, report)

    def _iter_entries(
        self,
        entries: list[os.DirEntry[str]],
        root: Path,
        report: CopyReport,
    ) -> Iterator[tuple[Path, str]]:
        for entry in entries:
            self._check_cancelled()
            path = Path(entry.path)
            if self.is_excluded(path):
                report.skipped.append(entry.path)
                continue
            relative = path.relative_to(root).as_posix()
            try:
                if entry.is_symlink():
                    logger.warning("Skipping symbolic link: %s", entry.path)
                    report.skipped.append(entry.path)
                elif entry.is_dir(follow_symlinks=False):
                    children = list(os.scandir(path))
                    yield path, relative + "/"
                    yield from self._iter_entries(children, root, report)
                elif entry.is_file(follow_symlinks=False):
                    yield path, relative
                else:
                    logger.warning("Skipping special file: %s", entry.path)
                    report.skipped.append(entry.path)
            except OSError as exc:
                logger.error("Failed to read %s: %s", entry.path, exc)
                report.record_failure(entry.path, exc)

    def _inside_excluded_path(self, root: Path) -> bool:
        resolved = root.resolve()
        return any(_is_within(resolved, p) for p in self._exclude_paths)

    def _scan_root(self, root: Path) -> list[os.DirEntry[str]]:
        try:
            return sorted(os.scandir(root), key=lambda e: e.name)
        except OSError as exc:
            raise StoreIOError(f"Cannot list directory {root}: {exc}") from exc

    def _check_cancelled(self) -> None:
        if self._cancel is not None and self._cancel.is_set():
            raise OperationInterruptedError("Tree walk was cancelled")
