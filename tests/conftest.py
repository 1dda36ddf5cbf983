"""Shared fixtures for savepoint tests."""

from __future__ import annotations

import errno
import os
import pathlib
import shutil
import zipfile
from pathlib import Path

import pytest

from savepoint import NullHost, SavePointSession
from savepoint.config.loader import load_config_from_dict
from savepoint.rollback.controller import RollbackController
from savepoint.rollback.serializer import MutationSerializer
from savepoint.storage.backup_store import BackupStore
from savepoint.storage.encodings import create_encoding
from savepoint.storage.snapshot_store import SnapshotStore
from savepoint.storage.tree_copier import TreeCopier


def write_tree(root: Path, files: dict[str, str]) -> None:
    """Create ``files`` (relative path -> text) under ``root``."""
    for rel, text in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")


def read_tree(root: Path) -> dict[str, str]:
    """Return every regular file under ``root`` as relative posix path -> text."""
    return {
        p.relative_to(root).as_posix(): p.read_text(encoding="utf-8")
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


@pytest.fixture
def write_files():
    return write_tree


@pytest.fixture
def read_files():
    return read_tree


@pytest.fixture
def project(tmp_path) -> Path:
    """A small project tree with nested directories and an empty folder."""
    root = tmp_path / "project"
    write_tree(
        root,
        {
            "README.md": "# demo\n",
            "src/app.py": "print('v1')\n",
            "src/lib/util.py": "X = 1\n",
        },
    )
    (root / "empty_dir").mkdir()
    return root


@pytest.fixture
def storage_roots(tmp_path) -> dict[str, Path]:
    """Temporary data and backup roots outside the project."""
    return {
        "data_root": tmp_path / "SavePointData",
        "backup_root": tmp_path / "ProjectBackups",
    }


@pytest.fixture
def make_session(project, storage_roots):
    """Factory for sessions over the ``project`` tree; closes them afterwards."""
    sessions: list[SavePointSession] = []

    def factory(encoding: str = "directory", host=None, **overrides) -> SavePointSession:
        data = {
            "storage": {
                "data_root": str(storage_roots["data_root"]),
                "backup_root": str(storage_roots["backup_root"]),
                "encoding": encoding,
            },
        }
        for section, values in overrides.items():
            data.setdefault(section, {}).update(values)
        session = SavePointSession(
            project, config=load_config_from_dict(data), host=host or NullHost()
        )
        sessions.append(session)
        return session

    yield factory
    for session in sessions:
        session.close()


@pytest.fixture
def session(make_session) -> SavePointSession:
    """A default directory-encoded session with a NullHost."""
    return make_session()


@pytest.fixture(params=["directory", "zip"])
def encoding_name(request) -> str:
    return request.param


@pytest.fixture
def controller(project, tmp_path, encoding_name):
    """A RollbackController wired by hand, parametrized over both encodings."""
    copier = TreeCopier()
    encoding = create_encoding(encoding_name, copier)
    snapshots = SnapshotStore(tmp_path / "store" / "key", encoding)
    backups = BackupStore(tmp_path / "backups" / "key", encoding)
    ctrl = RollbackController(project, snapshots, backups, copier, MutationSerializer())
    yield ctrl
    ctrl.close()


@pytest.fixture
def undecodable_file(project) -> Path:
    """A file in ``project`` whose name is not valid UTF-8."""
    path = project / os.fsdecode(b"bad\xff.txt")
    try:
        path.write_bytes(b"raw")
    except (OSError, UnicodeError):
        pytest.skip("filesystem rejects names that are not valid UTF-8")
    return path


@pytest.fixture
def fail_copy(monkeypatch):
    """Make copying or archiving any file called ``name`` raise EACCES."""

    def install(name: str) -> None:
        real_copy2 = shutil.copy2
        real_write = zipfile.ZipFile.write

        def copy2(src, dst, *args, **kwargs):
            if Path(src).name == name:
                raise PermissionError(errno.EACCES, "Permission denied", str(src))
            return real_copy2(src, dst, *args, **kwargs)

        def write(self, filename, arcname=None, *args, **kwargs):
            if Path(filename).name == name:
                raise PermissionError(errno.EACCES, "Permission denied", str(filename))
            return real_write(self, filename, arcname, *args, **kwargs)

        monkeypatch.setattr(shutil, "copy2", copy2)
        monkeypatch.setattr(zipfile.ZipFile, "write", write)

    return install


@pytest.fixture
def fail_unlink(monkeypatch):
    """Make deleting ``blocked`` or anything beneath it raise EACCES."""

    def install(blocked: Path) -> None:
        real_unlink = pathlib.Path.unlink

        def unlink(self, missing_ok=False):
            if self == blocked or blocked in self.parents:
                raise PermissionError(errno.EACCES, "Permission denied", str(self))
            return real_unlink(self, missing_ok=missing_ok)

        monkeypatch.setattr(pathlib.Path, "unlink", unlink)

    return install
