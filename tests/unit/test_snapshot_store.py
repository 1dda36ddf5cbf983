"""Tests for the snapshot store and save point name validation."""

import pytest

from savepoint.exceptions import (
    InvalidNameError,
    MetadataMissingError,
    SnapshotExistsError,
    SnapshotNotFoundError,
)
from savepoint.storage.encodings import create_encoding
from savepoint.storage.snapshot_store import (
    PRE_ROLLBACK_NAME,
    SnapshotStore,
    validate_name,
)
from savepoint.storage.tree_copier import TreeCopier


@pytest.fixture
def store(tmp_path, encoding_name):
    encoding = create_encoding(encoding_name, TreeCopier())
    return SnapshotStore(tmp_path / "data" / "_project", encoding)


class TestValidateName:
    """Tests for save point name validation."""

    @pytest.mark.parametrize("name", ["v1", "before refactor", "release-2.0", "ünïcode"])
    def test_accepts_ordinary_names(self, name):
        assert validate_name(name) == name

    @pytest.mark.parametrize(
        "name",
        ["", "   ", " padded", "a/b", "a\\b", "c:d", "what?", "x*", "<tag>",
         "pipe|d", "tab\there", ".", "..", ".hidden", PRE_ROLLBACK_NAME,
         "notes.txt", "archive.ZIP"],
    )
    def test_rejects_unusable_names(self, name):
        with pytest.raises(InvalidNameError):
            validate_name(name)

    def test_error_renders_structured_message(self):
        with pytest.raises(InvalidNameError) as exc_info:
            validate_name("a/b")
        text = str(exc_info.value)
        assert "What happened" in text
        assert "How to fix" in text
        assert exc_info.value.summary == "Save point name contains illegal characters"


class TestCreateAndList:
    """Tests for creating and listing save points."""

    def test_create_then_list(self, store, project):
        info, report = store.create("v1", "first", project)

        assert report.ok
        assert info.name == "v1"
        assert info.message == "first"
        assert [e.name for e in store.list()] == ["v1"]

    def test_sidecar_format(self, store, project):
        info, _ = store.create("v1", "line one\nline two", project)
        text = store.sidecar_path("v1").read_text(encoding="utf-8")
        assert text == f"{info.timestamp}\nline one\nline two"
        assert store.get("v1").message == "line one\nline two"

    def test_duplicate_name_raises(self, store, project):
        store.create("v1", "", project)
        with pytest.raises(SnapshotExistsError):
            store.create("v1", "again", project)
        assert len(store.list()) == 1

    def test_list_newest_first(self, store, project):
        store.create("older", "", project)
        store.create("newer", "", project)
        store.commit("older", "", timestamp="2020-01-01 00:00:00")
        store.commit("newer", "", timestamp="2024-06-01 12:00:00")

        assert [e.name for e in store.list()] == ["newer", "older"]

    def test_equal_timestamps_tie_break_by_name(self, store, project):
        for name in ("b", "a", "c"):
            store.create(name, "", project)
            store.commit(name, "", timestamp="2024-01-01 00:00:00")

        assert [e.name for e in store.list()] == ["a", "b", "c"]

    def test_list_on_missing_base_is_empty(self, store):
        assert store.list() == []

    def test_list_hides_pre_rollback(self, store, project):
        store.create("v1", "", project)
        store.write_pre_rollback(project, origin="v1")

        names = [e.name for e in store.list()]
        assert names == ["v1"]
        assert PRE_ROLLBACK_NAME not in names

    def test_list_hides_entries_without_sidecar(self, store, project):
        store.create("v1", "", project)
        store.reserve("in-flight")

        assert [e.name for e in store.list()] == ["v1"]

    def test_strict_mode_raises_on_missing_sidecar(self, tmp_path, project):
        encoding = create_encoding("directory", TreeCopier())
        strict = SnapshotStore(tmp_path / "data", encoding, strict_metadata=True)
        strict.create("v1", "", project)
        strict.sidecar_path("v1").unlink()

        with pytest.raises(MetadataMissingError):
            strict.list()

    def test_release_drops_reservation(self, store):
        store.reserve("v1")
        store.release("v1")
        assert not store.exists("v1")


class TestGetAndDelete:
    """Tests for lookup and deletion."""

    def test_get_unknown_raises(self, store):
        with pytest.raises(SnapshotNotFoundError):
            store.get("missing")

    def test_delete_removes_content_and_sidecar(self, store, project):
        store.create("v1", "", project)
        store.delete("v1")

        assert not store.exists("v1")
        assert not store.sidecar_path("v1").exists()
        assert store.list() == []

    def test_delete_unknown_leaves_store_unchanged(self, store, project):
        store.create("v1", "", project)
        before = sorted(p.name for p in store.base_dir.iterdir())

        with pytest.raises(SnapshotNotFoundError):
            store.delete("missing")

        assert sorted(p.name for p in store.base_dir.iterdir()) == before


class TestPreRollbackRecord:
    """Tests for the single pre-rollback record."""

    def test_absent_by_default(self, store):
        assert store.read_pre_rollback() is None

    def test_write_and_read(self, store, project):
        store.write_pre_rollback(project, origin="v1")
        record = store.read_pre_rollback()

        assert record is not None
        assert record.origin == "v1"
        assert record.timestamp
        sidecar = store.sidecar_path(PRE_ROLLBACK_NAME).read_text(encoding="utf-8")
        assert sidecar.startswith("preRollBack : ")

    def test_write_replaces_previous(self, store, project, tmp_path, read_files):
        store.write_pre_rollback(project, origin="first")
        (project / "README.md").write_text("changed")
        store.write_pre_rollback(project, origin="second")

        record = store.read_pre_rollback()
        assert record.origin == "second"

        out = tmp_path / "out"
        out.mkdir()
        store.encoding.materialize(record.content_path, out)
        assert read_files(out)["README.md"] == "changed"

    def test_clear(self, store, project):
        store.write_pre_rollback(project)
        store.clear_pre_rollback()
        assert store.read_pre_rollback() is None
        assert not store.sidecar_path(PRE_ROLLBACK_NAME).exists()

    def test_clear_when_absent_is_noop(self, store):
        assert store.clear_pre_rollback().ok
