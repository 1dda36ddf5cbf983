"""Tests for the rollback controller state machine."""

import os
import shutil

from savepoint.core.kinds import ErrorKind, Operation


class TestSave:
    """Tests for RollbackController.save."""

    def test_save_then_listed(self, controller):
        result = controller.save("v1", "first")

        assert result.success
        assert result.operation == Operation.SAVE
        assert result.target == "v1"
        assert result.report.files == 3
        assert [e.name for e in controller.list_save_points()] == ["v1"]

    def test_duplicate_name_fails_already_exists(self, controller):
        controller.save("v1")
        result = controller.save("v1", "again")

        assert not result.success
        assert result.error_kind == ErrorKind.ALREADY_EXISTS
        assert controller.snapshots.get("v1").message == ""

    def test_invalid_name_fails(self, controller):
        result = controller.save("a/b")
        assert result.error_kind == ErrorKind.INVALID_NAME
        assert controller.list_save_points() == []

    def test_missing_project_root_fails_not_found(self, controller):
        shutil.rmtree(controller.project_root)
        result = controller.save("v1")
        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_save_clears_pre_rollback(self, controller):
        controller.save("v1")
        controller.rollback_to("v1")
        assert controller.pre_rollback() is not None

        controller.save("v2")

        assert controller.pre_rollback() is None
        assert controller.undo_rollback().error_kind == ErrorKind.NOTHING_TO_UNDO


class TestRollback:
    """Tests for rollback_to and undo_rollback."""

    def test_rollback_restores_saved_tree(self, controller, project, read_files, write_files):
        controller.save("v1")
        saved = read_files(project)

        write_files(project, {"src/app.py": "print('v2')\n", "new.txt": "added"})
        (project / "README.md").unlink()

        result = controller.rollback_to("v1")

        assert result.success
        assert read_files(project) == saved
        assert (project / "empty_dir").is_dir()

    def test_rollback_unknown_fails_not_found(self, controller, project, read_files):
        before = read_files(project)
        result = controller.rollback_to("missing")

        assert result.error_kind == ErrorKind.NOT_FOUND
        assert read_files(project) == before
        assert controller.pre_rollback() is None

    def test_rollback_records_origin(self, controller):
        controller.save("v1")
        controller.rollback_to("v1")
        assert controller.pre_rollback().origin == "v1"

    def test_undo_restores_pre_rollback_tree(self, controller, project, read_files, write_files):
        controller.save("v1")
        write_files(project, {"src/app.py": "print('v2')\n"})
        current = read_files(project)

        controller.rollback_to("v1")
        result = controller.undo_rollback()

        assert result.success
        assert read_files(project) == current
        assert controller.pre_rollback() is None

    def test_undo_without_rollback_fails(self, controller):
        result = controller.undo_rollback()
        assert not result.success
        assert result.error_kind == ErrorKind.NOTHING_TO_UNDO

    def test_undo_twice_fails_second_time(self, controller):
        controller.save("v1")
        controller.rollback_to("v1")
        assert controller.undo_rollback().success
        assert controller.undo_rollback().error_kind == ErrorKind.NOTHING_TO_UNDO

    def test_only_latest_rollback_is_undoable(self, controller, project, read_files, write_files):
        controller.save("a")
        write_files(project, {"state.txt": "b"})
        controller.save("b")

        write_files(project, {"state.txt": "s0"})
        s0 = read_files(project)

        controller.rollback_to("a")
        s1 = read_files(project)
        controller.rollback_to("b")

        controller.undo_rollback()

        assert read_files(project) == s1
        assert read_files(project) != s0
        assert controller.undo_rollback().error_kind == ErrorKind.NOTHING_TO_UNDO

    def test_rollback_does_not_alter_save_point(self, controller, project, write_files):
        controller.save("v1")
        controller.rollback_to("v1")
        write_files(project, {"README.md": "edited after rollback"})

        controller.rollback_to("v1")

        assert (project / "README.md").read_text() == "# demo\n"


class TestDelete:
    """Tests for delete_save_point."""

    def test_delete_existing(self, controller):
        controller.save("v1")
        result = controller.delete_save_point("v1")

        assert result.success
        assert controller.list_save_points() == []

    def test_delete_unknown_fails_not_found(self, controller):
        controller.save("v1")
        result = controller.delete_save_point("missing")

        assert result.error_kind == ErrorKind.NOT_FOUND
        assert [e.name for e in controller.list_save_points()] == ["v1"]

    def test_deleted_name_can_be_reused(self, controller):
        controller.save("v1")
        controller.delete_save_point("v1")
        assert controller.save("v1").success


class TestBackupRestore:
    """Tests for backup_project and restore_project."""

    def test_restore_without_backup_fails(self, controller):
        result = controller.restore_project()
        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_backup_then_restore(self, controller, project, read_files, write_files):
        assert controller.backup_project("safe").success
        saved = read_files(project)

        write_files(project, {"junk.txt": "junk"})
        result = controller.restore_project()

        assert result.success
        assert read_files(project) == saved
        assert controller.backup_info().message == "safe"

    def test_restore_does_not_create_undo_record(self, controller):
        controller.backup_project()
        controller.restore_project()
        assert controller.pre_rollback() is None


class TestResults:
    """Tests for the OperationResult contract."""

    def test_failed_results_are_falsy(self, controller):
        assert not controller.undo_rollback()

    def test_result_serializes(self, controller):
        data = controller.save("v1", "msg").to_dict()
        assert data["operation"] == "SAVE"
        assert data["success"] is True
        assert data["error_kind"] is None
        assert data["report"]["files"] == 3


class TestPartialFailures:
    """Tests for walks that fail on a single entry."""

    def test_rollback_aborts_when_safety_copy_is_incomplete(
        self, controller, project, read_files, write_files, fail_copy
    ):
        controller.save("v1")
        write_files(project, {"src/app.py": "print('v2')\n", "new.txt": "added"})
        current = read_files(project)
        fail_copy("app.py")

        result = controller.rollback_to("v1")

        assert result.error_kind == ErrorKind.IO_FAILURE
        assert "project left unchanged" in result.message
        assert [f.path for f in result.report.failures] == [str(project / "src" / "app.py")]
        assert read_files(project) == current
        # A partial copy is never offered to undo
        assert controller.pre_rollback() is None
        assert controller.undo_rollback().error_kind == ErrorKind.NOTHING_TO_UNDO

    def test_undo_keeps_record_when_copy_back_fails(
        self, controller, project, read_files, write_files, fail_unlink, monkeypatch
    ):
        controller.save("v1")
        write_files(project, {"src/app.py": "print('v2')\n"})
        current = read_files(project)
        controller.rollback_to("v1")
        fail_unlink(project / "README.md")

        result = controller.undo_rollback()

        assert result.error_kind == ErrorKind.IO_FAILURE
        assert controller.pre_rollback() is not None

        monkeypatch.undo()
        assert controller.undo_rollback().success
        assert read_files(project) == current
        assert controller.pre_rollback() is None

    def test_delete_fails_when_content_survives(self, controller, fail_unlink):
        controller.save("v1")
        fail_unlink(controller.snapshots.content_path("v1"))

        result = controller.delete_save_point("v1")

        assert result.error_kind == ErrorKind.IO_FAILURE
        assert [e.name for e in controller.list_save_points()] == ["v1"]

    def test_save_with_unreadable_file_leaves_no_entry(self, controller, fail_copy):
        fail_copy("util.py")

        result = controller.save("v1")

        assert result.error_kind == ErrorKind.IO_FAILURE
        assert len(result.report.failures) == 1
        assert controller.list_save_points() == []
        assert controller.save("v1").error_kind == ErrorKind.IO_FAILURE


class TestMessageText:
    """Tests for messages that are not plain UTF-8 text."""

    def test_undecodable_bytes_round_trip(self, controller):
        message = "built from " + os.fsdecode(b"caf\xe9")

        assert controller.save("v1", message).success
        assert controller.snapshots.get("v1").message == message
        assert controller.backup_project(message).success
        assert controller.backup_info().message == message

    def test_unencodable_message_fails_as_io_failure(self, controller):
        result = controller.save("v1", "lone \ud800 surrogate")

        assert not result.success
        assert result.error_kind == ErrorKind.IO_FAILURE
        assert controller.list_save_points() == []
