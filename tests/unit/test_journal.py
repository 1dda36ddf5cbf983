"""Tests for the operation journal and exporters."""

import io
import json

from savepoint.core.kinds import ErrorKind, Operation
from savepoint.core.outcome import OperationResult
from savepoint.observability import OperationJournal, StdoutExporter, create_exporter


def _result(op=Operation.SAVE, success=True, kind=None, target="v1") -> OperationResult:
    return OperationResult(
        operation=op,
        success=success,
        message="ok" if success else "failed",
        error_kind=kind,
        target=target,
    )


class _FailingExporter:
    def export(self, result):
        raise RuntimeError("exporter down")


class TestOperationJournal:
    """Tests for OperationJournal."""

    def test_record_and_query(self):
        journal = OperationJournal()
        journal.record(_result())
        journal.record(_result(Operation.ROLLBACK, False, ErrorKind.NOT_FOUND))

        assert len(journal) == 2
        assert len(journal.query(operation=Operation.ROLLBACK)) == 1
        assert len(journal.query(success=False)) == 1
        assert journal.query(limit=1)[0].operation == Operation.SAVE
        assert journal.last().operation == Operation.ROLLBACK

    def test_evicts_oldest(self):
        journal = OperationJournal(max_entries=10)
        for i in range(15):
            journal.record(_result(target=f"v{i}"))

        entries = journal.query()
        assert len(entries) == 10
        assert entries[0].target == "v5"

    def test_stats(self):
        journal = OperationJournal()
        journal.record(_result())
        journal.record(_result(Operation.UNDO_ROLLBACK, False, ErrorKind.NOTHING_TO_UNDO))

        stats = journal.get_stats()
        assert stats["total"] == 2
        assert stats["failed"] == 1
        assert stats["by_operation"] == {"SAVE": 1, "UNDO_ROLLBACK": 1}
        assert stats["by_error_kind"] == {"NOTHING_TO_UNDO": 1}

    def test_exporter_failure_does_not_propagate(self):
        journal = OperationJournal()
        journal.add_exporter(_FailingExporter())
        journal.record(_result())
        assert len(journal) == 1

    def test_clear(self):
        journal = OperationJournal()
        journal.record(_result())
        journal.clear()
        assert journal.last() is None


class TestStdoutExporter:
    """Tests for StdoutExporter."""

    def test_writes_json_line(self):
        stream = io.StringIO()
        StdoutExporter(stream=stream).export(_result())

        line = stream.getvalue()
        assert line.endswith("\n")
        data = json.loads(line)
        assert data["operation"] == "SAVE"
        assert data["target"] == "v1"

    def test_create_exporter(self):
        assert isinstance(create_exporter("stdout"), StdoutExporter)
