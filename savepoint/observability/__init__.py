"""savepoint observability — the operation journal and its exporters."""

from savepoint.observability.exporters import StdoutExporter, create_exporter
from savepoint.observability.journal import OperationJournal

__all__ = [
    "OperationJournal",
    "StdoutExporter",
    "create_exporter",
]
