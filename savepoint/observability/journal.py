"""
Operation Journal
~~~~~~~~~~~~~~~~~

Bounded in-memory record of every operation result a session produced.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from typing import Any

from savepoint.core.kinds import Operation
from savepoint.core.outcome import OperationResult

__all__ = ["OperationJournal"]

logger = logging.getLogger(__name__)


class OperationJournal:
    """
    In-memory journal of OperationResults with filtering and export support.

    Every result a session reports is recorded here, successful or not,
    and forwarded to the configured exporters. The oldest entries are
    evicted once ``max_entries`` is exceeded.
    """

    def __init__(self, max_entries: int = 1000) -> None:
        self._entries: list[OperationResult] = []
        self._max_entries = max_entries
        self._lock = threading.RLock()
        self._exporters: list[Any] = []

    def add_exporter(self, exporter: Any) -> None:
        """Add an exporter to receive journal entries."""
        self._exporters.append(exporter)

    def record(self, result: OperationResult) -> None:
        """
        Record a result and forward it to exporters.

        Exporter errors are logged and never propagate.
        """
        with self._lock:
            self._entries.append(result)
            if len(self._entries) > self._max_entries:
                self._entries = self._entries[-self._max_entries :]

        for exporter in self._exporters:
            try:
                exporter.export(result)
            except Exception as exc:
                logger.error(
                    "Exporter %s failed: %s",
                    type(exporter).__name__,
                    exc,
                )

    def query(
        self,
        operation: Operation | None = None,
        success: bool | None = None,
        limit: int | None = None,
    ) -> list[OperationResult]:
        """
        Return recorded results, oldest first.

        Args:
            operation: Only results of this operation.
            success: Only successful (True) or failed (False) results.
            limit: Stop after this many matches.
        """
        results: list[OperationResult] = []
        with self._lock:
            for entry in self._entries:
                if operation is not None and entry.operation != operation:
                    continue
                if success is not None and entry.success != success:
                    continue
                results.append(entry)
                if limit is not None and len(results) >= limit:
                    break
        return results

    def last(self) -> OperationResult | None:
        with self._lock:
            return self._entries[-1] if self._entries else None

    def get_stats(self) -> dict[str, Any]:
        """Aggregate counts over the journal."""
        with self._lock:
            entries = list(self._entries)

        failures = [e for e in entries if not e.success]
        return {
            "total": len(entries),
            "succeeded": len(entries) - len(failures),
            "failed": len(failures),
            "by_operation": dict(Counter(e.operation.value for e in entries)),
            "by_error_kind": dict(
                Counter(e.error_kind.value for e in failures if e.error_kind)
            ),
        }

    def clear(self) -> None:
        """Clear all journal entries."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
