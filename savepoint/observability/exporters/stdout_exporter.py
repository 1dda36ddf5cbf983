"""
Stdout Exporter
~~~~~~~~~~~~~~~

Writes operation results as JSON lines to a text stream.
"""

from __future__ import annotations

import json
import sys

from savepoint.core.outcome import OperationResult

__all__ = ["StdoutExporter"]


class StdoutExporter:
    """
    Writes each operation result as a single JSON line.

    Defaults to stdout; pass ``stream`` to redirect, e.g. to a log file.
    """

    def __init__(self, stream: object | None = None, pretty: bool = False) -> None:
        self._stream = stream or sys.stdout
        self._pretty = pretty

    def export(self, result: OperationResult) -> None:
        """Serialize ``result`` and write it to the output stream."""
        data = result.to_dict()
        line = json.dumps(data, indent=2 if self._pretty else None, default=str)
        self._stream.write(line + "\n")  # type: ignore[union-attr]
        self._stream.flush()  # type: ignore[union-attr]
