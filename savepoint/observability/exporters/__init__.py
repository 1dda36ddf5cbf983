"""Journal exporters."""

import sys

from savepoint.observability.exporters.stdout_exporter import StdoutExporter

__all__ = ["StdoutExporter", "create_exporter"]


def create_exporter(name: str) -> StdoutExporter:
    """
    Build an exporter from its configured name.

    Raises:
        ValueError: For an unknown exporter name.
    """
    if name == "stdout":
        return StdoutExporter()
    if name == "stderr":
        return StdoutExporter(stream=sys.stderr)
    raise ValueError(f"Unknown exporter: {name!r}. Use 'stdout' or 'stderr'.")
