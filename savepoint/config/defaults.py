"""
Default Configuration
~~~~~~~~~~~~~~~~~~~~~

Sensible defaults for savepoint when no config file is provided.
"""

from __future__ import annotations

__all__ = ["DEFAULT_CONFIG"]

DEFAULT_CONFIG: dict = {
    "version": "1.0",
    "storage": {
        # None resolves to ~/SavePointData and ~/ProjectBackups
        "data_root": None,
        "backup_root": None,
        "encoding": "directory",
        "key_substitute": "_",
    },
    "snapshots": {
        "timestamp_format": "%Y-%m-%d %H:%M:%S",
        "strict_metadata": False,
        "exclude": [],
    },
    "logging": {
        "level": "WARNING",
        "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
    },
    "observability": {
        "exporters": [],
        "journal_max_entries": 1000,
    },
}
