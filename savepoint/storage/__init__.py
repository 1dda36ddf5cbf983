"""savepoint storage — path keys, tree walks, encodings, and stores."""

from savepoint.storage.backup_store import BackupStore
from savepoint.storage.encodings import (
    ContentEncoding,
    DirectoryEncoding,
    ZipEncoding,
    create_encoding,
)
from savepoint.storage.path_key import PathKeyCodec, encode_project_key
from savepoint.storage.snapshot_store import (
    PRE_ROLLBACK_NAME,
    SnapshotStore,
    validate_name,
)
from savepoint.storage.tree_copier import TreeCopier

__all__ = [
    "PathKeyCodec",
    "encode_project_key",
    "TreeCopier",
    "ContentEncoding",
    "DirectoryEncoding",
    "ZipEncoding",
    "create_encoding",
    "SnapshotStore",
    "BackupStore",
    "PRE_ROLLBACK_NAME",
    "validate_name",
]
