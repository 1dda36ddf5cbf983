"""
Configuration Schema
~~~~~~~~~~~~~~~~~~~~

Pydantic models for validating savepoint configuration.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

__all__ = [
    "SavePointConfig",
    "StorageConfig",
    "SnapshotConfig",
    "LoggingConfig",
    "ObservabilityConfig",
]

_ENCODINGS = ("directory", "zip")
_SEPARATORS = set("/\\:")
_EXPORTERS = ("stdout", "stderr")


class StorageConfig(BaseModel):
    """Where snapshot and backup data lives, and how it is encoded."""

    data_root: str | None = None
    backup_root: str | None = None
    encoding: str = "directory"
    key_substitute: str = "_"

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        """Only the two known content encodings are accepted."""
        v = v.lower()
        if v not in _ENCODINGS:
            raise ValueError(
                f"Unknown storage encoding {v!r}; expected one of {_ENCODINGS}"
            )
        return v

    @field_validator("key_substitute")
    @classmethod
    def validate_key_substitute(cls, v: str) -> str:
        """The substitute must be one character and not a separator itself."""
        if len(v) != 1:
            raise ValueError(f"key_substitute must be a single character: {v!r}")
        if v in _SEPARATORS:
            raise ValueError(f"key_substitute cannot be a path separator: {v!r}")
        return v

    def resolved_data_root(self) -> Path:
        if self.data_root:
            return Path(os.path.expanduser(self.data_root))
        return Path.home() / "SavePointData"

    def resolved_backup_root(self) -> Path:
        if self.backup_root:
            return Path(os.path.expanduser(self.backup_root))
        return Path.home() / "ProjectBackups"


class SnapshotConfig(BaseModel):
    """Save point metadata and capture settings."""

    timestamp_format: str = "%Y-%m-%d %H:%M:%S"
    strict_metadata: bool = False
    exclude: list[str] = Field(default_factory=list)

    @field_validator("timestamp_format")
    @classmethod
    def validate_timestamp_format(cls, v: str) -> str:
        """Listing order relies on the format rendering at a fixed width."""
        early = datetime(2001, 1, 2, 3, 4, 5).strftime(v)
        late = datetime(2099, 11, 22, 13, 14, 15).strftime(v)
        if not early or len(early) != len(late):
            raise ValueError(
                f"timestamp_format must render at a fixed width: {v!r}"
            )
        return v


class LoggingConfig(BaseModel):
    """Logging settings applied by the command-line entry point."""

    level: str = "WARNING"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate the level name against the logging module."""
        v = v.upper()
        if not isinstance(logging.getLevelName(v), int):
            raise ValueError(f"Unknown logging level: {v!r}")
        return v


class ObservabilityConfig(BaseModel):
    """Operation journal configuration."""

    exporters: list[str] = Field(default_factory=list)
    journal_max_entries: int = Field(default=1000, ge=10)

    @field_validator("exporters")
    @classmethod
    def validate_exporters(cls, v: list[str]) -> list[str]:
        """Only exporters that can be built by name are accepted."""
        unknown = [name for name in v if name not in _EXPORTERS]
        if unknown:
            raise ValueError(f"Unknown exporters {unknown}; expected any of {_EXPORTERS}")
        return v


class SavePointConfig(BaseModel):
    """
    Root configuration model for savepoint.

    Validated on load with clear error messages for invalid values.
    """

    version: str = "1.0"
    storage: StorageConfig = Field(default_factory=StorageConfig)
    snapshots: SnapshotConfig = Field(default_factory=SnapshotConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)
