"""
Path Key Codec
~~~~~~~~~~~~~~

Maps an absolute project root path to a single filesystem-safe path
segment, used to namespace snapshot and backup storage per project.
"""

from __future__ import annotations

import os
import re

__all__ = ["PathKeyCodec", "encode_project_key"]

_SEPARATOR_RE = re.compile(r"[\\/:]")


class PathKeyCodec:
    """
    Deterministic, non-reversible path-to-key mapping.

    Every ``/``, ``\\`` and ``:`` character is replaced by the substitute;
    a doubled separator (``//``, an escaped ``\\\\``) is replaced
    character by character. Everything else passes through unchanged.
    """

    def __init__(self, substitute: str = "_") -> None:
        if len(substitute) != 1 or _SEPARATOR_RE.match(substitute):
            raise ValueError(f"Invalid key substitute: {substitute!r}")
        self._substitute = substitute

    @property
    def substitute(self) -> str:
        return self._substitute

    def encode(self, absolute_path: str | os.PathLike[str]) -> str:
        """Return the storage key for ``absolute_path``."""
        return _SEPARATOR_RE.sub(self._substitute, os.fspath(absolute_path))

    def __repr__(self) -> str:
        return f"<PathKeyCodec substitute={self._substitute!r}>"


def encode_project_key(absolute_path: str | os.PathLike[str], substitute: str = "_") -> str:
    """Shorthand for ``PathKeyCodec(substitute).encode(absolute_path)``."""
    return PathKeyCodec(substitute).encode(absolute_path)
