"""
Host Bridge
~~~~~~~~~~~

The seam between the engine and whatever presents it: an editor
plugin, a terminal, or a test. The engine never prompts, prints or
touches editor state itself; it asks the host to.
"""

from __future__ import annotations

import logging
import sys
from abc import ABC, abstractmethod
from typing import TextIO

from savepoint.core.kinds import NotifyLevel

__all__ = ["HostBridge", "NullHost", "ConsoleHost"]

logger = logging.getLogger(__name__)


class HostBridge(ABC):
    """
    Abstract base class for host integrations.

    ``request_name``, ``request_message`` and ``confirm`` gather user
    input; ``notify`` reports outcomes. ``flush_unsaved_edits`` runs
    before every mutation so the disk reflects the user's buffers, and
    ``refresh_file_view`` runs after the project tree was rewritten.
    """

    @abstractmethod
    def request_name(self, prompt: str = "Save point name") -> str | None:
        """Ask for a save point name; None means the user cancelled."""
        ...

    @abstractmethod
    def request_message(self, prompt: str = "Message") -> str | None:
        """Ask for an optional free-text message; None means cancelled."""
        ...

    @abstractmethod
    def confirm(self, prompt: str) -> bool:
        """Ask a yes/no question before a destructive step."""
        ...

    @abstractmethod
    def notify(self, level: NotifyLevel, text: str) -> None:
        """Show the outcome of an operation."""
        ...

    def flush_unsaved_edits(self) -> None:
        """Write pending editor buffers to disk. No-op by default."""

    def refresh_file_view(self) -> None:
        """Reload views of the project tree. No-op by default."""


class NullHost(HostBridge):
    """
    Non-interactive host for scripts and tests.

    Confirmations are auto-approved with a warning, prompts return the
    preset answers, and notifications go to the log.
    """

    def __init__(
        self,
        name: str | None = None,
        message: str | None = "",
        approve: bool = True,
    ) -> None:
        self._name = name
        self._message = message
        self._approve = approve
        self.notifications: list[tuple[NotifyLevel, str]] = []
        self.flush_count = 0
        self.refresh_count = 0

    def request_name(self, prompt: str = "Save point name") -> str | None:
        return self._name

    def request_message(self, prompt: str = "Message") -> str | None:
        return self._message

    def confirm(self, prompt: str) -> bool:
        if self._approve:
            logger.warning("Auto-confirming without a host prompt: %s", prompt)
        return self._approve

    def notify(self, level: NotifyLevel, text: str) -> None:
        self.notifications.append((level, text))
        if level is NotifyLevel.ERROR:
            logger.error("%s", text)
        else:
            logger.info("%s", text)

    def flush_unsaved_edits(self) -> None:
        self.flush_count += 1

    def refresh_file_view(self) -> None:
        self.refresh_count += 1


class ConsoleHost(HostBridge):
    """Terminal host used by the command-line interface."""

    def __init__(
        self,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        self._in = stdin or sys.stdin
        self._out = stdout or sys.stdout
        self._err = stderr or sys.stderr

    def _ask(self, prompt: str) -> str | None:
        self._out.write(f"{prompt}: ")
        self._out.flush()
        line = self._in.readline()
        if not line:
            return None
        return line.rstrip("\r\n")

    def request_name(self, prompt: str = "Save point name") -> str | None:
        answer = self._ask(prompt)
        return answer.strip() if answer else None

    def request_message(self, prompt: str = "Message") -> str | None:
        return self._ask(prompt)

    def confirm(self, prompt: str) -> bool:
        answer = self._ask(f"{prompt} [y/N]")
        return (answer or "").strip().lower() in ("y", "yes")

    def notify(self, level: NotifyLevel, text: str) -> None:
        if level is NotifyLevel.ERROR:
            print(f"  ✗ {text}", file=self._err)
        else:
            print(f"  ✓ {text}", file=self._out)
