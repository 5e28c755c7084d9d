"""Open project folders in new editor windows."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import List, Protocol, Sequence

from projectdash.catalog.errors import LaunchError

LOGGER = logging.getLogger(__name__)

DEFAULT_EDITOR_COMMAND: tuple[str, ...] = ("code", "--new-window")


class WindowOpener(Protocol):
    """Open an absolute folder path in a new top-level editor window."""

    def open_window(self, path: Path) -> None:
        """Open ``path``; returns without waiting for the window."""


class EditorLauncher:
    """Spawn an editor command for each opened project."""

    def __init__(self, command: Sequence[str] = DEFAULT_EDITOR_COMMAND) -> None:
        if not command:
            raise ValueError("Editor command must not be empty.")
        self._command: List[str] = list(command)

    @property
    def command(self) -> List[str]:
        """Return the configured command prefix."""
        return list(self._command)

    def open_window(self, path: Path) -> None:
        """Start the editor on ``path`` without waiting for it to exit.

        Raises:
            LaunchError: If the editor executable cannot be started.
        """
        executable = shutil.which(self._command[0]) or self._command[0]
        args = [executable, *self._command[1:], str(path)]
        LOGGER.info("Opening %s with %s", path, self._command[0])
        try:
            subprocess.Popen(
                args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as exc:
            raise LaunchError(f"Unable to start editor '{self._command[0]}': {exc}") from exc


__all__ = ["DEFAULT_EDITOR_COMMAND", "EditorLauncher", "WindowOpener"]
