"""Two-level directory discovery for project catalogs."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .colors import read_project_color
from .errors import ScanError
from .models import Project

LOGGER = logging.getLogger(__name__)


class ProjectTreeScanner:
    """Discover groups and projects below a base folder.

    Groups are the first-level directories of the base folder and projects
    the directories inside each group. Entries are returned in the order the
    filesystem enumerates them.
    """

    def __init__(
        self,
        *,
        follow_symlinks: bool = False,
        include_hidden: bool = True,
        color_reader: Callable[[Path], Optional[str]] = read_project_color,
    ) -> None:
        self.follow_symlinks = follow_symlinks
        self.include_hidden = include_hidden
        self._color_reader = color_reader

    def scan(self, base_folder: Path) -> Dict[str, List[Project]]:
        """Return every group below ``base_folder`` with its projects.

        Raises:
            ScanError: If a directory cannot be listed.
        """
        groups: Dict[str, List[Project]] = {}
        for name in self.list_directories(base_folder):
            groups[name] = self.scan_group(base_folder / name)
        LOGGER.info(
            "Scanned %d group(s) and %d project(s) under %s",
            len(groups),
            sum(len(projects) for projects in groups.values()),
            base_folder,
        )
        return groups

    def scan_group(self, group_path: Path) -> List[Project]:
        """Return the projects inside a single group folder.

        Raises:
            ScanError: If the group cannot be listed.
        """
        return [
            Project(name=name, color=self._read_color(group_path / name))
            for name in self.list_directories(group_path)
        ]

    def list_directories(self, path: Path) -> List[str]:
        """Return names of the directories directly inside ``path``.

        Raises:
            ScanError: If ``path`` cannot be listed.
        """
        names: List[str] = []
        try:
            with os.scandir(path) as entries:
                for entry in entries:
                    if not self.include_hidden and entry.name.startswith("."):
                        continue
                    try:
                        is_dir = entry.is_dir(follow_symlinks=self.follow_symlinks)
                    except OSError:
                        continue
                    if is_dir:
                        names.append(entry.name)
        except OSError as exc:
            raise ScanError(f"Unable to list {path}: {exc}") from exc
        return names

    def _read_color(self, project_path: Path) -> Optional[str]:
        try:
            return self._color_reader(project_path)
        except Exception as exc:  # pragma: no cover - color hints are optional
            LOGGER.debug("Color lookup failed for %s: %s", project_path, exc)
            return None


__all__ = ["ProjectTreeScanner"]
