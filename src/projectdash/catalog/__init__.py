"""Catalog persistence and synchronization for projectdash."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List

from pydantic import ValidationError

from .backends import JsonFileStore, KeyValueStore, MemoryStore
from .errors import (
    CatalogError,
    GroupNotFoundError,
    InvalidImportError,
    InvalidPathError,
    LaunchError,
    MissingBaseFolderError,
    NotConfiguredError,
    ScanError,
)
from .models import SCHEMA_VERSION, Catalog, Project, SortCriterion, utc_now_millis
from .scanner import ProjectTreeScanner

LOGGER = logging.getLogger(__name__)

DEFAULT_CATALOG_KEY = "projectdash.catalog"
REQUIRED_IMPORT_KEYS = ("baseFolder", "projectsData")


class CatalogStore:
    """Own the persisted catalog and keep it in sync with the filesystem.

    Every mutation reads the whole catalog, derives a new value, and writes it
    back in a single call to the backend. Errors are raised before anything
    is written, so a failed operation leaves the persisted catalog untouched.
    """

    def __init__(
        self,
        backend: KeyValueStore,
        *,
        scanner: ProjectTreeScanner | None = None,
        key: str = DEFAULT_CATALOG_KEY,
        clock: Callable[[], datetime] = utc_now_millis,
    ) -> None:
        """Initialize the store.

        Args:
            backend: Key-value persistence used for the catalog value.
            scanner: Directory scanner; a default scanner is used when omitted.
            key: Backend key holding the catalog.
            clock: Callable returning the current time for scan timestamps.
        """
        self._backend = backend
        self._scanner = scanner or ProjectTreeScanner()
        self._key = key
        self._clock = clock

    @property
    def key(self) -> str:
        """Return the backend key that holds the catalog."""
        return self._key

    def get_catalog(self) -> Catalog:
        """Return the current persisted catalog.

        Returns:
            Catalog: Stored snapshot, or an empty catalog when nothing usable
            has been persisted yet.
        """
        raw = self._backend.get(self._key)
        if raw is None:
            return Catalog()
        if not isinstance(raw, Mapping):
            LOGGER.warning("Ignoring persisted catalog that is not a mapping.")
            return Catalog()

        payload = _upgrade_payload(dict(raw))
        try:
            return Catalog.model_validate(payload)
        except ValidationError as exc:
            LOGGER.warning("Ignoring invalid persisted catalog: %s", exc)
            return Catalog()

    def set_base_folder(self, path: str | Path) -> str:
        """Persist a new base folder without rescanning.

        Args:
            path: Directory containing the group folders.

        Returns:
            str: Absolute path that was stored.

        Raises:
            InvalidPathError: If ``path`` is not an existing directory.
        """
        folder = Path(path).expanduser()
        if not folder.is_dir():
            raise InvalidPathError(f"Folder does not exist: {folder}")

        stored = os.path.abspath(folder)
        catalog = self.get_catalog()
        self._save(catalog.model_copy(update={"base_folder": stored}))
        LOGGER.info("Base folder set to %s", stored)
        return stored

    def full_scan(self) -> Catalog:
        """Rebuild every group from disk and stamp the scan time.

        Returns:
            Catalog: Updated catalog.

        Raises:
            NotConfiguredError: If no base folder is set.
            InvalidPathError: If the base folder no longer exists.
            ScanError: If a folder cannot be listed.
        """
        catalog = self.get_catalog()
        base = self._require_base_folder(catalog)
        if not base.is_dir():
            raise InvalidPathError(f"Base projects folder does not exist: {base}")

        groups = self._scanner.scan(base)
        updated = catalog.model_copy(update={"groups": groups, "last_scan_at": self._clock()})
        self._save(updated)
        return updated

    def refresh_group(self, group: str) -> List[Project]:
        """Re-read a single group from disk, leaving every other group as is.

        Args:
            group: Name of the group folder.

        Returns:
            List[Project]: Projects now stored for the group.

        Raises:
            NotConfiguredError: If no base folder is set.
            GroupNotFoundError: If the group folder does not exist.
            ScanError: If the group folder cannot be listed.
        """
        catalog = self.get_catalog()
        base = self._require_base_folder(catalog)
        if not _is_plain_name(group) or not (base / group).is_dir():
            raise GroupNotFoundError(f"Group folder does not exist: {base / group}")

        projects = self._scanner.scan_group(base / group)
        groups = dict(catalog.groups)
        groups[group] = projects
        self._save(catalog.model_copy(update={"groups": groups}))
        LOGGER.info("Refreshed group %s (%d project(s))", group, len(projects))
        return projects

    def set_group_expanded(self, group: str, expanded: bool) -> None:
        """Record the expand/collapse state of a group.

        Unknown group names are stored as well.
        """
        catalog = self.get_catalog()
        states = dict(catalog.group_expanded)
        states[group] = bool(expanded)
        self._save(catalog.model_copy(update={"group_expanded": states}))

    def save_sorted(
        self, groups: Mapping[str, List[Project]], criterion: SortCriterion
    ) -> Catalog:
        """Persist a reordered copy of the current groups.

        Args:
            groups: Reordered groups; must hold the same groups and projects.
            criterion: Sort criterion that produced the order.

        Returns:
            Catalog: Updated catalog.

        Raises:
            CatalogError: If ``groups`` is not a reordering of the stored groups.
        """
        catalog = self.get_catalog()
        if not _is_permutation(catalog.groups, groups):
            raise CatalogError("Sorted groups do not match the stored catalog.")
        updated = catalog.model_copy(
            update={
                "groups": {name: list(projects) for name, projects in groups.items()},
                "sort_order": criterion,
            }
        )
        self._save(updated)
        return updated

    def export_snapshot(self) -> Dict[str, Any]:
        """Return the full persisted state in the export layout."""
        return self.get_catalog().to_payload()

    def import_snapshot(
        self,
        data: Any,
        *,
        base_folder: str | Path | None = None,
        allow_missing_base: bool = False,
    ) -> Catalog:
        """Replace the catalog with an exported snapshot.

        Args:
            data: Decoded export payload.
            base_folder: Substitute base folder replacing the imported one.
            allow_missing_base: Accept an imported base folder that does not
                exist on this machine.

        Returns:
            Catalog: Imported catalog.

        Raises:
            InvalidImportError: If the payload is malformed or lacks required keys.
            MissingBaseFolderError: If the imported base folder is missing and
                neither a substitute nor ``allow_missing_base`` was given.
            InvalidPathError: If the substitute base folder does not exist.
        """
        catalog = parse_snapshot(data)

        if base_folder is not None:
            folder = Path(base_folder).expanduser()
            if not folder.is_dir():
                raise InvalidPathError(f"Folder does not exist: {folder}")
            catalog = catalog.model_copy(update={"base_folder": os.path.abspath(folder)})
        elif not allow_missing_base and not Path(str(catalog.base_folder)).is_dir():
            raise MissingBaseFolderError(str(catalog.base_folder))

        self._save(catalog)
        LOGGER.info("Imported catalog with %d group(s)", len(catalog.groups))
        return catalog

    def reset(self) -> Catalog:
        """Discard the persisted catalog."""
        self._backend.set(self._key, None)
        return Catalog()

    def restore(self, catalog: Catalog) -> Catalog:
        """Persist ``catalog`` unchanged, replacing the stored value."""
        self._save(catalog)
        return catalog

    def _require_base_folder(self, catalog: Catalog) -> Path:
        if not catalog.base_folder:
            raise NotConfiguredError("Base projects folder not set.")
        return Path(catalog.base_folder)

    def _save(self, catalog: Catalog) -> None:
        self._backend.set(self._key, catalog.to_payload())


def parse_snapshot(data: Any) -> Catalog:
    """Validate an export payload and return the catalog it describes.

    Raises:
        InvalidImportError: If the payload is not a mapping, lacks the
            required keys, or holds invalid values.
    """
    if not isinstance(data, Mapping):
        raise InvalidImportError("Import data must be a JSON object.")
    missing = [key for key in REQUIRED_IMPORT_KEYS if data.get(key) is None]
    if missing:
        raise InvalidImportError(f"Import data is missing required keys: {', '.join(missing)}")

    try:
        return Catalog.model_validate(_upgrade_payload(dict(data)))
    except ValidationError as exc:
        raise InvalidImportError(f"Invalid import data: {exc}") from exc


def _upgrade_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    version = payload.get("schemaVersion")
    if version is None:
        # Unversioned payloads share the version 1 layout minus the newer keys.
        payload["schemaVersion"] = SCHEMA_VERSION
    elif isinstance(version, int) and version > SCHEMA_VERSION:
        LOGGER.warning(
            "Catalog schema version %s is newer than supported version %s; "
            "unknown fields are ignored.",
            version,
            SCHEMA_VERSION,
        )
        payload["schemaVersion"] = SCHEMA_VERSION
    return payload


def _is_plain_name(name: str) -> bool:
    if not name or name in (".", ".."):
        return False
    return not any(sep and sep in name for sep in (os.sep, os.altsep, "/"))


def _is_permutation(
    current: Mapping[str, List[Project]], candidate: Mapping[str, List[Project]]
) -> bool:
    if set(current) != set(candidate):
        return False
    for name, projects in current.items():
        ordered = candidate[name]
        if len(ordered) != len(projects):
            return False
        remaining = list(projects)
        for project in ordered:
            if project not in remaining:
                return False
            remaining.remove(project)
    return True


__all__ = [
    "CatalogStore",
    "DEFAULT_CATALOG_KEY",
    "Catalog",
    "Project",
    "ProjectTreeScanner",
    "KeyValueStore",
    "JsonFileStore",
    "MemoryStore",
    "parse_snapshot",
    "CatalogError",
    "InvalidPathError",
    "NotConfiguredError",
    "GroupNotFoundError",
    "InvalidImportError",
    "MissingBaseFolderError",
    "ScanError",
    "LaunchError",
]
