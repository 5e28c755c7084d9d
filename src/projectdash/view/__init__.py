"""Interactive catalog view: rendering data, sorting, search and actions."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol

from projectdash.catalog import CatalogStore
from projectdash.catalog.errors import CatalogError, InvalidImportError, MissingBaseFolderError
from projectdash.catalog.models import SORT_CRITERIA, Catalog, Project, utc_now_millis

from .filtering import filter_groups, normalize_query
from .launcher import DEFAULT_EDITOR_COMMAND, EditorLauncher, WindowOpener
from .sorting import sort_groups

LOGGER = logging.getLogger(__name__)

DEFAULT_STALENESS = timedelta(hours=24)


class HostDialogs(Protocol):
    """Pickers supplied by the host; returning None means the user cancelled."""

    def pick_folder(self, title: str) -> Optional[str]:
        """Return a directory chosen by the user."""

    def pick_save_path(self, title: str) -> Optional[str]:
        """Return a destination file chosen by the user."""

    def pick_open_path(self, title: str) -> Optional[str]:
        """Return an existing file chosen by the user."""


class NoDialogs:
    """Dialog provider for non-interactive hosts; every picker cancels."""

    def pick_folder(self, title: str) -> Optional[str]:
        return None

    def pick_save_path(self, title: str) -> Optional[str]:
        return None

    def pick_open_path(self, title: str) -> Optional[str]:
        return None


@dataclass(slots=True)
class GroupView:
    """Renderable state of a single group.

    Attributes:
        name: Group folder name.
        projects: Projects visible under the current search query.
        expanded: Whether the group is expanded.
        total: Number of projects in the group before filtering.
    """

    name: str
    projects: List[Project]
    expanded: bool
    total: int


@dataclass(slots=True)
class ActionResult:
    """Outcome of a dispatched user action.

    Attributes:
        command: Action tag that was dispatched.
        ok: False when the action failed with a catalog error.
        message: Human-readable status for the host to display.
        catalog: Catalog snapshot after the action.
        payload: Action-specific data such as the opened project path.
    """

    command: str
    ok: bool
    message: str
    catalog: Catalog
    payload: Dict[str, Any] = field(default_factory=dict)


class CatalogView:
    """Translate user actions into catalog store operations."""

    def __init__(
        self,
        store: CatalogStore,
        *,
        opener: WindowOpener | None = None,
        dialogs: HostDialogs | None = None,
        staleness: timedelta = DEFAULT_STALENESS,
        clock: Callable[[], datetime] = utc_now_millis,
    ) -> None:
        """Initialize the view.

        Args:
            store: Catalog store that owns persisted state.
            opener: Window-open primitive; defaults to launching the editor.
            dialogs: Host pickers; defaults to cancelling every prompt.
            staleness: Age after which opening the view triggers a full scan.
            clock: Callable returning the current time.
        """
        self._store = store
        self._opener = opener or EditorLauncher(DEFAULT_EDITOR_COMMAND)
        self._dialogs = dialogs or NoDialogs()
        self._staleness = staleness
        self._clock = clock
        self._handlers: Dict[str, Callable[..., ActionResult]] = {
            "open": self._handle_open,
            "selectBaseFolder": self._handle_select_base_folder,
            "rescanProjects": self._handle_rescan,
            "refreshGroup": self._handle_refresh_group,
            "toggleGroup": self._handle_toggle_group,
            "sortProjects": self._handle_sort,
            "openProject": self._handle_open_project,
            "exportCatalog": self._handle_export,
            "importCatalog": self._handle_import,
            "resetCatalog": self._handle_reset,
        }

    @property
    def store(self) -> CatalogStore:
        """Return the underlying catalog store."""
        return self._store

    @property
    def commands(self) -> List[str]:
        """Return the action tags understood by :meth:`dispatch`."""
        return list(self._handlers)

    def is_stale(self, catalog: Catalog) -> bool:
        """Return whether the catalog needs a full scan before display."""
        if catalog.last_scan_at is None:
            return True
        return self._clock() - catalog.last_scan_at > self._staleness

    def load(self) -> Catalog:
        """Return the catalog to display, prompting and scanning as needed.

        Raises:
            CatalogError: If setting the folder or scanning fails.
        """
        catalog = self._store.get_catalog()
        if not catalog.base_folder:
            chosen = self._dialogs.pick_folder("Select Base Projects Folder")
            if not chosen:
                return catalog
            return self._switch_base_folder(chosen)
        if self.is_stale(catalog):
            LOGGER.info("Catalog is stale; rescanning %s", catalog.base_folder)
            return self._scan()
        return catalog

    def groups(self, catalog: Catalog, query: str | None = None) -> List[GroupView]:
        """Return renderable groups for ``catalog`` filtered by ``query``."""
        visible = filter_groups(catalog.groups, query)
        return [
            GroupView(
                name=name,
                projects=projects,
                expanded=catalog.is_expanded(name),
                total=len(catalog.groups[name]),
            )
            for name, projects in visible.items()
        ]

    def sort(self, criterion: str) -> Catalog:
        """Sort the stored groups and persist the result.

        Raises:
            CatalogError: If ``criterion`` is unknown.
        """
        if criterion not in SORT_CRITERIA:
            raise CatalogError(
                f"Unknown sort criterion '{criterion}'. Choose one of: {', '.join(SORT_CRITERIA)}."
            )
        catalog = self._store.get_catalog()
        ordered = sort_groups(catalog.groups, criterion)  # type: ignore[arg-type]
        return self._store.save_sorted(ordered, criterion)  # type: ignore[arg-type]

    def resolve_project(self, catalog: Catalog, reference: str) -> Optional[Path]:
        """Return the absolute path for a ``group/project`` reference."""
        if not catalog.base_folder:
            return None
        group, _, project = reference.partition("/")
        if not group or not project:
            return None
        return Path(catalog.base_folder) / group / project

    def dispatch(self, command: str, **payload: Any) -> ActionResult:
        """Run one user action to completion.

        Catalog errors are caught and reported through the result so the view
        stays usable; the stored catalog is left as it was.

        Args:
            command: Action tag, one of :attr:`commands`.
            **payload: Action arguments.

        Returns:
            ActionResult: Outcome for the host to display.
        """
        handler = self._handlers.get(command)
        if handler is None:
            return self._failure(command, f"Unknown action '{command}'.")
        try:
            return handler(**payload)
        except CatalogError as exc:
            LOGGER.info("Action %s failed: %s", command, exc)
            return self._failure(command, str(exc))

    # Action handlers --------------------------------------------------

    def _handle_open(self) -> ActionResult:
        catalog = self.load()
        if not catalog.base_folder:
            return self._result("open", "No base folder selected.", catalog)
        return self._result("open", f"Showing projects in {catalog.base_folder}.", catalog)

    def _handle_select_base_folder(self, path: str | None = None) -> ActionResult:
        chosen = path or self._dialogs.pick_folder("Select Base Projects Folder")
        if not chosen:
            return self._cancelled("selectBaseFolder")
        catalog = self._switch_base_folder(chosen)
        return self._result(
            "selectBaseFolder", f"Base folder set to {catalog.base_folder}.", catalog
        )

    def _handle_rescan(self) -> ActionResult:
        catalog = self._scan()
        count = sum(len(projects) for projects in catalog.groups.values())
        return self._result(
            "rescanProjects",
            f"Scanned {len(catalog.groups)} group(s) and {count} project(s).",
            catalog,
        )

    def _handle_refresh_group(self, group: str) -> ActionResult:
        projects = self._store.refresh_group(group)
        catalog = self._reapply_sort()
        return self._result(
            "refreshGroup",
            f"Refreshed {group}: {len(projects)} project(s).",
            catalog,
        )

    def _handle_toggle_group(self, group: str, expanded: bool | None = None) -> ActionResult:
        current = self._store.get_catalog()
        state = (not current.is_expanded(group)) if expanded is None else expanded
        self._store.set_group_expanded(group, state)
        word = "expanded" if state else "collapsed"
        return self._result("toggleGroup", f"Group {group} {word}.", self._store.get_catalog())

    def _handle_sort(self, criterion: str) -> ActionResult:
        catalog = self.sort(criterion)
        return self._result("sortProjects", f"Sorted projects by {criterion}.", catalog)

    def _handle_open_project(self, project: str) -> ActionResult:
        catalog = self._store.get_catalog()
        path = self.resolve_project(catalog, project)
        if path is None:
            return self._result("openProject", "Nothing to open.", catalog)
        self._opener.open_window(path)
        return self._result("openProject", f"Opened {path}.", catalog, path=str(path))

    def _handle_export(self, path: str | None = None) -> ActionResult:
        target = path or self._dialogs.pick_save_path("Export Project Catalog")
        if not target:
            return self._cancelled("exportCatalog")
        snapshot = self._store.export_snapshot()
        try:
            Path(target).expanduser().write_text(json.dumps(snapshot, indent=2), encoding="utf-8")
        except OSError as exc:
            raise CatalogError(f"Unable to write export file {target}: {exc}") from exc
        catalog = self._store.get_catalog()
        return self._result("exportCatalog", f"Exported catalog to {target}.", catalog, path=target)

    def _handle_import(
        self,
        path: str | None = None,
        base_folder: str | None = None,
        keep_missing: bool = False,
    ) -> ActionResult:
        source = path or self._dialogs.pick_open_path("Import Project Catalog")
        if not source:
            return self._cancelled("importCatalog")
        data = read_snapshot_file(Path(source).expanduser())
        try:
            catalog = self._store.import_snapshot(
                data, base_folder=base_folder, allow_missing_base=keep_missing
            )
        except MissingBaseFolderError as exc:
            substitute = self._dialogs.pick_folder(
                f"Base folder {exc.path} was not found; select a replacement"
            )
            if not substitute:
                return self._cancelled("importCatalog")
            catalog = self._store.import_snapshot(data, base_folder=substitute)
        return self._result("importCatalog", f"Imported catalog from {source}.", catalog)

    def _handle_reset(self) -> ActionResult:
        return self._result("resetCatalog", "Catalog reset.", self._store.reset())

    # Internal helpers -------------------------------------------------

    def _switch_base_folder(self, folder: str) -> Catalog:
        previous = self._store.get_catalog()
        self._store.set_base_folder(folder)
        try:
            return self._scan()
        except CatalogError:
            self._store.restore(previous)
            raise

    def _scan(self) -> Catalog:
        self._store.full_scan()
        return self._reapply_sort()

    def _reapply_sort(self) -> Catalog:
        catalog = self._store.get_catalog()
        if catalog.sort_order is None:
            return catalog
        ordered = sort_groups(catalog.groups, catalog.sort_order)
        return self._store.save_sorted(ordered, catalog.sort_order)

    def _result(
        self, command: str, message: str, catalog: Catalog, **payload: Any
    ) -> ActionResult:
        return ActionResult(
            command=command, ok=True, message=message, catalog=catalog, payload=payload
        )

    def _cancelled(self, command: str) -> ActionResult:
        return self._result(command, "Cancelled; no changes applied.", self._store.get_catalog())

    def _failure(self, command: str, message: str) -> ActionResult:
        return ActionResult(
            command=command, ok=False, message=message, catalog=self._store.get_catalog()
        )


def read_snapshot_file(path: Path) -> Any:
    """Return the decoded contents of an exported catalog file.

    Raises:
        InvalidImportError: If the file cannot be read or parsed.
    """
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InvalidImportError(f"Unable to read import file {path}: {exc}") from exc


__all__ = [
    "ActionResult",
    "CatalogView",
    "DEFAULT_STALENESS",
    "GroupView",
    "HostDialogs",
    "NoDialogs",
    "WindowOpener",
    "EditorLauncher",
    "filter_groups",
    "normalize_query",
    "read_snapshot_file",
    "sort_groups",
]
