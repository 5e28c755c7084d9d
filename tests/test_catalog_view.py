"""Catalog view and action dispatch tests."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from projectdash.catalog import (
    Catalog,
    CatalogStore,
    MemoryStore,
    Project,
    ProjectTreeScanner,
    ScanError,
)
from projectdash.view import CatalogView

START = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable clock shared by the store and the view."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class RecordingOpener:
    def __init__(self) -> None:
        self.opened: list[Path] = []

    def open_window(self, path: Path) -> None:
        self.opened.append(path)


class ScriptedDialogs:
    """Return queued answers for each picker; an exhausted queue cancels."""

    def __init__(self, *answers: Optional[str]) -> None:
        self.answers = list(answers)
        self.titles: list[str] = []

    def _next(self, title: str) -> Optional[str]:
        self.titles.append(title)
        return self.answers.pop(0) if self.answers else None

    def pick_folder(self, title: str) -> Optional[str]:
        return self._next(title)

    def pick_save_path(self, title: str) -> Optional[str]:
        return self._next(title)

    def pick_open_path(self, title: str) -> Optional[str]:
        return self._next(title)


class BrokenScanner(ProjectTreeScanner):
    def scan(self, base_folder: Path) -> dict[str, list[Project]]:
        raise ScanError(f"Unable to list {base_folder}")


def _make_tree(root: Path, layout: dict[str, list[str]]) -> Path:
    for group, projects in layout.items():
        (root / group).mkdir(parents=True, exist_ok=True)
        for project in projects:
            (root / group / project).mkdir()
    return root


def _view(
    *answers: Optional[str], clock: FakeClock | None = None
) -> tuple[CatalogView, RecordingOpener, ScriptedDialogs, FakeClock]:
    clock = clock or FakeClock()
    opener = RecordingOpener()
    dialogs = ScriptedDialogs(*answers)
    store = CatalogStore(MemoryStore(), clock=clock)
    view = CatalogView(store, opener=opener, dialogs=dialogs, clock=clock)
    return view, opener, dialogs, clock


def _names(catalog: Catalog) -> dict[str, list[str]]:
    return {group: [p.name for p in projects] for group, projects in catalog.groups.items()}


def test_open_without_folder_and_cancelled_prompt_stays_empty() -> None:
    view, _, dialogs, _ = _view(None)

    result = view.dispatch("open")

    assert result.ok
    assert result.catalog == Catalog()
    assert dialogs.titles == ["Select Base Projects Folder"]


def test_open_prompts_for_folder_and_scans(tmp_path: Path) -> None:
    base = _make_tree(tmp_path / "root", {"Work": ["A", "B"], "Home": ["C"]})
    view, _, _, _ = _view(str(base))

    result = view.dispatch("open")

    assert result.ok
    assert result.catalog.base_folder == str(base)
    assert {group: set(names) for group, names in _names(result.catalog).items()} == {
        "Work": {"A", "B"},
        "Home": {"C"},
    }
    assert result.catalog.last_scan_at == START


def test_open_rescans_only_when_stale(tmp_path: Path) -> None:
    base = _make_tree(tmp_path / "root", {"Work": ["A"]})
    view, _, _, clock = _view(str(base))
    view.dispatch("open")
    (base / "Work" / "New").mkdir()

    clock.now = START + timedelta(hours=23)
    fresh = view.dispatch("open").catalog
    clock.now = START + timedelta(hours=25)
    stale = view.dispatch("open").catalog

    assert _names(fresh) == {"Work": ["A"]}
    assert set(_names(stale)["Work"]) == {"A", "New"}
    assert stale.last_scan_at == START + timedelta(hours=25)


def test_open_reports_missing_base_folder(tmp_path: Path) -> None:
    base = _make_tree(tmp_path / "root", {"Work": ["A"]})
    view, _, _, clock = _view(str(base))
    before = view.dispatch("open").catalog
    (base / "Work" / "A").rmdir()
    (base / "Work").rmdir()
    base.rmdir()
    clock.now = START + timedelta(days=2)

    result = view.dispatch("open")

    assert not result.ok
    assert "does not exist" in result.message
    assert result.catalog == before


def test_failed_scan_restores_previous_base_folder(tmp_path: Path) -> None:
    first = _make_tree(tmp_path / "first", {"Work": ["A"]})
    second = _make_tree(tmp_path / "second", {"Home": ["B"]})
    backend = MemoryStore()
    clock = FakeClock()
    CatalogView(CatalogStore(backend, clock=clock), clock=clock).dispatch(
        "selectBaseFolder", path=str(first)
    )
    before = CatalogStore(backend).get_catalog()
    broken = CatalogView(
        CatalogStore(backend, scanner=BrokenScanner(), clock=clock), clock=clock
    )

    result = broken.dispatch("selectBaseFolder", path=str(second))

    assert not result.ok
    assert "Unable to list" in result.message
    assert result.catalog == before
    assert broken.store.get_catalog().base_folder == str(first)


def test_failed_first_scan_leaves_catalog_unset(tmp_path: Path) -> None:
    base = _make_tree(tmp_path / "root", {"Work": ["A"]})
    clock = FakeClock()
    store = CatalogStore(MemoryStore(), scanner=BrokenScanner(), clock=clock)
    view = CatalogView(store, dialogs=ScriptedDialogs(str(base)), clock=clock)

    result = view.dispatch("open")

    assert not result.ok
    assert store.get_catalog() == Catalog()


def test_refresh_group_failure_keeps_catalog(tmp_path: Path) -> None:
    base = _make_tree(tmp_path / "root", {"Work": ["A"]})
    view, _, _, _ = _view()
    view.dispatch("selectBaseFolder", path=str(base))
    before = view.store.get_catalog()

    result = view.dispatch("refreshGroup", group="Missing")

    assert not result.ok
    assert "Missing" in result.message
    assert view.store.get_catalog() == before


def test_refresh_group_reapplies_saved_sort(tmp_path: Path) -> None:
    base = _make_tree(tmp_path / "root", {"Work": ["b", "a"], "Home": ["c"]})
    view, _, _, _ = _view()
    view.dispatch("selectBaseFolder", path=str(base))
    view.dispatch("sortProjects", criterion="name-desc")
    (base / "Work" / "z").mkdir()

    result = view.dispatch("refreshGroup", group="Work")

    assert result.ok
    assert _names(result.catalog)["Work"] == ["z", "b", "a"]
    assert result.catalog.sort_order == "name-desc"


def test_sort_persists_order_and_survives_rescan(tmp_path: Path) -> None:
    base = _make_tree(tmp_path / "root", {"beta": ["y", "x"], "alpha": ["q", "p"]})
    view, _, _, _ = _view()
    view.dispatch("selectBaseFolder", path=str(base))

    result = view.dispatch("sortProjects", criterion="group-asc")
    rescanned = view.dispatch("rescanProjects")

    assert list(result.catalog.groups) == ["alpha", "beta"]
    assert view.store.get_catalog().sort_order == "group-asc"
    assert list(rescanned.catalog.groups) == ["alpha", "beta"]


def test_unknown_sort_criterion_is_reported() -> None:
    view, _, _, _ = _view()

    result = view.dispatch("sortProjects", criterion="size")

    assert not result.ok
    assert "size" in result.message


def test_toggle_group_flips_and_sets_state() -> None:
    view, _, _, _ = _view()

    first = view.dispatch("toggleGroup", group="Work")
    second = view.dispatch("toggleGroup", group="Work")
    forced = view.dispatch("toggleGroup", group="Work", expanded=True)

    assert first.catalog.is_expanded("Work") is True
    assert second.catalog.is_expanded("Work") is False
    assert forced.catalog.is_expanded("Work") is True


def test_open_project_resolves_path(tmp_path: Path) -> None:
    base = _make_tree(tmp_path / "root", {"Work": ["A"]})
    view, opener, _, _ = _view()
    view.dispatch("selectBaseFolder", path=str(base))

    result = view.dispatch("openProject", project="Work/A")

    assert result.ok
    assert opener.opened == [base / "Work" / "A"]
    assert result.payload["path"] == str(base / "Work" / "A")


def test_open_project_without_base_folder_is_noop() -> None:
    view, opener, _, _ = _view()

    result = view.dispatch("openProject", project="Work/A")

    assert result.ok
    assert opener.opened == []


def test_groups_applies_search_and_expand_state(tmp_path: Path) -> None:
    base = _make_tree(tmp_path / "root", {"Work": ["Alpha", "Gamma"], "Home": ["Beta"]})
    view, _, _, _ = _view()
    view.dispatch("selectBaseFolder", path=str(base))
    view.dispatch("toggleGroup", group="Work", expanded=True)
    catalog = view.store.get_catalog()

    visible = view.groups(catalog, "alp")
    everything = view.groups(catalog)

    assert [(group.name, group.expanded, group.total) for group in visible] == [("Work", True, 2)]
    assert [project.name for project in visible[0].projects] == ["Alpha"]
    assert {group.name for group in everything} == {"Work", "Home"}
    assert view.store.get_catalog() == catalog


def test_export_and_import_through_dialogs(tmp_path: Path) -> None:
    base = _make_tree(tmp_path / "root", {"Work": ["A"]})
    export_path = tmp_path / "catalog.json"
    view, _, _, _ = _view(str(export_path), str(export_path))
    view.dispatch("selectBaseFolder", path=str(base))
    original = view.store.get_catalog()

    exported = view.dispatch("exportCatalog")
    view.dispatch("resetCatalog")
    imported = view.dispatch("importCatalog")

    assert exported.ok and imported.ok
    assert json.loads(export_path.read_text(encoding="utf-8"))["baseFolder"] == str(base)
    assert imported.catalog == original


def test_import_prompts_for_substitute_base_folder(tmp_path: Path) -> None:
    substitute = _make_tree(tmp_path / "here", {"Work": ["A"]})
    source = tmp_path / "catalog.json"
    source.write_text(
        json.dumps(
            {"baseFolder": str(tmp_path / "gone"), "projectsData": {"Work": [{"name": "A"}]}}
        ),
        encoding="utf-8",
    )
    view, _, dialogs, _ = _view(str(substitute))

    result = view.dispatch("importCatalog", path=str(source))

    assert result.ok
    assert result.catalog.base_folder == str(substitute)
    assert "gone" in dialogs.titles[0]


def test_import_cancelled_when_substitute_not_chosen(tmp_path: Path) -> None:
    source = tmp_path / "catalog.json"
    source.write_text(
        json.dumps({"baseFolder": str(tmp_path / "gone"), "projectsData": {}}),
        encoding="utf-8",
    )
    view, _, _, _ = _view(None)

    result = view.dispatch("importCatalog", path=str(source))

    assert result.ok
    assert "Cancelled" in result.message
    assert view.store.get_catalog() == Catalog()


def test_import_of_unparsable_file_fails(tmp_path: Path) -> None:
    source = tmp_path / "catalog.json"
    source.write_text("{broken", encoding="utf-8")
    view, _, _, _ = _view()

    result = view.dispatch("importCatalog", path=str(source))

    assert not result.ok
    assert view.store.get_catalog() == Catalog()


def test_cancelled_dialogs_are_noops() -> None:
    view, _, _, _ = _view()

    for command in ("selectBaseFolder", "exportCatalog", "importCatalog"):
        result = view.dispatch(command)
        assert result.ok
        assert result.catalog == Catalog()


def test_unknown_action_is_reported() -> None:
    view, _, _, _ = _view()

    result = view.dispatch("launchRockets")

    assert not result.ok
    assert "launchRockets" in result.message
