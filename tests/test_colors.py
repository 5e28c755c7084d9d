"""Tests for project color extraction."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from projectdash.catalog import CatalogStore, MemoryStore
from projectdash.catalog.colors import color_from_settings, read_project_color


def _write_settings(project: Path, content: str) -> None:
    settings_dir = project / ".vscode"
    settings_dir.mkdir(parents=True, exist_ok=True)
    (settings_dir / "settings.json").write_text(content, encoding="utf-8")


def test_nested_layout_color(tmp_path: Path) -> None:
    _write_settings(
        tmp_path,
        json.dumps({"workbench": {"colorCustomizations": {"activityBar.background": "#ff0000"}}}),
    )

    assert read_project_color(tmp_path) == "#ff0000"


def test_flat_layout_color(tmp_path: Path) -> None:
    _write_settings(
        tmp_path,
        json.dumps({"workbench.colorCustomizations": {"activityBar.background": "#00ff00"}}),
    )

    assert read_project_color(tmp_path) == "#00ff00"


def test_nested_layout_wins_over_flat() -> None:
    payload = {
        "workbench": {"colorCustomizations": {"activityBar.background": "#111111"}},
        "workbench.colorCustomizations": {"activityBar.background": "#222222"},
    }

    assert color_from_settings(payload) == "#111111"


def test_flat_layout_used_when_nested_has_no_color() -> None:
    payload = {
        "workbench": {"colorCustomizations": {"statusBar.background": "#111111"}},
        "workbench.colorCustomizations": {"activityBar.background": "#222222"},
    }

    assert color_from_settings(payload) == "#222222"


@pytest.mark.parametrize(
    "payload",
    [
        {},
        [],
        "text",
        {"workbench": "dark"},
        {"workbench": {"colorCustomizations": {"activityBar.background": 42}}},
        {"workbench.colorCustomizations": None},
        {"editor.fontSize": 14},
    ],
)
def test_payloads_without_usable_color(payload: object) -> None:
    assert color_from_settings(payload) is None


def test_missing_settings_file_has_no_color(tmp_path: Path) -> None:
    assert read_project_color(tmp_path) is None


def test_malformed_settings_have_no_color(tmp_path: Path) -> None:
    _write_settings(tmp_path, '{"workbench": {')

    assert read_project_color(tmp_path) is None


def test_scan_attaches_colors(tmp_path: Path) -> None:
    base = tmp_path / "root"
    (base / "Work" / "A").mkdir(parents=True)
    (base / "Work" / "B").mkdir()
    _write_settings(
        base / "Work" / "A",
        json.dumps({"workbench.colorCustomizations": {"activityBar.background": "#ff0000"}}),
    )
    _write_settings(base / "Work" / "B", "not json at all")
    store = CatalogStore(MemoryStore())
    store.set_base_folder(base)

    catalog = store.full_scan()

    colors = {project.name: project.color for project in catalog.groups["Work"]}
    assert colors == {"A": "#ff0000", "B": None}
