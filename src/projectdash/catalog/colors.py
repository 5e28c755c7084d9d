"""Read project color hints from per-project editor settings."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

LOGGER = logging.getLogger(__name__)

SETTINGS_RELATIVE_PATH = Path(".vscode") / "settings.json"
COLOR_KEY = "activityBar.background"


class _SettingsModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ColorCustomizations(_SettingsModel):
    """The ``colorCustomizations`` block; only the activity bar color is read."""

    activity_bar_background: Optional[str] = Field(default=None, alias=COLOR_KEY)


class _Workbench(_SettingsModel):
    color_customizations: Optional[ColorCustomizations] = Field(
        default=None, alias="colorCustomizations"
    )


class NestedColorSettings(_SettingsModel):
    """Settings written as ``{"workbench": {"colorCustomizations": {...}}}``."""

    workbench: _Workbench

    @property
    def color(self) -> Optional[str]:
        block = self.workbench.color_customizations
        return block.activity_bar_background if block else None


class FlatColorSettings(_SettingsModel):
    """Settings written as ``{"workbench.colorCustomizations": {...}}``."""

    color_customizations: ColorCustomizations = Field(alias="workbench.colorCustomizations")

    @property
    def color(self) -> Optional[str]:
        return self.color_customizations.activity_bar_background


ColorSettings = Union[NestedColorSettings, FlatColorSettings]

# Checked in order; the nested layout wins when both carry a color.
_LAYOUTS: tuple[type[NestedColorSettings] | type[FlatColorSettings], ...] = (
    NestedColorSettings,
    FlatColorSettings,
)


def color_from_settings(payload: object) -> Optional[str]:
    """Return the activity bar color declared in a parsed settings payload.

    Args:
        payload: Decoded ``settings.json`` content.

    Returns:
        Optional[str]: Color string, or None when neither layout declares one.
    """

    for layout in _LAYOUTS:
        try:
            settings: ColorSettings = layout.model_validate(payload)
        except ValidationError:
            continue
        if settings.color:
            return settings.color
    return None


def read_project_color(project_path: Path) -> Optional[str]:
    """Return the color hint for a project folder, never raising.

    Args:
        project_path: Project directory.

    Returns:
        Optional[str]: Declared color, or None when absent or unreadable.
    """

    settings_path = project_path / SETTINGS_RELATIVE_PATH
    if not settings_path.is_file():
        return None
    try:
        payload = json.loads(settings_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        LOGGER.debug("Skipping color for %s: %s", project_path, exc)
        return None
    return color_from_settings(payload)


__all__ = [
    "ColorCustomizations",
    "ColorSettings",
    "FlatColorSettings",
    "NestedColorSettings",
    "color_from_settings",
    "read_project_color",
]
