"""Configuration models describing projectdash settings."""

from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProjectdashBaseModel(BaseModel):
    """Shared configuration for projectdash settings models."""

    model_config = ConfigDict(extra="forbid")


class CatalogSettings(ProjectdashBaseModel):
    """Where the catalog lives and how it is refreshed.

    Attributes:
        state_path: JSON file holding the persisted catalog.
        staleness_hours: Age after which opening the dashboard rescans.
        follow_symlinks: Whether symlinked folders count as groups/projects.
        include_hidden: Whether dot-folders are cataloged.
    """

    state_path: str = "~/.projectdash/state.json"
    staleness_hours: float = Field(default=24.0, gt=0)
    follow_symlinks: bool = False
    include_hidden: bool = True


class EditorSettings(ProjectdashBaseModel):
    """Editor used to open projects.

    Attributes:
        command: Executable and arguments; the project path is appended.
    """

    command: List[str] = Field(default_factory=lambda: ["code", "--new-window"])

    @field_validator("command")
    @classmethod
    def _require_executable(cls, value: List[str]) -> List[str]:
        if not value or not value[0].strip():
            raise ValueError("editor.command must name an executable")
        return value


class LoggingSettings(ProjectdashBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


class CLIOptions(ProjectdashBaseModel):
    """CLI presentation defaults.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        expand_all: Whether `show` lists projects of collapsed groups.
    """

    quiet_default: bool = False
    expand_all: bool = False


class ProjectdashConfig(ProjectdashBaseModel):
    """Top-level configuration for projectdash.

    Attributes:
        catalog: Catalog persistence and scanning settings.
        editor: Editor launch settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    editor: EditorSettings = Field(default_factory=EditorSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "ProjectdashBaseModel",
    "CatalogSettings",
    "EditorSettings",
    "LoggingSettings",
    "CLIOptions",
    "ProjectdashConfig",
]
