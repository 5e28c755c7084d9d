"""Catalog data models persisted between sessions."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

SCHEMA_VERSION = 1
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

SortCriterion = Literal["name-asc", "name-desc", "group-asc", "group-desc", "color"]
SORT_CRITERIA: tuple[str, ...] = ("name-asc", "name-desc", "group-asc", "group-desc", "color")


def to_epoch_millis(value: datetime) -> int:
    """Return the number of whole milliseconds between the epoch and ``value``.

    Args:
        value: Timezone-aware or naive (assumed UTC) timestamp.

    Returns:
        int: Milliseconds since the Unix epoch.
    """

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    delta = value - EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1_000 + delta.microseconds // 1_000


def from_epoch_millis(value: int) -> datetime:
    """Return a UTC timestamp for ``value`` milliseconds since the epoch."""

    return EPOCH + timedelta(milliseconds=value)


def utc_now_millis() -> datetime:
    """Return the current UTC time truncated to millisecond precision."""

    return from_epoch_millis(to_epoch_millis(datetime.now(timezone.utc)))


class CatalogBaseModel(BaseModel):
    """Shared configuration for catalog models."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Project(CatalogBaseModel):
    """A second-level folder that can be opened in an editor window.

    Attributes:
        name: Folder base name, unique within its group.
        color: Optional activity bar color declared by the project.
    """

    name: str
    color: Optional[str] = None


class Catalog(CatalogBaseModel):
    """Aggregate project inventory plus the user's view preferences.

    Field aliases match the persisted and exported JSON layout so that a
    catalog dumped ``by_alias`` can be validated back unchanged.

    Attributes:
        schema_version: Layout version of the persisted payload.
        base_folder: Absolute path of the scanned root folder.
        groups: Group name mapped to the projects found inside it.
        last_scan_at: Time of the most recent full scan.
        group_expanded: Group name mapped to its expanded state.
        sort_order: Last sort criterion applied by the user.
    """

    schema_version: int = Field(default=SCHEMA_VERSION, alias="schemaVersion")
    base_folder: Optional[str] = Field(default=None, alias="baseFolder")
    groups: Dict[str, List[Project]] = Field(default_factory=dict, alias="projectsData")
    last_scan_at: Optional[datetime] = Field(default=None, alias="lastScanTime")
    group_expanded: Dict[str, bool] = Field(default_factory=dict, alias="groupStates")
    sort_order: Optional[SortCriterion] = Field(default=None, alias="sortOrder")

    @field_validator("last_scan_at", mode="before")
    @classmethod
    def _parse_scan_time(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("lastScanTime must be a timestamp, not a boolean")
        if isinstance(value, (int, float)):
            return from_epoch_millis(int(round(value)))
        return value

    @field_validator("last_scan_at")
    @classmethod
    def _truncate_scan_time(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        return from_epoch_millis(to_epoch_millis(value))

    @field_serializer("last_scan_at")
    def _serialize_scan_time(self, value: Optional[datetime]) -> Optional[int]:
        if value is None:
            return None
        return to_epoch_millis(value)

    def is_expanded(self, group: str) -> bool:
        """Return whether ``group`` is expanded; unknown groups are collapsed."""

        return self.group_expanded.get(group, False)

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-ready persisted/exported representation."""

        return self.model_dump(mode="json", by_alias=True)


__all__ = [
    "SCHEMA_VERSION",
    "SORT_CRITERIA",
    "Catalog",
    "CatalogBaseModel",
    "Project",
    "SortCriterion",
    "from_epoch_millis",
    "to_epoch_millis",
    "utc_now_millis",
]
