"""Transient search filtering over catalog groups."""

from __future__ import annotations

from typing import Dict, List, Mapping, Sequence

from projectdash.catalog.models import Project


def normalize_query(query: str | None) -> str:
    """Return a casefolded query with surrounding whitespace removed.

    Inner whitespace is kept as typed so the query matches names literally.
    """

    if not query:
        return ""
    return query.strip().casefold()


def project_matches(project: Project, query: str) -> bool:
    """Return whether the project name contains the normalized ``query``."""

    return query in project.name.casefold()


def filter_groups(
    groups: Mapping[str, Sequence[Project]], query: str | None
) -> Dict[str, List[Project]]:
    """Return the groups and projects visible for a search query.

    Only project names are matched. A group stays visible when at least one
    of its projects matches; an empty query keeps every group, including
    empty ones.

    Args:
        groups: Group name mapped to its projects.
        query: Free-text search string.

    Returns:
        Dict[str, List[Project]]: Visible groups in their original order.
    """

    needle = normalize_query(query)
    if not needle:
        return {name: list(projects) for name, projects in groups.items()}

    visible: Dict[str, List[Project]] = {}
    for name, projects in groups.items():
        matches = [project for project in projects if project_matches(project, needle)]
        if matches:
            visible[name] = matches
    return visible


__all__ = ["filter_groups", "normalize_query", "project_matches"]
