"""Sort transforms applied to catalog groups."""

from __future__ import annotations

import unicodedata
from typing import Callable, Dict, List, Mapping, Sequence, Tuple

from projectdash.catalog.models import SORT_CRITERIA, Project, SortCriterion


def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def collation_key(name: str) -> Tuple[str, str, str, str]:
    """Return a natural-language sort key for ``name``.

    Names compare by base letters first, then by accents, then by case with
    lowercase ahead of uppercase. The raw name breaks remaining ties so that
    distinct names never compare equal.
    """

    folded = name.casefold()
    return (_strip_accents(folded), folded, name.swapcase(), name)


def _color_key(project: Project) -> Tuple[bool, Tuple[str, str, str, str]]:
    return (project.color is None, collation_key(project.name))


def _sort_projects(
    groups: Mapping[str, Sequence[Project]],
    key: Callable[[Project], object],
    *,
    reverse: bool = False,
) -> Dict[str, List[Project]]:
    return {
        name: sorted(projects, key=key, reverse=reverse)  # type: ignore[arg-type]
        for name, projects in groups.items()
    }


def _sort_group_names(
    groups: Mapping[str, Sequence[Project]], *, reverse: bool = False
) -> Dict[str, List[Project]]:
    ordered = sorted(groups, key=collation_key, reverse=reverse)
    return {name: list(groups[name]) for name in ordered}


def sort_groups(
    groups: Mapping[str, Sequence[Project]], criterion: SortCriterion
) -> Dict[str, List[Project]]:
    """Return a reordered copy of ``groups``.

    Args:
        groups: Group name mapped to its projects.
        criterion: ``name-asc``/``name-desc`` reorder projects inside each
            group, ``group-asc``/``group-desc`` reorder the groups themselves,
            and ``color`` moves colored projects first, then sorts by name.

    Returns:
        Dict[str, List[Project]]: New mapping; the input is not modified.

    Raises:
        ValueError: If ``criterion`` is unknown.
    """

    if criterion == "name-asc":
        return _sort_projects(groups, lambda project: collation_key(project.name))
    if criterion == "name-desc":
        return _sort_projects(groups, lambda project: collation_key(project.name), reverse=True)
    if criterion == "group-asc":
        return _sort_group_names(groups)
    if criterion == "group-desc":
        return _sort_group_names(groups, reverse=True)
    if criterion == "color":
        return _sort_projects(groups, _color_key)
    raise ValueError(
        f"Unknown sort criterion {criterion!r}; expected one of {', '.join(SORT_CRITERIA)}."
    )


__all__ = ["collation_key", "sort_groups"]
