"""Merge configuration sources in precedence order."""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from typing import Any, Dict

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import ProjectdashConfig

ENV_PREFIX = "PROJECTDASH__"


def resolve_with_precedence(
    *,
    defaults: ProjectdashConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> ProjectdashConfig:
    """Return the effective configuration.

    Sources apply in order: defaults, configuration file, environment, and
    finally CLI overrides. Keys may be nested mappings or dotted paths.

    Raises:
        ConfigError: If an override is malformed or the merged values fail
            validation.
    """
    merged: Dict[str, Any] = defaults.model_dump(mode="python")
    for source_name, source in (
        ("file", file_overrides),
        ("environment", env_overrides),
        ("cli", cli_overrides),
    ):
        if source is None:
            continue
        merged = merge_mappings(merged, expand_dotted(source, source_name=source_name))

    try:
        return ProjectdashConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def flatten_for_env(config: ProjectdashConfig) -> Dict[str, str]:
    """Return ``PROJECTDASH__SECTION__KEY`` variables describing ``config``."""
    flat: Dict[str, str] = {}
    for section, values in config.model_dump(mode="python").items():
        for key, value in values.items():
            env_key = f"{ENV_PREFIX}{section.upper()}__{key.upper()}"
            if isinstance(value, (list, dict)):
                flat[env_key] = yaml.safe_dump(value, default_flow_style=True).strip()
            elif isinstance(value, bool):
                flat[env_key] = "true" if value else "false"
            else:
                flat[env_key] = "null" if value is None else str(value)
    return flat


def overrides_from_env(env: Mapping[str, str]) -> Dict[str, Any]:
    """Collect nested overrides from ``PROJECTDASH__`` environment variables.

    Values are parsed as YAML literals so numbers, booleans and lists keep
    their types; unparsable values are kept as plain strings.
    """
    overrides: Dict[str, Any] = {}
    for name, raw in env.items():
        if not name.startswith(ENV_PREFIX):
            continue
        segments = [part.lower() for part in name[len(ENV_PREFIX) :].split("__") if part]
        if not segments:
            continue
        try:
            value = yaml.safe_load(raw)
        except yaml.YAMLError:
            value = raw
        assign_nested(overrides, segments, value)
    return overrides


def assign_nested(target: Dict[str, Any], path: list[str], value: Any) -> None:
    """Set ``value`` at ``path`` inside ``target``, creating mappings on the way.

    Raises:
        ConfigError: If a non-mapping value sits on the path.
    """
    node = target
    for segment in path[:-1]:
        child = node.setdefault(segment, {})
        if not isinstance(child, dict):
            raise ConfigError(f"Cannot assign into '{segment}' because it is not a mapping.")
        node = child
    node[path[-1]] = value


def expand_dotted(source: Mapping[str, Any], *, source_name: str) -> Dict[str, Any]:
    """Return ``source`` with dotted keys expanded into nested mappings."""
    if not isinstance(source, Mapping):
        raise ConfigError(f"{source_name.capitalize()} overrides must be a mapping.")

    expanded: Dict[str, Any] = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise ConfigError(f"{source_name.capitalize()} override keys must be strings.")
        if isinstance(value, Mapping):
            value = expand_dotted(value, source_name=source_name)
        path = key.split(".")
        existing = _lookup(expanded, path)
        if isinstance(existing, dict) and isinstance(value, dict):
            value = merge_mappings(existing, value)
        try:
            assign_nested(expanded, path, value)
        except ConfigError as exc:
            raise ConfigError(
                f"{source_name.capitalize()} override for {key} conflicts with existing value."
            ) from exc
    return expanded


def merge_mappings(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a deep merge of ``overrides`` on top of ``base``."""
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = merge_mappings(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


def _lookup(target: Mapping[str, Any], path: list[str]) -> Any:
    node: Any = target
    for segment in path:
        if not isinstance(node, Mapping) or segment not in node:
            return None
        node = node[segment]
    return node


__all__ = [
    "ENV_PREFIX",
    "assign_nested",
    "expand_dotted",
    "flatten_for_env",
    "merge_mappings",
    "overrides_from_env",
    "resolve_with_precedence",
]
