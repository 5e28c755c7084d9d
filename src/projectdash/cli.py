"""Command line interface for projectdash."""

from __future__ import annotations

import difflib
import logging
from copy import deepcopy
from datetime import timedelta
from pathlib import Path
from typing import Any, Optional

import click
import yaml
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.tree import Tree

from projectdash.catalog import CatalogStore, JsonFileStore, ProjectTreeScanner
from projectdash.catalog.models import SORT_CRITERIA, Catalog
from projectdash.config import (
    ConfigError,
    ConfigManager,
    ProjectdashConfig,
    assign_nested,
    resolve_with_precedence,
)
from projectdash.view import ActionResult, CatalogView, EditorLauncher, GroupView, NoDialogs

console = Console()
LOGGER = logging.getLogger(__name__)


class ClickDialogs:
    """Host pickers backed by terminal prompts; an empty answer cancels."""

    def pick_folder(self, title: str) -> Optional[str]:
        return self._prompt(title)

    def pick_save_path(self, title: str) -> Optional[str]:
        return self._prompt(title)

    def pick_open_path(self, title: str) -> Optional[str]:
        return self._prompt(title)

    def _prompt(self, title: str) -> Optional[str]:
        value = click.prompt(title, default="", show_default=False)
        return value.strip() or None


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        console.print_json(data={"error": {"code": code, "message": message}})
        raise SystemExit(1)

    raise click.ClickException(message) from original


def _emit_result(result: ActionResult, config: ProjectdashConfig, *, quiet: bool) -> None:
    if quiet or config.cli.quiet_default:
        return
    console.print(f"[green]{escape(result.message)}[/green]")


def _configure_logging(config: ProjectdashConfig, *, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, config.logging.level)
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("projectdash").setLevel(level)


def _load_config(ctx: click.Context) -> ProjectdashConfig:
    """Return the effective configuration and apply its logging settings."""

    try:
        config = ConfigManager().load()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    _configure_logging(config, verbose=bool(ctx.obj and ctx.obj.get("verbose")))
    return config


def _build_view(config: ProjectdashConfig, *, interactive: bool = True) -> CatalogView:
    """Wire the catalog store and view from configuration.

    Non-interactive views never prompt; every picker cancels.
    """

    settings = config.catalog
    store = CatalogStore(
        JsonFileStore(Path(settings.state_path)),
        scanner=ProjectTreeScanner(
            follow_symlinks=settings.follow_symlinks,
            include_hidden=settings.include_hidden,
        ),
    )
    return CatalogView(
        store,
        opener=EditorLauncher(config.editor.command),
        dialogs=ClickDialogs() if interactive else NoDialogs(),
        staleness=timedelta(hours=settings.staleness_hours),
    )


def _run_action(
    ctx: click.Context,
    command: str,
    *,
    json_output: bool = False,
    **payload: Any,
) -> tuple[ActionResult, ProjectdashConfig]:
    """Dispatch one catalog action, failing the command when it does not succeed."""

    config = _load_config(ctx)
    view = _build_view(config)
    result = view.dispatch(command, **payload)
    if not result.ok:
        _handle_cli_error(result.message, code="catalog_error", json_output=json_output)
    return result, config


def _format_scan_time(catalog: Catalog) -> str:
    if catalog.last_scan_at is None:
        return "never"
    return catalog.last_scan_at.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _render_groups(groups: list[GroupView], *, expand_all: bool, searching: bool) -> Tree:
    """Build a rich tree for the visible groups."""

    tree = Tree("[bold]Project Dashboard[/bold]")
    for group in groups:
        show_projects = group.expanded or expand_all or searching
        marker = "▾" if show_projects else "▸"
        count = f"{len(group.projects)}/{group.total}" if searching else str(group.total)
        branch = tree.add(f"{marker} [bold]{escape(group.name)}[/bold] ({count})")
        if not show_projects:
            continue
        for project in group.projects:
            label = escape(project.name)
            if project.color:
                label += f" [dim]{escape(project.color)}[/dim]"
            branch.add(label)
    return tree


def _groups_payload(catalog: Catalog, groups: list[GroupView]) -> dict[str, Any]:
    payload = catalog.to_payload()
    return {
        "baseFolder": payload["baseFolder"],
        "lastScanTime": payload["lastScanTime"],
        "sortOrder": payload["sortOrder"],
        "groups": [
            {
                "name": group.name,
                "expanded": group.expanded,
                "total": group.total,
                "projects": [project.model_dump(mode="json") for project in group.projects],
            }
            for group in groups
        ],
    }


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="projectdash")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """projectdash catalogs grouped project folders and opens them in your editor."""

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@cli.command()
@click.option("--search", "query", type=str, default=None, help="Filter projects by name.")
@click.option("--all", "expand_all", is_flag=True, help="List projects of collapsed groups too.")
@click.option("--json", "json_output", is_flag=True, help="Emit the visible catalog as JSON.")
@click.pass_context
def show(ctx: click.Context, query: str | None, expand_all: bool, json_output: bool) -> None:
    """Display the catalog, scanning first when it is stale."""

    config = _load_config(ctx)
    view = _build_view(config, interactive=not json_output)
    result = view.dispatch("open")
    if not result.ok:
        _handle_cli_error(result.message, code="catalog_error", json_output=json_output)

    catalog = result.catalog
    groups = view.groups(catalog, query)
    if json_output:
        console.print_json(data=_groups_payload(catalog, groups))
        return

    if not catalog.base_folder:
        console.print("[yellow]No base folder selected. Run `projectdash folder PATH`.[/yellow]")
        return

    if not groups:
        message = "No projects match your search." if query else "No projects found."
        console.print(f"[yellow]{message}[/yellow]")
    else:
        console.print(
            _render_groups(
                groups,
                expand_all=expand_all or config.cli.expand_all,
                searching=bool(query and query.strip()),
            )
        )
    console.print(f"[dim]Base Folder: {escape(catalog.base_folder)}[/dim]")
    console.print(f"[dim]Last Scan: {_format_scan_time(catalog)}[/dim]")


@cli.command()
@click.argument("path", required=False, type=click.Path(file_okay=False, path_type=str))
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def folder(ctx: click.Context, path: str | None, quiet: bool) -> None:
    """Set the base projects folder and scan it."""

    result, config = _run_action(ctx, "selectBaseFolder", path=path)
    _emit_result(result, config, quiet=quiet)


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Emit the scanned catalog as JSON.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def scan(ctx: click.Context, json_output: bool, quiet: bool) -> None:
    """Rescan every group below the base folder."""

    result, config = _run_action(ctx, "rescanProjects", json_output=json_output)
    if json_output:
        console.print_json(data=result.catalog.to_payload())
        return
    _emit_result(result, config, quiet=quiet)


@cli.command()
@click.argument("group")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def refresh(ctx: click.Context, group: str, quiet: bool) -> None:
    """Rescan a single GROUP without touching the others."""

    result, config = _run_action(ctx, "refreshGroup", group=group)
    _emit_result(result, config, quiet=quiet)


@cli.command()
@click.argument("criterion", type=click.Choice(SORT_CRITERIA))
@click.pass_context
def sort(ctx: click.Context, criterion: str) -> None:
    """Reorder the catalog by CRITERION and remember the choice."""

    result, _ = _run_action(ctx, "sortProjects", criterion=criterion)
    console.print(f"[green]{escape(result.message)}[/green]")


@cli.command("open")
@click.argument("reference", metavar="GROUP/PROJECT")
@click.pass_context
def open_project(ctx: click.Context, reference: str) -> None:
    """Open a project in a new editor window."""

    result, _ = _run_action(ctx, "openProject", project=reference)
    console.print(escape(result.message))


@cli.command()
@click.argument("group")
@click.option("--expand/--collapse", "expanded", default=None, help="Set instead of flipping.")
@click.pass_context
def toggle(ctx: click.Context, group: str, expanded: bool | None) -> None:
    """Flip or set the expanded state of GROUP."""

    result, _ = _run_action(ctx, "toggleGroup", group=group, expanded=expanded)
    console.print(escape(result.message))


@cli.command("export")
@click.argument("path", required=False, type=click.Path(dir_okay=False, path_type=str))
@click.pass_context
def export_catalog(ctx: click.Context, path: str | None) -> None:
    """Write the catalog to a JSON file."""

    result, _ = _run_action(ctx, "exportCatalog", path=path)
    console.print(escape(result.message))


@cli.command("import")
@click.argument("path", required=False, type=click.Path(dir_okay=False, path_type=str))
@click.option(
    "--base-folder",
    type=click.Path(file_okay=False, path_type=str),
    help="Use this folder instead of the imported base folder.",
)
@click.option(
    "--keep-missing",
    is_flag=True,
    help="Keep the imported base folder even if it does not exist here.",
)
@click.pass_context
def import_catalog(
    ctx: click.Context, path: str | None, base_folder: str | None, keep_missing: bool
) -> None:
    """Replace the catalog with an exported JSON file."""

    result, _ = _run_action(
        ctx,
        "importCatalog",
        path=path,
        base_folder=base_folder,
        keep_missing=keep_missing,
    )
    console.print(escape(result.message))


@cli.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def reset(ctx: click.Context, yes: bool) -> None:
    """Forget the base folder and every cataloged project."""

    if not yes and not click.confirm("Discard the stored catalog?", default=False):
        console.print("[yellow]Reset cancelled; no changes applied.[/yellow]")
        return
    result, _ = _run_action(ctx, "resetCatalog")
    console.print(escape(result.message))


@cli.group()
def config() -> None:
    """Manage projectdash configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules."""

    manager = ConfigManager()
    try:
        effective = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(effective.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="YAML literal to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY."""

    manager = ConfigManager()
    manager.ensure_exists()

    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must be a dotted path such as 'catalog.staleness_hours'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        current = manager.load_file_overrides()
        file_data = deepcopy(current)
        assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=ProjectdashConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    if file_data == current:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    before = manager.read_text().splitlines()
    manager.save(file_data)
    after = manager.read_text().splitlines()
    diff = difflib.unified_diff(
        before,
        after,
        fromfile="config.yaml (before)",
        tofile="config.yaml (after)",
        lineterm="",
    )
    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the configuration file in an editor session."""

    manager = ConfigManager()
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")
    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return
    if edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc
    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    try:
        resolve_with_precedence(defaults=ProjectdashConfig(), file_overrides=parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(parsed)
    console.print("[green]Configuration updated successfully.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
