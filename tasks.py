"""Invoke tasks for building, testing, and linting projectdash through uv."""

from __future__ import annotations

import shlex
import shutil
from collections.abc import Sequence
from pathlib import Path

from invoke import Collection, Context, task

PROJECT_ROOT = Path(__file__).parent
DIST_DIR = PROJECT_ROOT / "dist"


def _uv(ctx: Context, args: Sequence[str], *, echo: bool = True) -> None:
    """Run ``uv`` with the given arguments inside a PTY.

    Args:
        ctx: Invoke execution context.
        args: Arguments placed after the `uv` executable.
        echo: Whether to echo the command before running it.
    """
    ctx.run(shlex.join(("uv", *args)), echo=echo, pty=True)


@task
def sync(ctx: Context, dev: bool = True) -> None:
    """Install projectdash and, by default, its dev extra into the uv environment."""
    _uv(ctx, ["sync", "--extra", "dev"] if dev else ["sync"])


@task(help={"clean": "Remove existing artifacts from dist/ before building."})
def build(ctx: Context, clean: bool = False) -> None:
    """Build the sdist and wheel into `dist/`."""
    if clean and DIST_DIR.exists():
        shutil.rmtree(DIST_DIR)
    _uv(ctx, ["build"])


@task(
    help={
        "k": "pytest -k expression for test selection.",
        "path": "Path or module to test (defaults to tests/).",
        "options": "Additional flags forwarded verbatim to pytest.",
    }
)
def tests(ctx: Context, k: str = "", path: str = "tests", options: str = "") -> None:
    """Run the pytest suite."""
    args: list[str] = ["run", "pytest"]
    if k:
        args.extend(["-k", k])
    if options:
        args.extend(shlex.split(options))
    args.append(path)
    _uv(ctx, args)


@task(help={"fix": "Apply Ruff auto-fixes.", "check_format": "Also run `ruff format --check`."})
def lint(ctx: Context, fix: bool = False, check_format: bool = False) -> None:
    """Lint `src` and `tests` with Ruff."""
    if check_format:
        _uv(ctx, ["run", "ruff", "format", "--check", "src", "tests"])
    _uv(ctx, ["run", "ruff", "check", "src", "tests", *(["--fix"] if fix else [])])


@task
def mypy(ctx: Context) -> None:
    """Type-check the package with MyPy."""
    _uv(ctx, ["run", "mypy", "src"])


@task
def ci(ctx: Context) -> None:
    """Run formatting, lint, type and test checks like CI does."""
    ctx.invoke(lint, check_format=True)
    ctx.invoke(mypy)
    ctx.invoke(tests)


namespace = Collection(sync, build, tests, lint, mypy, ci)
