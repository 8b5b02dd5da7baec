from __future__ import annotations

import os
from pathlib import Path

import typer

from relpipe import __version__
from relpipe.cli.commands.release import (
    assert_release_needed,
    perform_release,
    plan,
    release_cleanup,
    test_release,
)
from relpipe.cli.context import CONFIG_ENV, REPO_ENV
from relpipe.core.errors import ErrorCode


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command("perform-release")(perform_release)
app.command("test-release")(test_release)
app.command("release-cleanup")(release_cleanup)
app.command("assert-release-needed")(assert_release_needed)
app.command()(plan)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        callback=_show_version,
        is_eager=True,
        help="Show version and exit.",
    ),
    repo: Path | None = typer.Option(
        None,
        "--repo",
        help="Repository root (default: current directory)",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        help="Config file (default: <repo>/relpipe.toml, optional)",
    ),
) -> None:
    if repo is not None:
        try:
            root = repo.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --repo: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not root.is_dir():
            typer.echo(f"error: --repo '{root}' is not a directory", err=True)
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

        os.environ[REPO_ENV] = str(root)

    if config is not None:
        os.environ[CONFIG_ENV] = str(config.expanduser().resolve())


def main() -> None:
    app()
