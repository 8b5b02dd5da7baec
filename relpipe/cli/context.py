from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from relpipe.core.config import CONFIG_FILE_NAME, ReleaseConfig, load_config, load_config_or_default
from relpipe.core.errors import ErrorCode
from relpipe.core.result import Err
from relpipe.output.console import ConsoleProtocol, RichConsole

REPO_ENV = "RELPIPE_REPO"
CONFIG_ENV = "RELPIPE_CONFIG"


@dataclass(frozen=True, slots=True)
class CLIContext:
    repo_root: Path
    config: ReleaseConfig
    console: ConsoleProtocol


def build_context() -> CLIContext:
    console = RichConsole()

    repo_root = Path(os.environ.get(REPO_ENV) or Path.cwd())
    if not repo_root.is_dir():
        typer.echo(f"error: repository root not found: {repo_root}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    explicit = os.environ.get(CONFIG_ENV)
    if explicit:
        config_result = load_config(Path(explicit))
    else:
        config_result = load_config_or_default(repo_root / CONFIG_FILE_NAME)

    if isinstance(config_result, Err):
        console.error(config_result.error.message)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(repo_root=repo_root, config=config_result.value, console=console)
