"""Shared helpers for CLI commands."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, NoReturn

import typer

from relpipe.core.result import Err, Ok, Result
from relpipe.output.errors import AnyReleaseError, print_release_error, release_error_exit_code
from relpipe.pipeline.errors import GraphError, StepsFailed
from relpipe.pipeline.run import PipelineRun
from relpipe.platform.process import ProcessRunner
from relpipe.release.pipeline import ReleasePipeline
from relpipe.release.resolve import resolve_release
from relpipe.version.semver import BUMP_KINDS, BumpKind

if TYPE_CHECKING:
    from relpipe.cli.context import CLIContext


def fail(error: AnyReleaseError, ctx: CLIContext) -> NoReturn:
    """Print the error and exit with its code."""
    print_release_error(error, ctx.console)
    raise typer.Exit(code=release_error_exit_code(error))


def parse_bump(value: str) -> BumpKind:
    for kind in BUMP_KINDS:
        if kind == value:
            return kind
    raise typer.BadParameter(f"expected one of: {', '.join(BUMP_KINDS)}", param_hint="--bump")


def build_pipeline(ctx: CLIContext, bump: BumpKind = "patch") -> ReleasePipeline:
    """Resolve the release and build its pipeline, or exit."""
    match resolve_release(
        repo_root=ctx.repo_root,
        config=ctx.config,
        environ=os.environ,
        bump=bump,
    ):
        case Err(error):
            fail(error, ctx)
        case Ok(release):
            runner = ProcessRunner(
                ctx.repo_root,
                console=ctx.console,
                secrets=(release.write_token or "", release.read_token or ""),
            )
            return ReleasePipeline(release, runner=runner, console=ctx.console)


def finish(ctx: CLIContext, result: Result[PipelineRun, GraphError | StepsFailed]) -> None:
    """Exit non-zero when the pipeline failed; the run summary is already printed."""
    if isinstance(result, Err):
        fail(result.error, ctx)
