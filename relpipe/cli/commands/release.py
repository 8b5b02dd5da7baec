"""Release commands: perform, test, clean up, check, plan."""

from __future__ import annotations

import typer

from relpipe.cli.commands._helpers import build_pipeline, fail, finish, parse_bump
from relpipe.cli.context import build_context
from relpipe.core.result import Err
from relpipe.output.console import Style
from relpipe.release.pipeline import PERFORM_RELEASE

_BUMP_HELP = "Version component to increment: major, minor or patch"


def perform_release(
    bump: str = typer.Option("patch", "--bump", help=_BUMP_HELP),
    dry_run: bool = typer.Option(False, "--dry-run", help="Simulate every step and clean up"),
) -> None:
    """Bump the version, commit, tag, push and publish."""
    ctx = build_context()
    pipeline = build_pipeline(ctx, parse_bump(bump))
    finish(ctx, pipeline.perform_release(dry_run=dry_run))


def test_release(
    bump: str = typer.Option("patch", "--bump", help=_BUMP_HELP),
) -> None:
    """Run the whole release as a dry run, then its cleanup."""
    ctx = build_context()
    pipeline = build_pipeline(ctx, parse_bump(bump))
    finish(ctx, pipeline.test_release())


def release_cleanup() -> None:
    """Undo a release attempt: soft reset, stash, delete the tag."""
    ctx = build_context()
    pipeline = build_pipeline(ctx)
    finish(ctx, pipeline.release_cleanup())


def assert_release_needed() -> None:
    """Exit 0 when this branch and commit should be released, 6 otherwise."""
    ctx = build_context()
    pipeline = build_pipeline(ctx)
    result = pipeline.assert_release_needed()
    if isinstance(result, Err):
        fail(result.error, ctx)
    ctx.console.success(
        f"release needed: {pipeline.release.branch} -> {pipeline.release.version}"
    )


def plan(
    targets: list[str] | None = typer.Argument(None, help="Steps to plan (default: performRelease)"),
) -> None:
    """Show the steps a run would execute, without running anything."""
    ctx = build_context()
    pipeline = build_pipeline(ctx)
    result = pipeline.plan(tuple(targets) if targets else (PERFORM_RELEASE,))
    if isinstance(result, Err):
        fail(result.error, ctx)

    execution = result.value
    ctx.console.header(f"Plan for {', '.join(execution.targets)}")
    for i, name in enumerate(execution.order, 1):
        step = pipeline.graph.step(name)
        ctx.console.print(f"{i:>3}. {name}", Style.DEFAULT)
        if step.description:
            ctx.console.print(f"     {step.description}", Style.DIM)
    if execution.cleanup:
        ctx.console.header("Cleanup (dry run, failure or releaseCleanUp only)")
        for name in execution.cleanup:
            ctx.console.print(f"  - {name}", Style.DEFAULT)
