"""Error presentation utilities.

Centralized error formatting, run summaries and exit code mapping for
consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from relpipe.core.config import ConfigError
from relpipe.core.errors import ErrorCode
from relpipe.output.console import Style
from relpipe.pipeline.errors import (
    ActionFailed,
    CommandNotStarted,
    CyclicStepGraph,
    NonZeroExit,
    StepsFailed,
    UnknownStep,
)
from relpipe.release.errors import ReleaseError, ReleaseNotNeeded
from relpipe.version.store import MalformedVersionFile, VersionFileWriteFailed

if TYPE_CHECKING:
    from relpipe.output.console import ConsoleProtocol
    from relpipe.pipeline.run import PipelineRun

__all__ = [
    "AnyReleaseError",
    "print_release_error",
    "print_run_summary",
    "release_error_exit_code",
]

AnyReleaseError = (
    ConfigError
    | MalformedVersionFile
    | VersionFileWriteFailed
    | UnknownStep
    | CyclicStepGraph
    | StepsFailed
    | ReleaseError
    | ReleaseNotNeeded
)


def print_run_summary(run: PipelineRun, console: ConsoleProtocol) -> None:
    """Report which step failed and what cleanup did.

    The cleanup part is always printed for dry runs and failed runs, even
    when no cleanup step had anything to do.
    """
    console.header("Summary")

    for name in run.failed_steps:
        failure = run.failures[name]
        console.error(failure.message)
        match failure:
            case NonZeroExit(stderr=stderr) if stderr:
                for line in stderr.splitlines()[-10:]:
                    console.print(f"  {line}", Style.DIM)
            case ActionFailed(hint=hint) if hint:
                console.print(f"hint: {hint}", Style.DIM)
            case CommandNotStarted() | NonZeroExit() | ActionFailed():
                pass

    aborted = [n for n in run.order if run.outcome(n) == "skipped"]
    if run.failed and aborted:
        console.print(f"not run: {', '.join(aborted)}", Style.DIM)

    if run.dry_run or run.failed or run.cleanup_actions:
        taken = run.cleanup_actions
        if taken:
            console.info(f"cleanup actions taken: {', '.join(taken)}")
        else:
            console.info("no cleanup actions were taken")
        for name in run.cleanup:
            if run.outcome(name) == "skipped":
                console.print(f"  {name} skipped: {run.skip_reasons[name]}", Style.DIM)

    if run.dry_run:
        console.info("dry run: nothing was spawned or written")
    elif not run.failed:
        console.success(f"{len(run.executed)} steps completed")


def print_release_error(error: AnyReleaseError, console: ConsoleProtocol) -> None:
    """Print a release error to console with appropriate formatting."""
    match error:
        case ConfigError(message=message, path=path):
            console.error(message)
            if path is not None:
                console.print(f"config: {path}", Style.DIM)
        case MalformedVersionFile():
            console.error(error.message)
        case VersionFileWriteFailed(path=path, message=message):
            console.error(f"{path}: {message}")
        case UnknownStep() | CyclicStepGraph():
            console.error(error.message)
        case StepsFailed():
            console.error(error.message)
        case ReleaseError(message=message, hint=hint):
            console.error(message)
            if hint:
                console.print(f"hint: {hint}", Style.DIM)
        case ReleaseNotNeeded():
            console.warning(error.message)


def release_error_exit_code(error: AnyReleaseError) -> int:
    """Get exit code for a release error."""
    match error:
        case ConfigError() | UnknownStep() | CyclicStepGraph():
            return int(ErrorCode.USER_ERROR)
        case MalformedVersionFile() | VersionFileWriteFailed():
            return int(ErrorCode.IO_ERROR)
        case StepsFailed():
            return int(ErrorCode.RELEASE_ERROR)
        case ReleaseNotNeeded():
            return int(ErrorCode.RELEASE_NOT_NEEDED)
        case ReleaseError(kind=kind):
            match kind:
                case "git_failed":
                    return int(ErrorCode.ENV_ERROR)
                case "contributors_failed":
                    return int(ErrorCode.NETWORK_ERROR)
                case "invalid_input":
                    return int(ErrorCode.USER_ERROR)
                case "notes_failed":
                    return int(ErrorCode.RELEASE_ERROR)
    return int(ErrorCode.RELEASE_ERROR)
