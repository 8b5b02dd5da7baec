"""Read-only git queries used by release resolution and cleanup.

Branch name and HEAD commit message. Release resolution asks before the
step graph exists, so those queries execute for real even for a dry run;
they never change the working copy. The soft-reset cleanup step asks
again for the HEAD message before undoing a commit.

Usage:
    repo = Repository(Path("/path/to/repo"))
    match repo.current_branch():
        case Ok(branch):
            print(branch or "(detached)")
        case Err(e):
            print(f"Error: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from relpipe.core.result import Err, Ok, Result
from relpipe.platform.process import ProcessRunner

_GIT_TIMEOUT_SECONDS = 30.0

__all__ = ["GitError", "Repository"]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git query.

    Attributes:
        command: The git sub-command that failed
        message: Error message
        returncode: Process return code (-1 if git could not be started)
    """

    command: str
    message: str
    returncode: int = 1


class Repository:
    """A git working copy.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path, runner: ProcessRunner | None = None) -> None:
        self.path = path
        self._runner = runner or ProcessRunner(path)

    def exists(self) -> bool:
        """Check if this is a git working copy (directory or worktree file)."""
        return (self.path / ".git").exists()

    def current_branch(self) -> Result[str | None, GitError]:
        """Get current branch name; Ok(None) on a detached HEAD."""
        result = self._git(["rev-parse", "--abbrev-ref", "HEAD"])
        if isinstance(result, Err):
            return result
        branch = result.value.strip()
        return Ok(None if branch == "HEAD" else branch)

    def head_commit_message(self) -> Result[str, GitError]:
        """Full message of the HEAD commit."""
        result = self._git(["log", "-1", "--format=%B"])
        if isinstance(result, Err):
            return result
        return Ok(result.value.strip())

    def _git(self, args: list[str]) -> Result[str, GitError]:
        command = args[0] if args else ""
        result = self._runner.run(
            ["git", "-C", str(self.path), *args],
            f"git {command}",
            timeout=_GIT_TIMEOUT_SECONDS,
            echo=False,
        )
        if isinstance(result, Err):
            return Err(GitError(command=command, message=result.error.message, returncode=-1))

        proc = result.value
        if not proc.ok:
            return Err(
                GitError(
                    command=command,
                    message=proc.stderr.strip() or f"git {command} failed",
                    returncode=proc.returncode,
                )
            )
        return Ok(proc.stdout)
