"""Subprocess execution with Result-based error handling.

`ProcessRunner` is the only place where release steps touch the outside
world. It has two modes:

- normal: spawn the command, capture output, report the exit code;
- simulate: echo the command and hand back a synthetic success, spawning
  nothing. Dry runs are built on this.

A non-zero exit is not an error at this level. It comes back as
`Ok(ExecResult)` and the caller decides whether it is fatal. Only a command
that cannot be started at all yields `Err(ProcessExecutionError)`.

Usage:
    runner = ProcessRunner(repo_root, console=console)
    match runner.run(["git", "tag", "-a", "v1.0.1", "-m", "v1.0.1"], "Create tag"):
        case Ok(result) if result.ok:
            ...
        case Ok(result):
            print(f"git tag exited {result.returncode}")
        case Err(error):
            print(error.message)
"""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from relpipe.core.result import Err, Ok, Result
from relpipe.output.console import ConsoleProtocol, Style

__all__ = ["ExecResult", "ProcessExecutionError", "ProcessRunner", "mask_secrets"]

_MASK = "***"


@dataclass(frozen=True, slots=True)
class ExecResult:
    """Outcome of a command that was started (or simulated).

    Attributes:
        command: The command that was executed.
        returncode: Exit code; -1 when the command timed out.
        stdout: Captured standard output.
        stderr: Captured standard error.
        simulated: True when nothing was actually spawned.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    simulated: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass(frozen=True, slots=True)
class ProcessExecutionError:
    """A command that could not be started (missing binary, permission, bad cwd)."""

    command: tuple[str, ...]
    message: str

    def __str__(self) -> str:
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        return f"{cmd_str} could not be started: {self.message}"


def mask_secrets(text: str, secrets: Sequence[str]) -> str:
    """Replace every non-empty secret in text with a fixed mask."""
    for secret in secrets:
        if secret:
            text = text.replace(secret, _MASK)
    return text


class ProcessRunner:
    """Runs external commands from a working directory.

    Attributes:
        cwd: Default working directory (the repository root).
        simulate: When True, commands are echoed but never spawned.
    """

    def __init__(
        self,
        cwd: Path,
        *,
        console: ConsoleProtocol | None = None,
        simulate: bool = False,
        env: dict[str, str] | None = None,
        secrets: Sequence[str] = (),
    ) -> None:
        self.cwd = cwd
        self.simulate = simulate
        self._console = console
        self._env = env
        self._secrets = tuple(s for s in secrets if s)

    def simulated(self) -> ProcessRunner:
        """Return a copy of this runner in simulate mode."""
        return ProcessRunner(
            self.cwd,
            console=self._console,
            simulate=True,
            env=self._env,
            secrets=self._secrets,
        )

    def mask(self, text: str) -> str:
        """Hide the secrets this runner knows about."""
        return mask_secrets(text, self._secrets)

    def run(
        self,
        command: Sequence[str],
        description: str,
        *,
        cwd: Path | None = None,
        timeout: float | None = None,
        echo: bool = True,
    ) -> Result[ExecResult, ProcessExecutionError]:
        """Execute a command (or pretend to, in simulate mode).

        Args:
            command: Command and arguments.
            description: Human-readable purpose, echoed with the command.
            cwd: Working directory; defaults to the runner's cwd.
            timeout: Maximum seconds to wait (None for no limit).
            echo: Print the command to the console.

        Returns:
            Ok(ExecResult) whenever the command started (any exit code),
            Err(ProcessExecutionError) when it could not be started.
        """
        cmd = tuple(command)
        if not cmd:
            return Err(ProcessExecutionError(command=cmd, message="empty command"))

        if echo:
            self._echo(cmd, description)

        if self.simulate:
            return Ok(ExecResult(command=cmd, returncode=0, simulated=True))

        workdir = cwd or self.cwd
        try:
            proc = subprocess.run(
                list(cmd),
                cwd=str(workdir),
                env=self._env,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            stdout = e.stdout if isinstance(e.stdout, str) else ""
            return Ok(
                ExecResult(
                    command=cmd,
                    returncode=-1,
                    stdout=self.mask(stdout),
                    stderr=f"Command timed out after {timeout}s",
                )
            )
        except OSError as e:
            return Err(ProcessExecutionError(command=cmd, message=self.mask(str(e))))

        return Ok(
            ExecResult(
                command=cmd,
                returncode=proc.returncode,
                stdout=self.mask(proc.stdout),
                stderr=self.mask(proc.stderr),
            )
        )

    def _echo(self, cmd: tuple[str, ...], description: str) -> None:
        if self._console is None:
            return
        line = self.mask(" ".join(cmd))
        if self.simulate:
            self._console.print(f"  [dry-run] {description}: {line}", Style.DIM)
        else:
            self._console.print(f"  {description}: {line}", Style.DIM)
