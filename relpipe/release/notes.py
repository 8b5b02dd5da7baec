"""Release notes collaborators.

A notes collaborator turns a `NotesRequest` into a file. Two are provided:

- `MarkdownNotesWriter`: prepends a section (commit subjects since the last
  tag, contributors when a contributors file exists) to a markdown file;
- `CommandNotesCollaborator`: delegates to an external command configured in
  relpipe.toml.

Both honor the runner's simulate mode: nothing is written in a dry run.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Protocol

from relpipe.core.result import Err, Ok, Result
from relpipe.core.structured import as_str_dict, get_str
from relpipe.output.console import ConsoleProtocol, Style
from relpipe.pipeline.step import ActionError
from relpipe.platform.files import atomic_write_text, read_text_exact
from relpipe.platform.process import ProcessRunner
from relpipe.release.git import GIT_TIMEOUT_SECONDS

__all__ = [
    "CommandNotesCollaborator",
    "MarkdownNotesWriter",
    "NotesCollaborator",
    "NotesRequest",
    "render_section",
]


@dataclass(frozen=True, slots=True)
class NotesRequest:
    """What a notes collaborator is asked to produce.

    Attributes:
        version: The version being released.
        notable_versions: Milestone versions from the version file.
        head_version: Set only when this release is notable.
        previous_tag: Tag of the last release, for commit ranges.
    """

    version: str
    notable_versions: tuple[str, ...] = ()
    head_version: str | None = None
    previous_tag: str | None = None


class NotesCollaborator(Protocol):
    output: Path

    def generate(self, request: NotesRequest, runner: ProcessRunner) -> Result[Path, ActionError]:
        """Produce the notes file and return its path."""
        ...


def _today() -> date:
    return datetime.now(UTC).date()


def render_section(
    version: str,
    *,
    day: date,
    changes: Sequence[str],
    contributors: Sequence[str] = (),
) -> str:
    lines = [f"## {version} ({day.isoformat()})", ""]
    if changes:
        lines.extend(f"- {change}" for change in changes)
    else:
        lines.append("- No notable changes.")
    if contributors:
        lines.append("")
        lines.append("Contributors: " + ", ".join(contributors))
    return "\n".join(lines) + "\n"


class MarkdownNotesWriter:
    """Keep a markdown notes file, newest release first.

    With `notable=True` the writer only adds a section when the request
    carries a head version; otherwise it just makes sure the file exists so
    it can be staged.
    """

    def __init__(
        self,
        output: Path,
        *,
        title: str,
        console: ConsoleProtocol,
        contributors_file: Path | None = None,
        notable: bool = False,
        today: Callable[[], date] = _today,
    ) -> None:
        self.output = output
        self.title = title
        self.notable = notable
        self._console = console
        self._contributors_file = contributors_file
        self._today = today

    def generate(self, request: NotesRequest, runner: ProcessRunner) -> Result[Path, ActionError]:
        version = request.head_version if self.notable else request.version

        if runner.simulate:
            if version is None:
                self._console.print(f"  [dry-run] would keep {self.output.name} unchanged", Style.DIM)
            else:
                self._console.print(
                    f"  [dry-run] would add {version} to {self.output.name}", Style.DIM
                )
            return Ok(self.output)

        try:
            existing = read_text_exact(self.output) if self.output.exists() else ""
        except (OSError, UnicodeDecodeError) as e:
            return Err(ActionError(f"cannot read {self.output.name}: {e}", hint=str(self.output)))

        if version is None:
            if existing:
                return Ok(self.output)
            return self._write(f"# {self.title}\n")

        changes = self._commit_subjects(runner, request.previous_tag)
        section = render_section(
            version,
            day=self._today(),
            changes=changes,
            contributors=self._contributors(),
        )
        return self._write(_prepend(existing, section, title=self.title))

    def _write(self, content: str) -> Result[Path, ActionError]:
        try:
            atomic_write_text(self.output, content)
        except OSError as e:
            return Err(ActionError(f"cannot write {self.output.name}: {e}", hint=str(self.output)))
        self._console.print(f"  wrote {self.output}", Style.DIM)
        return Ok(self.output)

    def _commit_subjects(self, runner: ProcessRunner, previous_tag: str | None) -> list[str]:
        rev = f"{previous_tag}..HEAD" if previous_tag else "HEAD"
        result = runner.run(
            ["git", "log", rev, "--no-merges", "--format=%s"],
            "Collect commit subjects",
            timeout=GIT_TIMEOUT_SECONDS,
            echo=False,
        )
        if isinstance(result, Err) or not result.value.ok:
            # First release: the previous tag does not exist yet.
            self._console.warning(f"no commit history since {previous_tag or 'start'}")
            return []
        return [line.strip() for line in result.value.stdout.splitlines() if line.strip()]

    def _contributors(self) -> list[str]:
        path = self._contributors_file
        if path is None or not path.exists():
            return []
        try:
            data = as_str_dict(json.loads(read_text_exact(path)))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            self._console.warning(f"ignoring unreadable contributors file: {e}")
            return []
        if data is None:
            return []
        names: list[str] = []
        for login, info in data.items():
            entry = as_str_dict(info)
            name = get_str(entry, "name") if entry is not None else None
            names.append(name or login)
        return names


def _prepend(existing: str, section: str, *, title: str) -> str:
    header = f"# {title}\n"
    body = existing
    if body.startswith(header):
        body = body[len(header) :]
    body = body.lstrip("\n")
    if not body:
        return f"{header}\n{section}"
    return f"{header}\n{section}\n{body}"


class CommandNotesCollaborator:
    """Run a configured command to produce notes.

    The command receives `--version`, `--notable-versions`, `--output` and,
    for notable releases, `--head-version`.
    """

    def __init__(self, command: Sequence[str], output: Path, *, description: str) -> None:
        self.command = tuple(command)
        self.output = output
        self.description = description

    def arguments(self, request: NotesRequest) -> tuple[str, ...]:
        args = [
            *self.command,
            "--version",
            request.version,
            "--notable-versions",
            ",".join(request.notable_versions),
            "--output",
            str(self.output),
        ]
        if request.head_version is not None:
            args.extend(["--head-version", request.head_version])
        return tuple(args)

    def generate(self, request: NotesRequest, runner: ProcessRunner) -> Result[Path, ActionError]:
        result = runner.run(self.arguments(request), self.description)
        if isinstance(result, Err):
            return Err(ActionError(str(result.error)))
        if not result.value.ok:
            return Err(
                ActionError(
                    f"{self.command[0]} exited with {result.value.returncode}",
                    hint=result.value.stderr.strip() or None,
                )
            )
        return Ok(self.output)
