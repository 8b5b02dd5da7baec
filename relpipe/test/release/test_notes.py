"""Tests for relpipe.release.notes."""

from __future__ import annotations

import json
import sys
from collections.abc import Sequence
from datetime import date
from pathlib import Path

from relpipe.core.result import Err, Ok, Result
from relpipe.output.console import MockConsole
from relpipe.platform.process import ExecResult, ProcessExecutionError, ProcessRunner
from relpipe.release.notes import (
    CommandNotesCollaborator,
    MarkdownNotesWriter,
    NotesRequest,
    render_section,
)

_DAY = date(2026, 3, 14)


class GitLog(ProcessRunner):
    """Returns a canned `git log` output for every command."""

    def __init__(self, cwd: Path, stdout: str, returncode: int = 0) -> None:
        super().__init__(cwd)
        self.stdout = stdout
        self.returncode = returncode
        self.commands: list[tuple[str, ...]] = []

    def run(
        self,
        command: Sequence[str],
        description: str,
        *,
        cwd: Path | None = None,
        timeout: float | None = None,
        echo: bool = True,
    ) -> Result[ExecResult, ProcessExecutionError]:
        cmd = tuple(command)
        self.commands.append(cmd)
        return Ok(ExecResult(command=cmd, returncode=self.returncode, stdout=self.stdout))


def _writer(path: Path, console: MockConsole, **kwargs: object) -> MarkdownNotesWriter:
    return MarkdownNotesWriter(path, title="Release notes", console=console, today=lambda: _DAY, **kwargs)  # type: ignore[arg-type]


class TestRenderSection:
    def test_changes_and_contributors(self) -> None:
        text = render_section("1.0.1", day=_DAY, changes=["Fix a", "Add b"], contributors=["ann", "bob"])
        assert text == "## 1.0.1 (2026-03-14)\n\n- Fix a\n- Add b\n\nContributors: ann, bob\n"

    def test_no_changes(self) -> None:
        assert "- No notable changes." in render_section("1.0.1", day=_DAY, changes=[])


class TestMarkdownNotesWriter:
    def test_creates_file(self, tmp_path: Path) -> None:
        path = tmp_path / "docs" / "release-notes.md"
        runner = GitLog(tmp_path, "Fix a\nAdd b\n")

        result = _writer(path, MockConsole()).generate(
            NotesRequest(version="1.0.1", previous_tag="v1.0.0"), runner
        )

        assert result == Ok(path)
        assert path.read_text() == "# Release notes\n\n## 1.0.1 (2026-03-14)\n\n- Fix a\n- Add b\n"
        assert runner.commands == [("git", "log", "v1.0.0..HEAD", "--no-merges", "--format=%s")]

    def test_prepends_newest_first(self, tmp_path: Path) -> None:
        path = tmp_path / "notes.md"
        path.write_text("# Release notes\n\n## 1.0.0 (2026-01-01)\n\n- Initial\n")

        _writer(path, MockConsole()).generate(NotesRequest(version="1.0.1"), GitLog(tmp_path, "Fix\n"))

        content = path.read_text()
        assert content.startswith("# Release notes\n\n## 1.0.1 (2026-03-14)\n\n- Fix\n\n## 1.0.0")
        assert content.count("# Release notes") == 1

    def test_missing_previous_tag_warns(self, tmp_path: Path) -> None:
        path = tmp_path / "notes.md"
        console = MockConsole()

        result = _writer(path, console).generate(
            NotesRequest(version="0.0.1", previous_tag="v0.0.0"), GitLog(tmp_path, "", returncode=128)
        )

        assert isinstance(result, Ok)
        assert console.has_warning()
        assert "- No notable changes." in path.read_text()

    def test_includes_contributors(self, tmp_path: Path) -> None:
        contributors = tmp_path / "contributors.json"
        contributors.write_text(json.dumps({"ann": {"name": "Ann"}, "bob": {}}))
        path = tmp_path / "notes.md"

        _writer(path, MockConsole(), contributors_file=contributors).generate(
            NotesRequest(version="1.0.1"), GitLog(tmp_path, "Fix\n")
        )

        assert "Contributors: Ann, bob" in path.read_text()

    def test_dry_run_writes_nothing(self, tmp_path: Path) -> None:
        path = tmp_path / "notes.md"
        console = MockConsole()
        runner = ProcessRunner(tmp_path, simulate=True)

        result = _writer(path, console).generate(NotesRequest(version="1.0.1"), runner)

        assert result == Ok(path)
        assert not path.exists()
        assert console.find("[dry-run] would add 1.0.1 to notes.md")

    def test_notable_without_head_version_only_ensures_file(self, tmp_path: Path) -> None:
        path = tmp_path / "notable.md"
        writer = MarkdownNotesWriter(path, title="Notable releases", console=MockConsole(), notable=True)
        runner = GitLog(tmp_path, "Fix\n")

        writer.generate(NotesRequest(version="1.0.1"), runner)

        assert path.read_text() == "# Notable releases\n"
        assert runner.commands == []

    def test_notable_with_head_version(self, tmp_path: Path) -> None:
        path = tmp_path / "notable.md"
        writer = MarkdownNotesWriter(
            path, title="Notable releases", console=MockConsole(), notable=True, today=lambda: _DAY
        )

        writer.generate(NotesRequest(version="2.0.0", head_version="2.0.0"), GitLog(tmp_path, "Big\n"))

        assert "## 2.0.0 (2026-03-14)" in path.read_text()


class TestCommandNotesCollaborator:
    def test_arguments(self, tmp_path: Path) -> None:
        collaborator = CommandNotesCollaborator(["gen-notes"], tmp_path / "n.md", description="Gen")
        request = NotesRequest(version="2.0.0", notable_versions=("1.0.0", "0.9.0"), head_version="2.0.0")

        assert collaborator.arguments(request) == (
            "gen-notes",
            "--version",
            "2.0.0",
            "--notable-versions",
            "1.0.0,0.9.0",
            "--output",
            str(tmp_path / "n.md"),
            "--head-version",
            "2.0.0",
        )

    def test_success(self, tmp_path: Path) -> None:
        collaborator = CommandNotesCollaborator(
            [sys.executable, "-c", "import sys; sys.exit(0)"], tmp_path / "n.md", description="Gen"
        )
        result = collaborator.generate(NotesRequest(version="1.0.1"), ProcessRunner(tmp_path))
        assert result == Ok(tmp_path / "n.md")

    def test_failure_carries_stderr(self, tmp_path: Path) -> None:
        collaborator = CommandNotesCollaborator(
            [sys.executable, "-c", "import sys; sys.stderr.write('no template'); sys.exit(4)"],
            tmp_path / "n.md",
            description="Gen",
        )

        result = collaborator.generate(NotesRequest(version="1.0.1"), ProcessRunner(tmp_path))

        assert isinstance(result, Err)
        assert result.error.message.endswith("exited with 4")
        assert result.error.hint == "no template"
