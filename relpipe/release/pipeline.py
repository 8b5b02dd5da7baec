"""The release pipeline: a fixed step graph over a resolved release.

Main chain (declaration order)::

    bumpVersion -> [fetchAllContributors] -> [fetchNotableReleaseNotes]
    -> generateReleaseNotes -> generateNotableReleaseNotes
    -> addVersionFile -> addReleaseNotes -> gitCommit -> gitTag -> gitPush
    -> publish:<module>... -> publishArtifacts -> performRelease

Cleanup (finalizers of performRelease and releaseCleanUp)::

    softResetCommit -> gitStash, deleteTag

Cleanup only acts on a dry run, after a failure, or when releaseCleanUp
was requested, so a successful real release is never undone.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace

from relpipe.core.result import Err, Ok, Result
from relpipe.git.repository import Repository
from relpipe.output.console import ConsoleProtocol, Style
from relpipe.output.errors import print_run_summary
from relpipe.pipeline.errors import GraphError, StepsFailed
from relpipe.pipeline.graph import ExecutionPlan, StepGraph
from relpipe.pipeline.run import PipelineRun
from relpipe.pipeline.step import ActionError, RunGuard, Step, StepAction
from relpipe.platform.http import HttpClient, RealHttpClient
from relpipe.platform.process import ProcessRunner
from relpipe.release import git
from relpipe.release.contributors import ContributorsFetcher
from relpipe.release.errors import ReleaseNotNeeded
from relpipe.release.needed import assert_release_needed
from relpipe.release.notes import (
    CommandNotesCollaborator,
    MarkdownNotesWriter,
    NotesCollaborator,
    NotesRequest,
)
from relpipe.release.publish import PUBLISH_ARTIFACTS, publish_steps
from relpipe.release.resolve import ResolvedRelease
from relpipe.version.store import increment_version

__all__ = [
    "ADD_RELEASE_NOTES",
    "ADD_VERSION_FILE",
    "BUMP_VERSION",
    "DELETE_TAG",
    "FETCH_CONTRIBUTORS",
    "FETCH_NOTABLE_NOTES",
    "GENERATE_NOTABLE_NOTES",
    "GENERATE_NOTES",
    "GIT_COMMIT",
    "GIT_PUSH",
    "GIT_STASH",
    "GIT_TAG",
    "PERFORM_RELEASE",
    "PUBLISH_ARTIFACTS",
    "RELEASE_CLEANUP",
    "SOFT_RESET_COMMIT",
    "ReleaseCollaborators",
    "ReleasePipeline",
    "build_release_steps",
    "default_collaborators",
]

BUMP_VERSION = "bumpVersion"
FETCH_CONTRIBUTORS = "fetchAllContributors"
FETCH_NOTABLE_NOTES = "fetchNotableReleaseNotes"
GENERATE_NOTES = "generateReleaseNotes"
GENERATE_NOTABLE_NOTES = "generateNotableReleaseNotes"
ADD_VERSION_FILE = "addVersionFile"
ADD_RELEASE_NOTES = "addReleaseNotes"
GIT_COMMIT = "gitCommit"
GIT_TAG = "gitTag"
GIT_PUSH = "gitPush"
PERFORM_RELEASE = "performRelease"
SOFT_RESET_COMMIT = "softResetCommit"
GIT_STASH = "gitStash"
DELETE_TAG = "deleteTag"
RELEASE_CLEANUP = "releaseCleanUp"

CLEANUP_STEPS = (SOFT_RESET_COMMIT, GIT_STASH, DELETE_TAG)


@dataclass(frozen=True, slots=True)
class ReleaseCollaborators:
    """External pieces the pipeline calls into as opaque steps."""

    notes: NotesCollaborator
    notable_notes: NotesCollaborator
    notes_fetcher: NotesCollaborator | None = None
    contributors: ContributorsFetcher | None = None


def default_collaborators(
    release: ResolvedRelease,
    *,
    console: ConsoleProtocol,
    http: HttpClient,
) -> ReleaseCollaborators:
    """Collaborators as configured: external commands where set, else built-ins."""
    notes_cfg = release.config.notes
    github = release.config.github

    notes: NotesCollaborator
    if notes_cfg.generator_command:
        notes = CommandNotesCollaborator(
            notes_cfg.generator_command, release.notes_file, description="Generate release notes"
        )
    else:
        notes = MarkdownNotesWriter(
            release.notes_file,
            title="Release notes",
            console=console,
            contributors_file=release.contributors_file if github.repository else None,
        )

    notable: NotesCollaborator
    if notes_cfg.notable_generator_command:
        notable = CommandNotesCollaborator(
            notes_cfg.notable_generator_command,
            release.notable_notes_file,
            description="Generate notable release notes",
        )
    else:
        notable = MarkdownNotesWriter(
            release.notable_notes_file,
            title="Notable releases",
            console=console,
            notable=True,
        )

    fetcher: NotesCollaborator | None = None
    if notes_cfg.fetch_command:
        fetcher = CommandNotesCollaborator(
            notes_cfg.fetch_command, release.fetch_output, description="Fetch notable release notes"
        )

    contributors: ContributorsFetcher | None = None
    if github.repository:
        contributors = ContributorsFetcher(
            http,
            api_url=github.api_url,
            repository=github.repository,
            token=release.read_token,
            output=release.contributors_file,
            console=console,
        )

    return ReleaseCollaborators(
        notes=notes,
        notable_notes=notable,
        notes_fetcher=fetcher,
        contributors=contributors,
    )


def _cleanup_wanted(run: PipelineRun) -> bool:
    return run.dry_run or run.failed or RELEASE_CLEANUP in run.order


def _cleanup_guard(counterpart: str | None = None) -> RunGuard:
    def guard(run: PipelineRun) -> bool:
        if not _cleanup_wanted(run):
            return False
        if counterpart is not None and counterpart in run.selected:
            return run.attempted(counterpart)
        return True

    return guard


def _bump_action(release: ResolvedRelease, console: ConsoleProtocol) -> StepAction:
    rel = release.relative(release.version_file)

    def bump(runner: ProcessRunner) -> Result[None, ActionError]:
        if runner.simulate:
            console.print(
                f"  [dry-run] would update {rel}: {release.record.current} -> {release.version}",
                Style.DIM,
            )
            return Ok(None)

        result = increment_version(release.record, release.bump)
        if isinstance(result, Err):
            return Err(ActionError(result.error.message, hint=rel))

        console.print(
            f"  updated {rel}: {result.value.previous} -> {result.value.current}", Style.DIM
        )
        return Ok(None)

    return bump


def _soft_reset_action(release: ResolvedRelease, console: ConsoleProtocol) -> StepAction:
    """Undo HEAD only when it is this release's commit.

    A failed gitCommit leaves the user's own commit at HEAD; that one stays.
    """
    git_cfg = release.config.git
    expected = git.commit_message(release.version, git_cfg.commit_message_postfix)

    def reset(runner: ProcessRunner) -> Result[None, ActionError]:
        if not runner.simulate:
            head = Repository(release.repo_root, runner).head_commit_message()
            if isinstance(head, Err):
                return Err(ActionError(f"cannot read HEAD: {head.error.message}"))
            if head.value != expected:
                console.print("  HEAD is not the release commit, nothing to undo", Style.DIM)
                return Ok(None)

        result = runner.run(
            git.soft_reset_command(), "Undo the release commit", timeout=git.GIT_TIMEOUT_SECONDS
        )
        if isinstance(result, Err):
            return Err(ActionError(str(result.error)))
        if not result.value.ok:
            return Err(
                ActionError(
                    f"git reset exited with {result.value.returncode}",
                    hint=result.value.stderr.strip() or None,
                )
            )
        return Ok(None)

    return reset


def _notes_action(collaborator: NotesCollaborator, request: NotesRequest) -> StepAction:
    def generate(runner: ProcessRunner) -> Result[None, ActionError]:
        result = collaborator.generate(request, runner)
        if isinstance(result, Err):
            return result
        return Ok(None)

    return generate


def build_release_steps(
    release: ResolvedRelease,
    collaborators: ReleaseCollaborators,
    *,
    console: ConsoleProtocol,
) -> tuple[Step, ...]:
    """Declare the release steps for one resolved release.

    Optional collaborator steps are declared only when configured; the
    steps that would depend on them then have one dependency fewer.
    """
    git_cfg = release.config.git
    github = release.config.github

    # Only the notable generator and the fetcher get the head version.
    request = NotesRequest(
        version=release.version,
        notable_versions=release.record.notable_versions,
        previous_tag=release.previous_tag,
    )
    notable_request = replace(request, head_version=release.head_version)

    steps: list[Step] = [
        Step(
            name=BUMP_VERSION,
            description=f"Bump version to {release.version}",
            action=_bump_action(release, console),
        )
    ]

    notes_deps: tuple[str, ...] = ()
    if collaborators.contributors is not None:
        steps.append(
            Step(
                name=FETCH_CONTRIBUTORS,
                description=f"Fetch contributors of {github.repository}",
                action=collaborators.contributors.fetch,
            )
        )
        notes_deps = (FETCH_CONTRIBUTORS,)

    notable_deps: tuple[str, ...] = ()
    if collaborators.notes_fetcher is not None:
        steps.append(
            Step(
                name=FETCH_NOTABLE_NOTES,
                description="Fetch notable release notes",
                action=_notes_action(collaborators.notes_fetcher, notable_request),
            )
        )
        notable_deps = (FETCH_NOTABLE_NOTES,)

    notes_files = (
        release.relative(collaborators.notes.output),
        release.relative(collaborators.notable_notes.output),
    )
    push_target = git.push_target(git_cfg, github, release.write_token)

    steps.extend(
        [
            Step(
                name=GENERATE_NOTES,
                description="Generate release notes",
                action=_notes_action(collaborators.notes, request),
                depends_on=notes_deps,
                must_run_after=(BUMP_VERSION,),
            ),
            Step(
                name=GENERATE_NOTABLE_NOTES,
                description="Generate notable release notes",
                action=_notes_action(collaborators.notable_notes, notable_request),
                depends_on=notable_deps,
                must_run_after=(BUMP_VERSION,),
            ),
            Step(
                name=ADD_VERSION_FILE,
                description="Stage the version file",
                command=git.add_command([release.relative(release.version_file)]),
                timeout=git.GIT_TIMEOUT_SECONDS,
                must_run_after=(BUMP_VERSION,),
            ),
            Step(
                name=ADD_RELEASE_NOTES,
                description="Stage the release notes",
                command=git.add_command(notes_files),
                timeout=git.GIT_TIMEOUT_SECONDS,
                must_run_after=(GENERATE_NOTES, GENERATE_NOTABLE_NOTES),
            ),
            Step(
                name=GIT_COMMIT,
                description=f"Commit release {release.version}",
                command=git.commit_command(git_cfg, release.version),
                timeout=git.GIT_TIMEOUT_SECONDS,
                must_run_after=(ADD_VERSION_FILE, ADD_RELEASE_NOTES),
            ),
            Step(
                name=GIT_TAG,
                description=f"Tag {release.tag}",
                command=git.tag_command(git_cfg, release.tag),
                timeout=git.GIT_TIMEOUT_SECONDS,
                must_run_after=(GIT_COMMIT,),
            ),
            Step(
                name=GIT_PUSH,
                description=f"Push {release.branch or 'HEAD'} and {release.tag}",
                command=git.push_command(push_target, release.branch, release.tag),
                timeout=git.GIT_NETWORK_TIMEOUT_SECONDS,
                must_run_after=(GIT_COMMIT, GIT_TAG),
            ),
        ]
    )

    steps.extend(publish_steps(release.config.publish, after=(GIT_PUSH,)))

    main_chain = tuple(s.name for s in steps)
    steps.extend(
        [
            Step(
                name=PERFORM_RELEASE,
                description=f"Release {release.version}",
                depends_on=main_chain,
                finalized_by=CLEANUP_STEPS,
            ),
            Step(
                name=SOFT_RESET_COMMIT,
                description="Undo the release commit",
                action=_soft_reset_action(release, console),
                run_if=_cleanup_guard(GIT_COMMIT),
                skip_reason="no release commit to undo",
            ),
            Step(
                name=GIT_STASH,
                description="Stash the release changes",
                command=git.stash_command(),
                timeout=git.GIT_TIMEOUT_SECONDS,
                must_run_after=(SOFT_RESET_COMMIT,),
                run_if=_cleanup_guard(),
                skip_reason="release succeeded",
            ),
            Step(
                name=DELETE_TAG,
                description=f"Delete tag {release.tag}",
                command=git.delete_tag_command(release.tag),
                timeout=git.GIT_TIMEOUT_SECONDS,
                run_if=_cleanup_guard(GIT_TAG),
                skip_reason="no release tag to delete",
            ),
            Step(
                name=RELEASE_CLEANUP,
                description="Restore the working copy",
                must_run_after=(PERFORM_RELEASE,),
                finalized_by=CLEANUP_STEPS,
            ),
        ]
    )
    return tuple(steps)


class ReleasePipeline:
    """Runs the release step graph for one resolved release.

    Attributes:
        release: The resolved inputs.
        graph: The declared steps.
    """

    def __init__(
        self,
        release: ResolvedRelease,
        *,
        runner: ProcessRunner,
        console: ConsoleProtocol,
        collaborators: ReleaseCollaborators | None = None,
        http: HttpClient | None = None,
    ) -> None:
        self.release = release
        self._runner = runner
        self._console = console
        if collaborators is None:
            collaborators = default_collaborators(
                release, console=console, http=http or RealHttpClient()
            )
        self.graph = StepGraph(build_release_steps(release, collaborators, console=console))

    def plan(self, targets: Sequence[str] = (PERFORM_RELEASE,)) -> Result[ExecutionPlan, GraphError]:
        return self.graph.plan(targets)

    def perform_release(self, *, dry_run: bool = False) -> Result[PipelineRun, GraphError | StepsFailed]:
        """Bump, commit, tag, push and publish. Cleanup runs only on failure."""
        runner = self._runner.simulated() if dry_run else self._runner
        return self._execute((PERFORM_RELEASE,), runner)

    def release_cleanup(self) -> Result[PipelineRun, GraphError | StepsFailed]:
        """Undo a release attempt: soft reset, stash, delete the tag."""
        return self._execute((RELEASE_CLEANUP,), self._runner)

    def test_release(self) -> Result[PipelineRun, GraphError | StepsFailed]:
        """The whole release and its cleanup, simulated in-process."""
        return self._execute((PERFORM_RELEASE, RELEASE_CLEANUP), self._runner.simulated())

    def assert_release_needed(self) -> Result[None, ReleaseNotNeeded]:
        return assert_release_needed(
            branch=self.release.branch,
            commit_message=self.release.commit_message,
            releasable_branch_regex=self.release.config.git.releasable_branch_regex,
            skip_requested=self.release.skip_requested,
        )

    def _execute(
        self, targets: Sequence[str], runner: ProcessRunner
    ) -> Result[PipelineRun, GraphError | StepsFailed]:
        plan = self.graph.plan(targets)
        if isinstance(plan, Err):
            return plan

        mode = "dry run" if runner.simulate else "release"
        self._console.header(f"{', '.join(targets)} ({mode} of {self.release.version})")

        result = self.graph.execute(plan.value, runner, self._console)
        run = result.value if isinstance(result, Ok) else result.error.run
        print_run_summary(run, self._console)
        return result
