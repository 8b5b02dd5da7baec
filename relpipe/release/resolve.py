"""Resolve everything a release needs before any step is built.

The resolved values are frozen; steps close over them and never read the
config file, the environment, or the version file on their own.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from relpipe.core.config import ReleaseConfig
from relpipe.core.result import Err, Ok, Result
from relpipe.git.repository import Repository
from relpipe.release.errors import ReleaseError
from relpipe.release.needed import SKIP_RELEASE_ENV
from relpipe.version.semver import BumpKind
from relpipe.version.store import (
    MalformedVersionFile,
    VersionRecord,
    is_notable_version,
    load_version_file,
    next_version,
)

__all__ = ["BRANCH_ENV_VARS", "ResolvedRelease", "resolve_branch", "resolve_release"]

# Checked in order; CI systems check out a detached HEAD, so the branch
# name has to come from their environment.
BRANCH_ENV_VARS = ("RELEASE_BRANCH", "GITHUB_HEAD_REF", "GITHUB_REF_NAME", "TRAVIS_BRANCH")


@dataclass(frozen=True, slots=True)
class ResolvedRelease:
    """Inputs of one release, computed once.

    Attributes:
        repo_root: Repository root; every configured path is relative to it.
        record: Version record as loaded, before the increment.
        version: The version this release will write.
        tag: Tag name for `version`.
        notable: True when `version` matches a notable pattern.
        branch: Branch being released (None on a detached HEAD).
        commit_message: Message of the HEAD commit.
        write_token: Credential used by the push step only.
        read_token: Credential for GitHub API reads.
        skip_requested: SKIP_RELEASE is set in the environment.
    """

    repo_root: Path
    config: ReleaseConfig
    record: VersionRecord
    bump: BumpKind
    version: str
    tag: str
    notable: bool
    branch: str | None
    commit_message: str
    write_token: str | None = None
    read_token: str | None = None
    skip_requested: bool = False

    @property
    def version_file(self) -> Path:
        return self.record.path

    @property
    def notes_file(self) -> Path:
        return self.repo_root / self.config.notes.file

    @property
    def notable_notes_file(self) -> Path:
        return self.repo_root / self.config.notes.notable_file

    @property
    def contributors_file(self) -> Path:
        return self.repo_root / self.config.notes.contributors_file

    @property
    def fetch_output(self) -> Path:
        return self.repo_root / self.config.notes.fetch_output

    @property
    def previous_tag(self) -> str:
        """Tag of the version currently in the file (the last release)."""
        return f"{self.config.git.tag_prefix}{self.record.current}"

    @property
    def head_version(self) -> str | None:
        """The version handed to notable-notes collaborators, if notable."""
        return self.version if self.notable else None

    def relative(self, path: Path) -> str:
        """Path as given to git: relative to the repository root when possible."""
        try:
            return path.relative_to(self.repo_root).as_posix()
        except ValueError:
            return str(path)


def resolve_branch(
    environ: Mapping[str, str], repository: Repository
) -> Result[str | None, ReleaseError]:
    """Branch from CI environment variables, else from git."""
    for name in BRANCH_ENV_VARS:
        value = environ.get(name, "").strip()
        if value:
            return Ok(value)

    result = repository.current_branch()
    if isinstance(result, Err):
        return Err(
            ReleaseError(
                kind="git_failed",
                message=f"cannot determine the current branch: {result.error.message}",
                hint=f"Set {BRANCH_ENV_VARS[0]} or run from a git working copy",
            )
        )
    return Ok(result.value)


def resolve_release(
    *,
    repo_root: Path,
    config: ReleaseConfig,
    environ: Mapping[str, str],
    bump: BumpKind = "patch",
    repository: Repository | None = None,
    branch: str | None = None,
    commit_message: str | None = None,
) -> Result[ResolvedRelease, ReleaseError | MalformedVersionFile]:
    """Load the version record and compute the release inputs.

    `branch` and `commit_message` skip the corresponding git query when
    given. Git queries are read-only, so they run for dry runs too.
    """
    loaded = load_version_file(repo_root / config.version.file)
    if isinstance(loaded, Err):
        return loaded
    record = loaded.value

    repo = repository or Repository(repo_root)
    if (branch is None or commit_message is None) and not repo.exists():
        return Err(
            ReleaseError(
                kind="git_failed",
                message=f"not a git working copy: {repo_root}",
                hint="Run from the repository root or pass --repo",
            )
        )

    if branch is None:
        resolved_branch = resolve_branch(environ, repo)
        if isinstance(resolved_branch, Err):
            return resolved_branch
        branch = resolved_branch.value

    if commit_message is None:
        message = repo.head_commit_message()
        if isinstance(message, Err):
            return Err(
                ReleaseError(
                    kind="git_failed",
                    message=f"cannot read the HEAD commit: {message.error.message}",
                )
            )
        commit_message = message.value

    version = next_version(record, bump)
    github = config.github
    return Ok(
        ResolvedRelease(
            repo_root=repo_root,
            config=config,
            record=record,
            bump=bump,
            version=version,
            tag=f"{config.git.tag_prefix}{version}",
            notable=is_notable_version(version, config.version.notable_patterns),
            branch=branch,
            commit_message=commit_message,
            write_token=environ.get(github.write_token_env) or None,
            read_token=environ.get(github.read_only_token_env) or None,
            skip_requested=_flag_set(environ.get(SKIP_RELEASE_ENV)),
        )
    )


def _flag_set(value: str | None) -> bool:
    return value is not None and value.strip().lower() not in ("", "0", "false", "no")
