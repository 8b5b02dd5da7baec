"""Git commands run by the release steps.

Builders only: they return argument tuples, the steps run them through the
ProcessRunner so that dry runs simulate them like any other command.
"""

from __future__ import annotations

from collections.abc import Sequence

from relpipe.core.config import GitConfig, GitHubConfig

GIT_TIMEOUT_SECONDS = 30.0
GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0


def add_command(paths: Sequence[str]) -> tuple[str, ...]:
    return ("git", "add", "--", *paths)


def commit_message(version: str, postfix: str) -> str:
    message = f"Release {version}"
    return f"{message} {postfix}" if postfix else message


def identity_args(git: GitConfig) -> tuple[str, ...]:
    """Committer and tagger identity as one-off config overrides.

    Takes precedence over (or stands in for) the clone's own git config.
    """
    return ("-c", f"user.name={git.user}", "-c", f"user.email={git.email}")


def commit_command(git: GitConfig, version: str) -> tuple[str, ...]:
    return (
        "git",
        *identity_args(git),
        "commit",
        f"--author={git.author}",
        "-m",
        commit_message(version, git.commit_message_postfix),
    )


def tag_command(git: GitConfig, tag: str) -> tuple[str, ...]:
    return ("git", *identity_args(git), "tag", "-a", tag, "-m", f"Release {tag}")


def push_target(git: GitConfig, github: GitHubConfig, token: str | None) -> str:
    """Authenticated HTTPS URL when a token is available, else the remote name.

    The URL embeds the token; callers must mask it when printing.
    """
    if not token or not github.repository:
        return git.remote
    _, _, host = github.url.partition("://")
    host = host or github.url
    return f"https://{git.user}:{token}@{host}/{github.repository}.git"


def push_command(target: str, branch: str | None, tag: str) -> tuple[str, ...]:
    refs = (f"HEAD:refs/heads/{branch}", tag) if branch else (tag,)
    return ("git", "push", target, *refs)


def soft_reset_command() -> tuple[str, ...]:
    return ("git", "reset", "--soft", "HEAD~")


def stash_command() -> tuple[str, ...]:
    return ("git", "stash")


def delete_tag_command(tag: str) -> tuple[str, ...]:
    return ("git", "tag", "-d", tag)
