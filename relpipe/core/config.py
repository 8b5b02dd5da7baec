"""Typed configuration loading and access.

This module provides dataclasses for the relpipe.toml structure with
full type safety and validation. Every value is resolved here, before any
step graph is built; steps never read configuration on their own.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_list, get_str, get_str_list, get_table

__all__ = [
    "CONFIG_FILE_NAME",
    "ConfigError",
    "GitConfig",
    "GitHubConfig",
    "NotesConfig",
    "PublishModule",
    "ReleaseConfig",
    "VersionConfig",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILE_NAME = "relpipe.toml"

DEFAULT_VERSION_FILE = "version.properties"
DEFAULT_RELEASABLE_BRANCH_REGEX = r"^(main|master|release/.+)$"
DEFAULT_GIT_USER = "relpipe-bot"
DEFAULT_GIT_EMAIL = "relpipe-bot@users.noreply.github.com"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class VersionConfig:
    """Where the version lives and which versions count as notable."""

    file: str = DEFAULT_VERSION_FILE
    # Regular expressions, matched against the whole version string.
    notable_patterns: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class GitConfig:
    """Git identity and conventions used by the commit/tag/push steps."""

    remote: str = "origin"
    user: str = DEFAULT_GIT_USER
    email: str = DEFAULT_GIT_EMAIL
    commit_message_postfix: str = "[ci skip]"
    tag_prefix: str = "v"
    releasable_branch_regex: str = DEFAULT_RELEASABLE_BRANCH_REGEX

    @property
    def author(self) -> str:
        """Generic author notation, e.g. `relpipe-bot <bot@example.com>`."""
        return f"{self.user} <{self.email}>"


@dataclass(frozen=True, slots=True)
class GitHubConfig:
    """GitHub repository coordinates and credential sources.

    Tokens are never stored in the config file, only the names of the
    environment variables that hold them.
    """

    repository: str | None = None
    api_url: str = "https://api.github.com"
    url: str = "https://github.com"
    write_token_env: str = "GH_WRITE_TOKEN"
    read_only_token_env: str = "GH_READ_TOKEN"


@dataclass(frozen=True, slots=True)
class NotesConfig:
    """Release notes files and optional external generator commands."""

    file: str = "docs/release-notes.md"
    notable_file: str = "docs/notable-release-notes.md"
    generator_command: tuple[str, ...] = ()
    notable_generator_command: tuple[str, ...] = ()
    fetch_command: tuple[str, ...] = ()
    contributors_file: str = "build/release/contributors.json"
    fetch_output: str = "build/release/notable-notes.json"


@dataclass(frozen=True, slots=True)
class PublishModule:
    """One publishable module: a command run from `cwd` after push."""

    name: str
    command: tuple[str, ...]
    cwd: str = "."


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Main configuration container."""

    version: VersionConfig = field(default_factory=VersionConfig)
    git: GitConfig = field(default_factory=GitConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    notes: NotesConfig = field(default_factory=NotesConfig)
    publish: tuple[PublishModule, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> ReleaseConfig:
        """Create ReleaseConfig from a mapping (parsed TOML).

        Raises:
            ValueError: on values of the wrong shape or invalid patterns.
        """
        version: StrDict = get_table(data, "version") or {}
        git: StrDict = get_table(data, "git") or {}
        github: StrDict = get_table(data, "github") or {}
        notes: StrDict = get_table(data, "notes") or {}
        publish: StrDict = get_table(data, "publish") or {}

        notable_patterns = _str_list(version, "notable_patterns", section="version")
        for pattern in notable_patterns:
            _compile(pattern, key="version.notable_patterns")

        branch_regex = get_str(git, "releasable_branch_regex") or DEFAULT_RELEASABLE_BRANCH_REGEX
        _compile(branch_regex, key="git.releasable_branch_regex")

        return cls(
            version=VersionConfig(
                file=get_str(version, "file") or DEFAULT_VERSION_FILE,
                notable_patterns=notable_patterns,
            ),
            git=GitConfig(
                remote=get_str(git, "remote") or "origin",
                user=get_str(git, "user") or DEFAULT_GIT_USER,
                email=get_str(git, "email") or DEFAULT_GIT_EMAIL,
                # An explicit empty postfix disables it.
                commit_message_postfix=_str_or_default(git, "commit_message_postfix", "[ci skip]"),
                tag_prefix=_str_or_default(git, "tag_prefix", "v"),
                releasable_branch_regex=branch_regex,
            ),
            github=GitHubConfig(
                repository=get_str(github, "repository"),
                api_url=(get_str(github, "api_url") or "https://api.github.com").rstrip("/"),
                url=(get_str(github, "url") or "https://github.com").rstrip("/"),
                write_token_env=get_str(github, "write_token_env") or "GH_WRITE_TOKEN",
                read_only_token_env=get_str(github, "read_only_token_env") or "GH_READ_TOKEN",
            ),
            notes=NotesConfig(
                file=get_str(notes, "file") or "docs/release-notes.md",
                notable_file=get_str(notes, "notable_file") or "docs/notable-release-notes.md",
                generator_command=_str_list(notes, "generator_command", section="notes"),
                notable_generator_command=_str_list(
                    notes, "notable_generator_command", section="notes"
                ),
                fetch_command=_str_list(notes, "fetch_command", section="notes"),
                contributors_file=get_str(notes, "contributors_file")
                or "build/release/contributors.json",
                fetch_output=get_str(notes, "fetch_output") or "build/release/notable-notes.json",
            ),
            publish=_publish_modules(publish),
        )


def _str_or_default(table: Mapping[str, object], key: str, default: str) -> str:
    value = table.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string")
    return value.strip()


def _str_list(table: Mapping[str, object], key: str, *, section: str) -> tuple[str, ...]:
    if key not in table:
        return ()
    items = get_str_list(table, key)
    if items is None:
        raise ValueError(f"'{section}.{key}' must be a list of strings")
    return items


def _compile(pattern: str, *, key: str) -> None:
    try:
        re.compile(pattern)
    except re.error as e:
        raise ValueError(f"invalid regex in '{key}': {e}") from e


def _publish_modules(publish: Mapping[str, object]) -> tuple[PublishModule, ...]:
    raw = get_list(publish, "modules")
    if raw is None:
        return ()

    modules: list[PublishModule] = []
    seen: set[str] = set()
    for item in raw:
        entry = as_str_dict(item)
        if entry is None:
            raise ValueError("'publish.modules' entries must be tables")
        name = get_str(entry, "name")
        if name is None:
            raise ValueError("'publish.modules' entry is missing 'name'")
        if name in seen:
            raise ValueError(f"duplicate publish module: {name}")
        seen.add(name)
        command = get_str_list(entry, "command")
        if not command:
            raise ValueError(f"publish module '{name}' needs a non-empty 'command' list")
        modules.append(PublishModule(name=name, command=command, cwd=get_str(entry, "cwd") or "."))
    return tuple(modules)


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling import and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[ReleaseConfig, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to relpipe.toml

    Returns:
        Ok(ReleaseConfig) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(ReleaseConfig.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path) -> Result[ReleaseConfig, ConfigError]:
    """Load config from file, or return the defaults if the file doesn't exist.

    A file that exists but fails to parse is still an error.
    """
    if not path.exists():
        return Ok(ReleaseConfig())
    return load_config(path)
