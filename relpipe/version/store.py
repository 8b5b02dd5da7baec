"""Version file: load, increment, persist.

The version file is plain `key=value` text, for example::

    version=1.4.2
    previousVersion=1.4.1
    notableVersions=1.0.0,0.9.0

Incrementing rewrites the `version=` line (and `previousVersion=` when the
file declares it) and leaves every other byte alone. Content is normalized
to end with a newline first so the line pattern is the same for the last
line as for any other. The write goes through a temp file + rename.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, replace
from pathlib import Path

from relpipe.core.result import Err, Ok, Result
from relpipe.platform.files import atomic_write_text, read_text_exact
from relpipe.version.semver import BumpKind, Version, parse_version

__all__ = [
    "MalformedVersionFile",
    "NOTABLE_VERSIONS_KEY",
    "PREVIOUS_VERSION_KEY",
    "VERSION_KEY",
    "VersionFileError",
    "VersionFileWriteFailed",
    "VersionRecord",
    "increment_version",
    "is_notable_version",
    "load_version_file",
    "next_version",
    "parse_notable_versions",
    "parse_properties",
]

VERSION_KEY = "version"
PREVIOUS_VERSION_KEY = "previousVersion"
NOTABLE_VERSIONS_KEY = "notableVersions"


def _key_line(key: str) -> re.Pattern[str]:
    # Group 1 keeps the key and separator exactly as written.
    return re.compile(rf"(?m)^([ \t]*{re.escape(key)}[ \t]*=[ \t]*)[^\r\n]*")


_VERSION_LINE_RE = _key_line(VERSION_KEY)
_PREVIOUS_LINE_RE = _key_line(PREVIOUS_VERSION_KEY)


@dataclass(frozen=True, slots=True)
class VersionRecord:
    """The persisted version state of the project.

    Attributes:
        path: The backing version file.
        current: Current version, always a valid `major.minor.patch`.
        previous: Version before the last increment, if known.
        notable_versions: Milestone versions in declaration order.
    """

    path: Path
    current: str
    previous: str | None = None
    notable_versions: tuple[str, ...] = ()

    @property
    def version(self) -> Version:
        parsed = parse_version(self.current)
        if parsed is None:
            raise AssertionError(f"invalid version in record: {self.current}")
        return parsed

    def is_notable_release(self, patterns: Sequence[str]) -> bool:
        return is_notable_version(self.current, patterns)


@dataclass(frozen=True, slots=True)
class MalformedVersionFile:
    """The version file is missing, unreadable, or has no valid `version=`."""

    path: Path
    reason: str

    @property
    def message(self) -> str:
        return f"malformed version file {self.path}: {self.reason}"


@dataclass(frozen=True, slots=True)
class VersionFileWriteFailed:
    """The new version could not be written.

    `record` is the updated in-memory record; the file on disk still holds
    the old version, so the run must be treated as failed.
    """

    path: Path
    message: str
    record: VersionRecord


VersionFileError = MalformedVersionFile | VersionFileWriteFailed


def parse_properties(text: str) -> tuple[dict[str, str], list[str]]:
    """Parse `key=value` lines.

    Blank lines and lines starting with `#` or `!` are ignored. Keys and
    values are trimmed.

    Returns:
        (values, keys in declaration order, duplicates included)
    """
    values: dict[str, str] = {}
    keys: list[str] = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line[0] in "#!":
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        values[key] = value.strip()
        keys.append(key)
    return values, keys


def parse_notable_versions(value: str | None) -> tuple[str, ...]:
    """Split a comma-separated list; missing or empty means no notable versions."""
    if value is None:
        return ()
    return tuple(v.strip() for v in value.split(",") if v.strip())


def is_notable_version(version: str, patterns: Sequence[str]) -> bool:
    """True if version fully matches one of the notable-version regexes."""
    return any(re.fullmatch(p, version) for p in patterns)


def load_version_file(path: Path) -> Result[VersionRecord, MalformedVersionFile]:
    try:
        text = read_text_exact(path)
    except FileNotFoundError:
        return Err(MalformedVersionFile(path=path, reason="file not found"))
    except (OSError, UnicodeDecodeError) as e:
        return Err(MalformedVersionFile(path=path, reason=f"cannot read: {e}"))

    values, keys = parse_properties(text)
    declared = keys.count(VERSION_KEY)
    if declared == 0:
        return Err(MalformedVersionFile(path=path, reason=f"missing '{VERSION_KEY}=' property"))
    if declared > 1:
        return Err(
            MalformedVersionFile(path=path, reason=f"'{VERSION_KEY}=' declared {declared} times")
        )

    current = values[VERSION_KEY]
    if parse_version(current) is None:
        return Err(
            MalformedVersionFile(
                path=path,
                reason=f"'{current}' is not a valid major.minor.patch version",
            )
        )

    previous = values.get(PREVIOUS_VERSION_KEY) or None
    if previous is not None and parse_version(previous) is None:
        return Err(
            MalformedVersionFile(
                path=path,
                reason=f"'{PREVIOUS_VERSION_KEY}={previous}' is not a valid version",
            )
        )

    return Ok(
        VersionRecord(
            path=path,
            current=current,
            previous=previous,
            notable_versions=parse_notable_versions(values.get(NOTABLE_VERSIONS_KEY)),
        )
    )


def next_version(record: VersionRecord, bump: BumpKind = "patch") -> str:
    """Version the next increment will write, without touching the file."""
    return str(record.version.bump(bump))


def increment_version(
    record: VersionRecord, bump: BumpKind = "patch"
) -> Result[VersionRecord, VersionFileError]:
    """Bump the version and persist it.

    Returns:
        Ok(updated record), or Err when the file cannot be rewritten. A
        VersionFileWriteFailed still carries the updated record.
    """
    new = next_version(record, bump)
    updated = replace(record, current=new, previous=record.current)
    path = record.path

    try:
        content = read_text_exact(path)
    except (OSError, UnicodeDecodeError) as e:
        return Err(VersionFileWriteFailed(path=path, message=f"cannot read: {e}", record=updated))

    if not content.endswith("\n"):
        content += "\n"

    content, count = _VERSION_LINE_RE.subn(lambda m: m.group(1) + new, content, count=1)
    if count == 0:
        return Err(
            MalformedVersionFile(path=path, reason=f"no '{VERSION_KEY}=' line left to update")
        )

    content = _PREVIOUS_LINE_RE.sub(lambda m: m.group(1) + record.current, content, count=1)

    try:
        atomic_write_text(path, content)
    except OSError as e:
        return Err(VersionFileWriteFailed(path=path, message=f"cannot write: {e}", record=updated))

    return Ok(updated)
