"""Version state: parsing, bumping, and the persisted version file."""

from relpipe.version.semver import BUMP_KINDS, BumpKind, Version, parse_version
from relpipe.version.store import (
    MalformedVersionFile,
    VersionFileError,
    VersionFileWriteFailed,
    VersionRecord,
    increment_version,
    is_notable_version,
    load_version_file,
    next_version,
    parse_notable_versions,
)

__all__ = [
    # semver
    "BUMP_KINDS",
    "BumpKind",
    "Version",
    "parse_version",
    # store
    "MalformedVersionFile",
    "VersionFileError",
    "VersionFileWriteFailed",
    "VersionRecord",
    "increment_version",
    "is_notable_version",
    "load_version_file",
    "next_version",
    "parse_notable_versions",
]
