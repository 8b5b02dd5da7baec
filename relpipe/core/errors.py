"""Error codes for CLI exit status.

Every command maps its failure to one of these codes so that CI jobs can
tell "nothing to release" apart from "the release broke".
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable:
    - 0: Success
    - 1: User error (bad config, unknown step, cyclic step graph)
    - 2: Environment error (missing git, not a repository)
    - 3: Release error (a pipeline step failed)
    - 4: Network error (GitHub API unreachable)
    - 5: I/O error (version file unreadable or malformed)
    - 6: Release not needed (branch or commit says skip)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    RELEASE_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5
    RELEASE_NOT_NEEDED = 6

    def __str__(self) -> str:
        """Return human-readable name."""
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        """Check if this code indicates success."""
        return self == ErrorCode.OK

    @property
    def is_error(self) -> bool:
        """Check if this code indicates an error."""
        return self != ErrorCode.OK
