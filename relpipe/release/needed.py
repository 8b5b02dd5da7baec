from __future__ import annotations

import re

from relpipe.core.result import Err, Ok, Result
from relpipe.release.errors import ReleaseNotNeeded

SKIP_RELEASE_ENV = "SKIP_RELEASE"
SKIP_RELEASE_TOKEN = "[ci skip-release]"


def assert_release_needed(
    *,
    branch: str | None,
    commit_message: str,
    releasable_branch_regex: str,
    skip_requested: bool = False,
) -> Result[None, ReleaseNotNeeded]:
    """Check that the current state should produce a release.

    Not needed when the SKIP_RELEASE environment variable is set, when the
    HEAD commit message carries `[ci skip-release]`, or when the branch does
    not match the releasable-branch pattern. A detached HEAD is never
    releasable.
    """
    if skip_requested:
        return Err(ReleaseNotNeeded(reason=f"{SKIP_RELEASE_ENV} environment variable is set"))

    if SKIP_RELEASE_TOKEN in commit_message:
        return Err(ReleaseNotNeeded(reason=f"commit message contains '{SKIP_RELEASE_TOKEN}'"))

    if branch is None:
        return Err(ReleaseNotNeeded(reason="HEAD is detached (no branch)"))

    if re.fullmatch(releasable_branch_regex, branch) is None:
        return Err(
            ReleaseNotNeeded(
                reason=f"branch '{branch}' does not match releasable pattern '{releasable_branch_regex}'"
            )
        )

    return Ok(None)
