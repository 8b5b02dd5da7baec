from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True, slots=True)
class ReleaseError:
    kind: Literal[
        "git_failed",
        "invalid_input",
        "notes_failed",
        "contributors_failed",
    ]
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class ReleaseNotNeeded:
    """The branch or HEAD commit says there is nothing to release."""

    reason: str

    @property
    def message(self) -> str:
        return f"release not needed: {self.reason}"
