from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from relpipe.pipeline.errors import StepFailure

RunMode = Literal["normal", "dry_run"]
StepOutcome = Literal["pending", "succeeded", "failed", "skipped"]


def _empty_failures() -> dict[str, StepFailure]:
    return {}


@dataclass
class PipelineRun:
    """State of one execution of a step graph.

    Created fresh per invocation and discarded afterwards. `order` is the
    main chain, `cleanup` the finalizer steps run after it. `executed`
    lists the steps that were actually attempted, in attempt order.
    """

    mode: RunMode
    order: tuple[str, ...]
    cleanup: tuple[str, ...] = ()
    outcomes: dict[str, StepOutcome] = field(default_factory=dict)
    failures: dict[str, StepFailure] = field(default_factory=_empty_failures)
    skip_reasons: dict[str, str] = field(default_factory=dict)
    executed: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        for name in (*self.order, *self.cleanup):
            self.outcomes.setdefault(name, "pending")

    @property
    def dry_run(self) -> bool:
        return self.mode == "dry_run"

    @property
    def failed(self) -> bool:
        return bool(self.failures)

    @property
    def failed_steps(self) -> list[str]:
        return [name for name in self.executed if name in self.failures]

    @property
    def selected(self) -> tuple[str, ...]:
        return self.order + self.cleanup

    @property
    def cleanup_actions(self) -> list[str]:
        """Cleanup steps that were attempted."""
        cleanup = set(self.cleanup)
        return [name for name in self.executed if name in cleanup]

    def outcome(self, name: str) -> StepOutcome | None:
        return self.outcomes.get(name)

    def attempted(self, name: str) -> bool:
        """True if the step ran, whether it succeeded or failed."""
        return self.outcomes.get(name) in ("succeeded", "failed")

    def mark_succeeded(self, name: str) -> None:
        self.executed.append(name)
        self.outcomes[name] = "succeeded"

    def mark_failed(self, name: str, failure: StepFailure) -> None:
        self.executed.append(name)
        self.outcomes[name] = "failed"
        self.failures[name] = failure

    def mark_skipped(self, name: str, reason: str) -> None:
        self.outcomes[name] = "skipped"
        self.skip_reasons[name] = reason
