from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from relpipe.core.result import Result

if TYPE_CHECKING:
    from relpipe.pipeline.run import PipelineRun
    from relpipe.platform.process import ProcessRunner


@dataclass(frozen=True, slots=True)
class ActionError:
    """Failure reported by a closure step."""

    message: str
    hint: str | None = None


StepAction = Callable[["ProcessRunner"], Result[None, ActionError]]
RunGuard = Callable[["PipelineRun"], bool]


@dataclass(frozen=True, slots=True)
class Step:
    """A named unit of work in the release graph.

    A step does one of three things: runs `command` through the runner,
    calls `action` with the runner, or (neither set) nothing at all, which
    makes it a lifecycle step that only groups dependencies.

    Edges:
        depends_on: steps pulled into the selection and run before this one.
        must_run_after: ordering only; never pulls a step in.
        finalized_by: cleanup steps that run once the main chain is over,
            whatever its outcome.

    `run_if` is checked right before the step would run; when it returns
    False the step is skipped with `skip_reason`.
    """

    name: str
    description: str = ""
    command: tuple[str, ...] | None = None
    action: StepAction | None = None
    cwd: str | None = None
    timeout: float | None = None
    depends_on: tuple[str, ...] = ()
    must_run_after: tuple[str, ...] = ()
    finalized_by: tuple[str, ...] = ()
    run_if: RunGuard | None = None
    skip_reason: str = "not needed for this run"

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("step name must not be empty")
        if self.command is not None and self.action is not None:
            raise ValueError(f"step '{self.name}' has both a command and an action")
        if self.command is not None and not self.command:
            raise ValueError(f"step '{self.name}' has an empty command")

    @property
    def is_lifecycle(self) -> bool:
        return self.command is None and self.action is None

    @property
    def ordering_edges(self) -> tuple[str, ...]:
        """Predecessors that constrain order (finalizers excluded)."""
        return self.depends_on + self.must_run_after
