"""Error types for planning and executing a step graph.

Planning errors (`UnknownStep`, `CyclicStepGraph`) surface before any step
runs. Step failures are recorded per step in the `PipelineRun`; the run as
a whole fails with `StepsFailed` once cleanup is over.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from relpipe.platform.process import ProcessExecutionError

if TYPE_CHECKING:
    from relpipe.pipeline.run import PipelineRun


@dataclass(frozen=True, slots=True)
class NonZeroExit:
    """A command step ran and exited with a failure code."""

    step: str
    command: tuple[str, ...]
    returncode: int
    stderr: str = ""

    @property
    def message(self) -> str:
        return f"'{self.step}' failed: {self.command[0]} exited with {self.returncode}"


@dataclass(frozen=True, slots=True)
class CommandNotStarted:
    """A command step whose process could not be started."""

    step: str
    error: ProcessExecutionError

    @property
    def message(self) -> str:
        return f"'{self.step}' failed: {self.error}"


@dataclass(frozen=True, slots=True)
class ActionFailed:
    """A closure step returned an error."""

    step: str
    reason: str
    hint: str | None = None

    @property
    def message(self) -> str:
        return f"'{self.step}' failed: {self.reason}"


StepFailure = NonZeroExit | CommandNotStarted | ActionFailed


@dataclass(frozen=True, slots=True)
class UnknownStep:
    """A target or an edge names a step that is not declared."""

    name: str
    referenced_by: str | None = None

    @property
    def message(self) -> str:
        if self.referenced_by is None:
            return f"unknown step: {self.name}"
        return f"step '{self.referenced_by}' references unknown step '{self.name}'"


@dataclass(frozen=True, slots=True)
class CyclicStepGraph:
    """The ordering edges among the selected steps form a cycle.

    `cycle` lists the members in edge order, first name repeated at the end.
    """

    cycle: tuple[str, ...]

    @property
    def message(self) -> str:
        return f"cyclic step graph: {' -> '.join(self.cycle)}"


@dataclass(frozen=True, slots=True)
class StepsFailed:
    """At least one step failed; cleanup has already run."""

    run: PipelineRun

    @property
    def message(self) -> str:
        failed = ", ".join(self.run.failed_steps) or "(none)"
        return f"release pipeline failed at: {failed}"


GraphError = UnknownStep | CyclicStepGraph
