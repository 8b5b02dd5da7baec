"""Release step graph: steps, ordering, execution, run state."""

from relpipe.pipeline.errors import (
    ActionFailed,
    CommandNotStarted,
    CyclicStepGraph,
    GraphError,
    NonZeroExit,
    StepFailure,
    StepsFailed,
    UnknownStep,
)
from relpipe.pipeline.graph import ExecutionPlan, StepGraph
from relpipe.pipeline.run import PipelineRun, RunMode, StepOutcome
from relpipe.pipeline.step import ActionError, RunGuard, Step, StepAction

__all__ = [
    # errors
    "ActionFailed",
    "CommandNotStarted",
    "CyclicStepGraph",
    "GraphError",
    "NonZeroExit",
    "StepFailure",
    "StepsFailed",
    "UnknownStep",
    # graph
    "ExecutionPlan",
    "StepGraph",
    # run
    "PipelineRun",
    "RunMode",
    "StepOutcome",
    # step
    "ActionError",
    "RunGuard",
    "Step",
    "StepAction",
]
