"""Step selection, ordering and execution.

Given the requested targets, `StepGraph.plan` computes:

1. the selection: targets plus the transitive closure of `depends_on`;
2. the main order: a topological sort of the selection using `depends_on`
   and `must_run_after` edges between selected steps, ties broken by
   declaration order;
3. the cleanup order: every step reachable through `finalized_by` from the
   selection (with its own dependencies), minus what is already selected,
   sorted the same way.

Both orders are validated before anything runs. `StepGraph.execute` then
runs the main chain, stops at the first failure (remaining steps are
skipped), and runs the cleanup steps whatever happened. A failing cleanup
step does not stop the other cleanup steps.
"""

from __future__ import annotations

import heapq
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from relpipe.core.result import Err, Ok, Result
from relpipe.output.console import ConsoleProtocol, Style
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
from relpipe.pipeline.run import PipelineRun
from relpipe.pipeline.step import Step
from relpipe.platform.process import ProcessRunner

__all__ = ["ExecutionPlan", "StepGraph"]

_ABORTED = "aborted after an earlier failure"


@dataclass(frozen=True, slots=True)
class ExecutionPlan:
    targets: tuple[str, ...]
    order: tuple[str, ...]
    cleanup: tuple[str, ...]


class StepGraph:
    """A fixed set of steps, keyed by name, in declaration order."""

    def __init__(self, steps: Iterable[Step]) -> None:
        self._steps: dict[str, Step] = {}
        for step in steps:
            if step.name in self._steps:
                raise ValueError(f"Duplicate step name: {step.name}")
            self._steps[step.name] = step
        self._index = {name: i for i, name in enumerate(self._steps)}

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._steps)

    def __contains__(self, name: object) -> bool:
        return name in self._steps

    def step(self, name: str) -> Step:
        return self._steps[name]

    def select(self, targets: Sequence[str]) -> Result[tuple[str, ...], UnknownStep]:
        """Targets plus everything they depend on, in declaration order."""
        closure = self._closure(targets, follow_finalizers=False)
        if isinstance(closure, Err):
            return closure
        return Ok(self._sorted(closure.value))

    def order(self, names: Iterable[str]) -> Result[tuple[str, ...], GraphError]:
        """Topologically sort `names` using ordering edges among them."""
        selected = set(names)
        for name in selected:
            if name not in self._steps:
                return Err(UnknownStep(name))

        preds: dict[str, set[str]] = {
            n: {p for p in self._steps[n].ordering_edges if p in selected} for n in selected
        }
        succs: dict[str, set[str]] = {n: set() for n in selected}
        for n, ps in preds.items():
            for p in ps:
                succs[p].add(n)

        indeg = {n: len(ps) for n, ps in preds.items()}
        ready = [(self._index[n], n) for n, d in indeg.items() if d == 0]
        heapq.heapify(ready)

        out: list[str] = []
        while ready:
            _, node = heapq.heappop(ready)
            out.append(node)
            for child in succs[node]:
                indeg[child] -= 1
                if indeg[child] == 0:
                    heapq.heappush(ready, (self._index[child], child))

        if len(out) != len(selected):
            remaining = selected.difference(out)
            return Err(CyclicStepGraph(cycle=self._find_cycle(remaining, preds)))

        return Ok(tuple(out))

    def plan(self, targets: Sequence[str]) -> Result[ExecutionPlan, GraphError]:
        selection = self.select(targets)
        if isinstance(selection, Err):
            return selection

        main = self.order(selection.value)
        if isinstance(main, Err):
            return main

        roots = [f for name in main.value for f in self._steps[name].finalized_by]
        finalizers = self._closure(roots, follow_finalizers=True)
        if isinstance(finalizers, Err):
            return finalizers

        cleanup = self.order(finalizers.value.difference(main.value))
        if isinstance(cleanup, Err):
            return cleanup

        return Ok(ExecutionPlan(targets=tuple(targets), order=main.value, cleanup=cleanup.value))

    def execute(
        self,
        plan: ExecutionPlan,
        runner: ProcessRunner,
        console: ConsoleProtocol,
    ) -> Result[PipelineRun, StepsFailed]:
        run = PipelineRun(
            mode="dry_run" if runner.simulate else "normal",
            order=plan.order,
            cleanup=plan.cleanup,
        )

        for name in plan.order:
            if run.failed:
                run.mark_skipped(name, _ABORTED)
                continue
            self._run_step(self._steps[name], run, runner, console)

        if plan.cleanup:
            console.header("Cleanup")
        for name in plan.cleanup:
            self._run_step(self._steps[name], run, runner, console)

        if run.failed:
            return Err(StepsFailed(run))
        return Ok(run)

    def run(
        self,
        targets: Sequence[str],
        runner: ProcessRunner,
        console: ConsoleProtocol,
    ) -> Result[PipelineRun, GraphError | StepsFailed]:
        plan = self.plan(targets)
        if isinstance(plan, Err):
            return plan
        return self.execute(plan.value, runner, console)

    def _run_step(
        self,
        step: Step,
        run: PipelineRun,
        runner: ProcessRunner,
        console: ConsoleProtocol,
    ) -> None:
        if step.run_if is not None and not step.run_if(run):
            run.mark_skipped(step.name, step.skip_reason)
            console.print(f"- {step.name} skipped: {step.skip_reason}", Style.DIM)
            return

        console.step(step.name, step.description)
        failure = self._perform(step, runner)
        if failure is None:
            run.mark_succeeded(step.name)
            return

        run.mark_failed(step.name, failure)
        console.error(failure.message)

    def _perform(self, step: Step, runner: ProcessRunner) -> StepFailure | None:
        if step.command is not None:
            cwd = runner.cwd / Path(step.cwd) if step.cwd else None
            result = runner.run(
                step.command,
                step.description or step.name,
                cwd=cwd,
                timeout=step.timeout,
            )
            if isinstance(result, Err):
                return CommandNotStarted(step=step.name, error=result.error)
            if not result.value.ok:
                return NonZeroExit(
                    step=step.name,
                    command=result.value.command,
                    returncode=result.value.returncode,
                    stderr=result.value.stderr.strip(),
                )
            return None

        if step.action is not None:
            outcome = step.action(runner)
            if isinstance(outcome, Err):
                return ActionFailed(step=step.name, reason=outcome.error.message, hint=outcome.error.hint)
            return None

        return None

    def _closure(self, roots: Iterable[str], *, follow_finalizers: bool) -> Result[set[str], UnknownStep]:
        seen: set[str] = set()
        stack = list(roots)
        while stack:
            name = stack.pop()
            if name in seen:
                continue
            step = self._steps.get(name)
            if step is None:
                return Err(UnknownStep(name))
            for ref in (*step.depends_on, *step.must_run_after, *step.finalized_by):
                if ref not in self._steps:
                    return Err(UnknownStep(ref, referenced_by=name))
            seen.add(name)
            stack.extend(step.depends_on)
            if follow_finalizers:
                stack.extend(step.finalized_by)
        return Ok(seen)

    def _sorted(self, names: Iterable[str]) -> tuple[str, ...]:
        return tuple(sorted(names, key=self._index.__getitem__))

    def _find_cycle(self, remaining: set[str], preds: dict[str, set[str]]) -> tuple[str, ...]:
        # Every node left over by the sort has a predecessor that is also left
        # over, so walking predecessors must revisit a node.
        path: list[str] = []
        position: dict[str, int] = {}
        node = min(remaining, key=self._index.__getitem__)
        while node not in position:
            position[node] = len(path)
            path.append(node)
            node = min((p for p in preds[node] if p in remaining), key=self._index.__getitem__)
        cycle = path[position[node] :]
        cycle.reverse()
        return (*cycle, cycle[0])
