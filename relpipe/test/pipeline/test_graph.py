"""Tests for relpipe.pipeline.graph: selection, ordering, execution, cleanup."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from relpipe.core.result import Err, Ok, Result
from relpipe.output.console import MockConsole
from relpipe.pipeline.errors import (
    ActionFailed,
    CommandNotStarted,
    CyclicStepGraph,
    NonZeroExit,
    StepsFailed,
    UnknownStep,
)
from relpipe.pipeline.graph import StepGraph
from relpipe.pipeline.run import PipelineRun
from relpipe.pipeline.step import ActionError, Step, StepAction
from relpipe.platform.process import ProcessRunner


class Recorder:
    """Builds closure actions that record their invocation."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def action(self, name: str, *, fail: bool = False) -> StepAction:
        def act(_runner: ProcessRunner) -> Result[None, ActionError]:
            self.calls.append(name)
            if fail:
                return Err(ActionError(f"{name} broke", hint="look closer"))
            return Ok(None)

        return act


def _scenario(rec: Recorder, *, fail_b: bool = False) -> StepGraph:
    return StepGraph(
        [
            Step(name="A", action=rec.action("A"), finalized_by=("Z",)),
            Step(name="B", action=rec.action("B", fail=fail_b), depends_on=("A",)),
            Step(name="C", action=rec.action("C"), must_run_after=("B",)),
            Step(name="Z", action=rec.action("Z")),
        ]
    )


@pytest.fixture
def runner(tmp_path: Path) -> ProcessRunner:
    return ProcessRunner(tmp_path)


class TestConstruction:
    def test_duplicate_names(self) -> None:
        with pytest.raises(ValueError, match="Duplicate step name: a"):
            StepGraph([Step(name="a"), Step(name="a")])

    def test_names_in_declaration_order(self) -> None:
        graph = StepGraph([Step(name="b"), Step(name="a")])
        assert graph.names == ("b", "a")
        assert "a" in graph
        assert "x" not in graph


class TestSelect:
    def test_depends_on_closure(self) -> None:
        graph = StepGraph(
            [Step(name="a"), Step(name="b", depends_on=("a",)), Step(name="c", depends_on=("b",))]
        )
        assert graph.select(["c"]) == Ok(("a", "b", "c"))

    def test_must_run_after_does_not_pull_in(self) -> None:
        graph = _scenario(Recorder())
        assert graph.select(["C"]) == Ok(("C",))

    def test_unknown_target(self) -> None:
        graph = StepGraph([Step(name="a")])
        assert graph.select(["nope"]) == Err(UnknownStep("nope"))

    def test_unknown_edge(self) -> None:
        graph = StepGraph([Step(name="a", must_run_after=("ghost",))])
        result = graph.select(["a"])
        assert result == Err(UnknownStep("ghost", referenced_by="a"))
        assert isinstance(result, Err)
        assert result.error.message == "step 'a' references unknown step 'ghost'"


class TestOrder:
    def test_scenario_order(self) -> None:
        graph = _scenario(Recorder())
        plan = graph.plan(["C", "B", "A"])
        assert isinstance(plan, Ok)
        assert plan.value.order == ("A", "B", "C")
        assert plan.value.cleanup == ("Z",)

    def test_ties_follow_declaration_order(self) -> None:
        graph = StepGraph([Step(name="x"), Step(name="y"), Step(name="w", must_run_after=("y",))])
        assert graph.order(["w", "y", "x"]) == Ok(("x", "y", "w"))

    def test_edges_reorder_against_declaration(self) -> None:
        graph = StepGraph([Step(name="late", must_run_after=("early",)), Step(name="early")])
        assert graph.order(["late", "early"]) == Ok(("early", "late"))

    def test_cycle_detected(self) -> None:
        graph = StepGraph(
            [
                Step(name="x", must_run_after=("y",)),
                Step(name="y", depends_on=("x",)),
                Step(name="free"),
            ]
        )
        result = graph.order(["x", "y", "free"])
        assert isinstance(result, Err)
        assert isinstance(result.error, CyclicStepGraph)
        cycle = result.error.cycle
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"x", "y"}
        assert "cyclic step graph" in result.error.message

    def test_cycle_outside_selection_is_ignored(self) -> None:
        graph = StepGraph(
            [Step(name="x", must_run_after=("y",)), Step(name="y", must_run_after=("x",))]
        )
        assert graph.order(["x"]) == Ok(("x",))

    def test_finalizers_do_not_form_cycles(self) -> None:
        graph = StepGraph(
            [Step(name="a", finalized_by=("z",)), Step(name="z", must_run_after=("a",))]
        )
        plan = graph.plan(["a"])
        assert isinstance(plan, Ok)
        assert plan.value.order == ("a",)
        assert plan.value.cleanup == ("z",)


class TestExecute:
    def test_scenario_success(self, runner: ProcessRunner) -> None:
        rec = Recorder()
        result = _scenario(rec).run(["C", "B", "A"], runner, MockConsole())

        assert isinstance(result, Ok)
        assert result.value.executed == ["A", "B", "C", "Z"]
        assert rec.calls == ["A", "B", "C", "Z"]

    def test_scenario_failure(self, runner: ProcessRunner) -> None:
        rec = Recorder()
        console = MockConsole()

        result = _scenario(rec, fail_b=True).run(["C", "B", "A"], runner, console)

        assert isinstance(result, Err)
        assert isinstance(result.error, StepsFailed)
        run = result.error.run
        assert run.executed == ["A", "B", "Z"]
        assert run.outcome("C") == "skipped"
        assert run.failed_steps == ["B"]
        assert run.failures["B"] == ActionFailed(step="B", reason="B broke", hint="look closer")
        assert console.has_error()
        assert console.steps == ["A", "B", "Z"]

    def test_must_run_after_unselected_step_still_runs(self, runner: ProcessRunner) -> None:
        rec = Recorder()
        result = _scenario(rec).run(["C"], runner, MockConsole())

        assert isinstance(result, Ok)
        assert rec.calls == ["C"]

    def test_cleanup_continues_after_cleanup_failure(self, runner: ProcessRunner) -> None:
        rec = Recorder()
        graph = StepGraph(
            [
                Step(name="main", action=rec.action("main"), finalized_by=("z1", "z2")),
                Step(name="z1", action=rec.action("z1", fail=True)),
                Step(name="z2", action=rec.action("z2")),
            ]
        )

        result = graph.run(["main"], runner, MockConsole())

        assert isinstance(result, Err)
        assert rec.calls == ["main", "z1", "z2"]
        assert isinstance(result.error, StepsFailed)
        assert result.error.run.failed_steps == ["z1"]
        assert result.error.message == "release pipeline failed at: z1"

    def test_run_if_false_skips(self, runner: ProcessRunner) -> None:
        rec = Recorder()

        def only_on_failure(run: PipelineRun) -> bool:
            return run.failed

        graph = StepGraph(
            [
                Step(name="main", action=rec.action("main"), finalized_by=("undo",)),
                Step(
                    name="undo",
                    action=rec.action("undo"),
                    run_if=only_on_failure,
                    skip_reason="nothing to undo",
                ),
            ]
        )
        console = MockConsole()

        result = graph.run(["main"], runner, console)

        assert isinstance(result, Ok)
        assert rec.calls == ["main"]
        assert result.value.outcome("undo") == "skipped"
        assert result.value.skip_reasons["undo"] == "nothing to undo"
        assert result.value.cleanup_actions == []
        assert console.find("undo skipped: nothing to undo")

    def test_planning_error_runs_nothing(self, runner: ProcessRunner) -> None:
        rec = Recorder()
        graph = StepGraph(
            [
                Step(name="a", action=rec.action("a"), finalized_by=("missing",)),
            ]
        )

        result = graph.run(["a"], runner, MockConsole())

        assert result == Err(UnknownStep("missing", referenced_by="a"))
        assert rec.calls == []

    def test_lifecycle_step_succeeds(self, runner: ProcessRunner) -> None:
        graph = StepGraph([Step(name="all")])
        result = graph.run(["all"], runner, MockConsole())
        assert isinstance(result, Ok)
        assert result.value.outcome("all") == "succeeded"


class TestCommandSteps:
    def test_non_zero_exit(self, runner: ProcessRunner) -> None:
        graph = StepGraph(
            [
                Step(
                    name="boom",
                    command=(sys.executable, "-c", "import sys; sys.stderr.write('nope'); sys.exit(2)"),
                )
            ]
        )

        result = graph.run(["boom"], runner, MockConsole())

        assert isinstance(result, Err)
        assert isinstance(result.error, StepsFailed)
        failure = result.error.run.failures["boom"]
        assert isinstance(failure, NonZeroExit)
        assert failure.returncode == 2
        assert failure.stderr == "nope"

    def test_command_not_started(self, runner: ProcessRunner) -> None:
        graph = StepGraph([Step(name="missing", command=("nonexistent_command_12345",))])

        result = graph.run(["missing"], runner, MockConsole())

        assert isinstance(result, Err)
        assert isinstance(result.error, StepsFailed)
        assert isinstance(result.error.run.failures["missing"], CommandNotStarted)

    def test_cwd_is_relative_to_runner(self, tmp_path: Path, runner: ProcessRunner) -> None:
        (tmp_path / "pkg").mkdir()
        (tmp_path / "pkg" / "marker").write_text("")
        graph = StepGraph(
            [
                Step(
                    name="check",
                    command=(sys.executable, "-c", "import os, sys; sys.exit(0 if os.path.exists('marker') else 1)"),
                    cwd="pkg",
                )
            ]
        )

        assert isinstance(graph.run(["check"], runner, MockConsole()), Ok)

    def test_dry_run_marks_mode(self, runner: ProcessRunner) -> None:
        graph = StepGraph([Step(name="push", command=("nonexistent_command_12345",))])

        result = graph.run(["push"], runner.simulated(), MockConsole())

        assert isinstance(result, Ok)
        assert result.value.dry_run
        assert result.value.mode == "dry_run"
