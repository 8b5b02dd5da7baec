from __future__ import annotations

from collections.abc import Sequence

from relpipe.core.config import PublishModule
from relpipe.pipeline.step import Step

PUBLISH_ARTIFACTS = "publishArtifacts"


def publish_step_name(module: PublishModule) -> str:
    return f"publish:{module.name}"


def publish_steps(modules: Sequence[PublishModule], *, after: Sequence[str]) -> tuple[Step, ...]:
    """One command step per module, then the `publishArtifacts` aggregate.

    With no modules configured the aggregate is still declared and does
    nothing, so `performRelease` keeps the same shape.
    """
    per_module = tuple(
        Step(
            name=publish_step_name(module),
            description=f"Publish {module.name}",
            command=module.command,
            cwd=None if module.cwd in ("", ".") else module.cwd,
            must_run_after=tuple(after),
        )
        for module in modules
    )
    aggregate = Step(
        name=PUBLISH_ARTIFACTS,
        description="Publish all artifacts",
        depends_on=tuple(s.name for s in per_module),
        must_run_after=tuple(after),
    )
    return (*per_module, aggregate)
