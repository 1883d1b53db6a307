"""
Branch points.

A BranchStep holds tagged (key, predicate, step) entries. All predicates
are evaluated once against the context; exactly one must match, and its
key is recorded as the run's branch outcome. The chosen sub-step writes
its output into ``ctx.branch_outputs`` for a later join step.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from hilm.pipeline.context import MessageContext, StepResult
from hilm.pipeline.errors import BranchResolutionError, PipelineConfigurationError
from hilm.pipeline.step import PipelineStep


@dataclass(frozen=True)
class Branch:
    key: str
    predicate: Callable[[MessageContext], bool]
    step: PipelineStep


class BranchStep(PipelineStep):
    """Selects exactly one sub-step based on the current context."""

    def __init__(self, name: str, branches: list[Branch], description: str = "Branch point") -> None:
        keys = [b.key for b in branches]
        if len(set(keys)) != len(keys):
            raise PipelineConfigurationError(
                f"Branch point '{name}' has duplicate keys",
                step_name=name,
                details={"keys": keys},
            )
        self.name = name
        self.description = description
        self.branches = branches

    def resolve(self, ctx: MessageContext) -> PipelineStep:
        matched = [b for b in self.branches if b.predicate(ctx)]
        if len(matched) != 1:
            raise BranchResolutionError(
                f"Branch point '{self.name}' matched {len(matched)} branches, expected exactly one",
                execution_id=ctx.execution_id,
                step_name=self.name,
                details={"matched": [b.key for b in matched]},
            )
        ctx.branch_taken = matched[0].key
        return matched[0].step

    async def execute(self, ctx: MessageContext) -> StepResult:
        raise PipelineConfigurationError(
            f"Branch point '{self.name}' must be resolved before execution",
            execution_id=ctx.execution_id,
            step_name=self.name,
        )
