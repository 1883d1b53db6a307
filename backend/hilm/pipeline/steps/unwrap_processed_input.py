"""
UnwrapProcessedInputStep — join after the input branch point.

Exactly one branch must have produced output; zero or several means the
step list or executor is broken, so the run fails as a configuration error.
"""

from __future__ import annotations

from hilm.pipeline.context import MessageContext, StepResult
from hilm.pipeline.errors import BranchJoinError
from hilm.pipeline.step import PipelineStep


class UnwrapProcessedInputStep(PipelineStep):
    name = "unwrap_processed_input"
    description = "Join input branch output"

    async def execute(self, ctx: MessageContext) -> StepResult:
        started_at = self._now()
        outputs = ctx.branch_outputs

        if len(outputs) != 1:
            raise BranchJoinError(
                f"Expected exactly one branch output, found {len(outputs)}",
                execution_id=ctx.execution_id,
                step_name=self.name,
                details={"branches": sorted(outputs)},
            )

        (source, processed), = outputs.items()
        ctx.processed_input = processed
        return self._success(started_at, {"source": source})
