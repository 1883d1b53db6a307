"""
Unit tests for branch points and the input join.
"""

import pytest

from hilm.core.constants import FailureKind, PipelineStatus
from hilm.pipeline.branch import Branch, BranchStep
from hilm.pipeline.context import MessageContext, ProcessedInput, StepResult
from hilm.pipeline.engine import PipelineEngine
from hilm.pipeline.errors import PipelineConfigurationError
from hilm.pipeline.step import PipelineStep
from hilm.pipeline.steps import UnwrapProcessedInputStep

# =============================================================================
# HELPERS
# =============================================================================


class OutputStep(PipelineStep):
    """Writes one branch output under its own name."""

    def __init__(self, name: str):
        self.name = name
        self.calls = 0

    async def execute(self, ctx: MessageContext) -> StepResult:
        started_at = self._now()
        self.calls += 1
        ctx.branch_outputs[self.name] = ProcessedInput(input_type="text", text=self.name)
        return self._success(started_at)


def route(kind_predicates):
    steps = {key: OutputStep(f"{key}_step") for key in kind_predicates}
    branch = BranchStep(
        name="route",
        branches=[Branch(key=k, predicate=p, step=steps[k]) for k, p in kind_predicates.items()],
    )
    return branch, steps


# =============================================================================
# TEST CLASSES
# =============================================================================


class TestBranchExclusivity:
    """Exactly one branch may match."""

    @pytest.mark.asyncio
    async def test_only_matching_branch_runs(self, make_context):
        """The single matching sub-step runs; the others do not."""
        branch, steps = route({
            "voice": lambda ctx: ctx.input_type == "voice",
            "text": lambda ctx: ctx.input_type == "text",
        })
        ctx = make_context()
        ctx.input_type = "text"

        result = await PipelineEngine().run_steps(ctx, [branch, UnwrapProcessedInputStep()])

        assert result.succeeded
        assert steps["text"].calls == 1
        assert steps["voice"].calls == 0
        assert ctx.branch_taken == "text"
        assert ctx.processed_input.text == "text_step"
        assert result.executed_steps == ["text_step", "unwrap_processed_input"]

    @pytest.mark.asyncio
    async def test_no_match_is_a_configuration_error(self, make_context):
        """Zero matches fails the run with the configuration kind."""
        branch, steps = route({"voice": lambda ctx: False, "text": lambda ctx: False})
        after = OutputStep("after")

        result = await PipelineEngine().run_steps(make_context(), [branch, after])

        assert result.status == PipelineStatus.FAILED
        assert result.error_kind == FailureKind.CONFIGURATION
        assert result.failed_step == "route"
        assert after.calls == 0
        assert all(step.calls == 0 for step in steps.values())

    @pytest.mark.asyncio
    async def test_multiple_matches_is_a_configuration_error(self, make_context):
        """Several matches fail loudly instead of picking one."""
        branch, steps = route({"voice": lambda ctx: True, "text": lambda ctx: True})

        result = await PipelineEngine().run_steps(make_context(), [branch])

        assert result.error_kind == FailureKind.CONFIGURATION
        assert all(step.calls == 0 for step in steps.values())

    @pytest.mark.asyncio
    async def test_raising_predicate_returns_structured_failure(self, make_context):
        """A predicate that raises fails the run instead of escaping run_steps."""

        def broken(ctx):
            raise KeyError("input_type")

        branch, steps = route({"voice": broken, "text": lambda ctx: True})
        after = OutputStep("after")

        result = await PipelineEngine().run_steps(make_context(), [branch, after])

        assert result.status == PipelineStatus.FAILED
        assert result.error_kind == FailureKind.CONFIGURATION
        assert result.failed_step == "route"
        assert isinstance(result.exception, KeyError)
        assert "KeyError" in result.error
        assert after.calls == 0
        assert all(step.calls == 0 for step in steps.values())

    def test_duplicate_keys_rejected(self):
        """Branch keys must be unique."""
        with pytest.raises(PipelineConfigurationError):
            BranchStep(
                name="route",
                branches=[
                    Branch(key="text", predicate=lambda ctx: True, step=OutputStep("a")),
                    Branch(key="text", predicate=lambda ctx: False, step=OutputStep("b")),
                ],
            )


class TestJoin:
    """Tests for UnwrapProcessedInputStep."""

    @pytest.mark.asyncio
    async def test_join_without_output_fails(self, make_context):
        """Zero branch outputs is a configuration failure."""
        result = await PipelineEngine().run_steps(make_context(), [UnwrapProcessedInputStep()])

        assert result.failed_step == "unwrap_processed_input"
        assert result.error_kind == FailureKind.CONFIGURATION

    @pytest.mark.asyncio
    async def test_join_with_two_outputs_fails(self, make_context):
        """More than one branch output is a configuration failure."""
        ctx = make_context()
        ctx.branch_outputs["a"] = ProcessedInput(input_type="text", text="a")
        ctx.branch_outputs["b"] = ProcessedInput(input_type="voice", text="b")

        result = await PipelineEngine().run_steps(ctx, [UnwrapProcessedInputStep()])

        assert result.error_kind == FailureKind.CONFIGURATION
        assert ctx.processed_input is None
