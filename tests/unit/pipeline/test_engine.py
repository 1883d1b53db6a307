"""
Unit tests for PipelineEngine.

Covers ordering, failure semantics and step-listener isolation.
"""

import asyncio

import pytest

from hilm.core.constants import FailureKind, PipelineStatus
from hilm.pipeline.context import MessageContext, StepResult
from hilm.pipeline.engine import PipelineEngine
from hilm.pipeline.errors import StepExecutionError
from hilm.pipeline.step import PipelineStep

# =============================================================================
# HELPERS
# =============================================================================


class RecordingStep(PipelineStep):
    """Appends its name to a shared trace list and optionally fails."""

    def __init__(
        self,
        name: str,
        fail_with: Exception | None = None,
        return_failure: bool = False,
        trace: list[str] | None = None,
    ):
        self.name = name
        self.description = f"Recording step {name}"
        self.fail_with = fail_with
        self.return_failure = return_failure
        self.calls = 0
        self.trace = trace if trace is not None else []

    async def execute(self, ctx: MessageContext) -> StepResult:
        started_at = self._now()
        self.calls += 1
        self.trace.append(self.name)
        if self.fail_with is not None:
            raise self.fail_with
        if self.return_failure:
            return self._failure(started_at, "returned failure")
        return self._success(started_at)


@pytest.fixture
def engine():
    return PipelineEngine()


# =============================================================================
# TEST CLASSES
# =============================================================================


class TestRunSteps:
    """Tests for sequential execution."""

    @pytest.mark.asyncio
    async def test_runs_steps_in_order(self, engine, make_context):
        """Should execute every step once, in list order, and succeed."""
        ctx = make_context()
        trace = []
        steps = [RecordingStep(name, trace=trace) for name in ("a", "b", "c")]

        result = await engine.run_steps(ctx, steps)

        assert result.status == PipelineStatus.SUCCESS
        assert result.succeeded
        assert trace == ["a", "b", "c"]
        assert result.executed_steps == ["a", "b", "c"]
        assert result.steps_completed == 3
        assert result.failed_step is None

    @pytest.mark.asyncio
    async def test_raising_step_stops_the_run(self, engine, make_context):
        """A raising step fails the run and later steps never execute."""
        ctx = make_context()
        boom = StepExecutionError("transform failed")
        trace = []
        later = RecordingStep("c", trace=trace)
        steps = [RecordingStep("a", trace=trace), RecordingStep("b", fail_with=boom, trace=trace), later]

        result = await engine.run_steps(ctx, steps)

        assert result.status == PipelineStatus.FAILED
        assert result.failed_step == "b"
        assert result.error_kind == FailureKind.STEP_FAILED
        assert result.error == "transform failed"
        assert result.exception is boom
        assert later.calls == 0
        assert trace == ["a", "b"]

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_returned_not_raised(self, engine, make_context):
        """Any exception type becomes a structured failure."""
        ctx = make_context()

        result = await engine.run_steps(ctx, [RecordingStep("a", fail_with=KeyError("missing"))])

        assert result.status == PipelineStatus.FAILED
        assert isinstance(result.exception, KeyError)
        assert ctx.errors

    @pytest.mark.asyncio
    async def test_returned_failure_stops_the_run(self, engine, make_context):
        """A step returning a FAILED StepResult also stops the run."""
        ctx = make_context()
        later = RecordingStep("b")

        result = await engine.run_steps(ctx, [RecordingStep("a", return_failure=True), later])

        assert result.failed_step == "a"
        assert result.error == "returned failure"
        assert later.calls == 0

    @pytest.mark.asyncio
    async def test_no_automatic_retry(self, engine, make_context):
        """A failing step is attempted exactly once."""
        step = RecordingStep("a", fail_with=StepExecutionError("nope"))

        await engine.run_steps(make_context(), [step])

        assert step.calls == 1


class TestStepListener:
    """Tests for step-transition notifications."""

    @pytest.mark.asyncio
    async def test_listener_sees_each_step_before_it_runs(self, engine, make_context):
        """The listener is called with the step id before the step executes."""
        ctx = make_context()
        seen = []
        trace = []

        def listener(step_name):
            seen.append((step_name, list(trace)))

        steps = [RecordingStep("a", trace=trace), RecordingStep("b", trace=trace)]

        await engine.run_steps(ctx, steps, listener=listener)

        assert seen == [("a", []), ("b", ["a"])]

    @pytest.mark.asyncio
    async def test_raising_listener_does_not_fail_the_run(self, engine, make_context):
        """A listener exception is swallowed."""

        def listener(step_name):
            raise RuntimeError("subscriber broke")

        result = await engine.run_steps(make_context(), [RecordingStep("a")], listener=listener)

        assert result.succeeded

    @pytest.mark.asyncio
    async def test_slow_async_listener_does_not_block(self, engine, make_context):
        """An awaitable returned by the listener is scheduled, never awaited."""
        release = asyncio.Event()
        started = []

        async def slow_listener(step_name):
            started.append(step_name)
            await release.wait()

        result = await asyncio.wait_for(
            engine.run_steps(make_context(), [RecordingStep("a"), RecordingStep("b")], listener=slow_listener),
            timeout=1,
        )

        assert result.succeeded
        release.set()
        await asyncio.sleep(0)

    @pytest.mark.asyncio
    async def test_failing_async_listener_is_contained(self, engine, make_context):
        """Exceptions inside scheduled listener coroutines never surface."""

        async def failing_listener(step_name):
            raise RuntimeError("async subscriber broke")

        result = await engine.run_steps(make_context(), [RecordingStep("a")], listener=failing_listener)
        await asyncio.sleep(0)

        assert result.succeeded
