"""
PipelineEngine — runs steps sequentially against a MessageContext.

Responsibilities:
    - Resolve branch points (exactly one sub-step per branch)
    - Notify the run's step listener before each step, fire-and-forget
    - Execute each step with timing, logging, and error handling
    - Stop at the first failure and return a structured PipelineResult

There is no retry at this layer; steps that need one own it.
"""

from __future__ import annotations

import asyncio
import inspect
import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

import structlog

from hilm.core.constants import FailureKind, PipelineStatus, StepStatus
from hilm.pipeline.context import MessageContext, StepResult
from hilm.pipeline.errors import PipelineConfigurationError
from hilm.pipeline.step import PipelineStep

# Receives the id of the step about to run. Called inline on the event
# loop, so a sync listener must only hand work off (e.g. create a task)
# and never block. A returned awaitable is scheduled, never awaited.
StepListener = Callable[[str], Any]


@dataclass
class PipelineResult:
    """Final outcome of a pipeline run."""

    execution_id: str
    status: str                     # PipelineStatus value
    started_at: datetime | None = None
    completed_at: datetime | None = None
    total_duration_ms: int = 0
    steps_completed: int = 0
    total_steps: int = 0
    executed_steps: list[str] = field(default_factory=list)
    step_results: list[dict[str, Any]] = field(default_factory=list)
    context_summary: dict[str, Any] = field(default_factory=dict)
    failed_step: str | None = None
    error_kind: str | None = None   # FailureKind value
    error: str | None = None
    exception: BaseException | None = field(default=None, repr=False)

    @property
    def succeeded(self) -> bool:
        return self.status == PipelineStatus.SUCCESS


class PipelineEngine:
    """
    Runs a sequence of PipelineStep objects against a MessageContext.

    Usage::

        engine = PipelineEngine()
        result = await engine.run_steps(ctx, steps, listener=progress_for_step)
        if not result.succeeded:
            ...
    """

    def __init__(self) -> None:
        self.logger = structlog.get_logger("pipeline.engine")
        self._listener_tasks: set[asyncio.Task] = set()

    async def run_steps(
        self,
        ctx: MessageContext,
        steps: list[PipelineStep],
        listener: StepListener | None = None,
    ) -> PipelineResult:
        """Execute an ordered list of steps against a context."""
        started_at = datetime.now(timezone.utc)

        log = self.logger.bind(
            execution_id=ctx.execution_id,
            user_id=ctx.user_id,
            total_steps=len(steps),
        )
        log.info("Pipeline started")

        pipeline_status = PipelineStatus.RUNNING
        steps_completed = 0
        failed_step: str | None = None
        error_kind: FailureKind | None = None
        error: str | None = None
        exception: BaseException | None = None

        for index, position in enumerate(steps):
            # ── Resolve branch points ─────────────────
            try:
                step = position.resolve(ctx)
            except PipelineConfigurationError as exc:
                log.error(
                    "Branch resolution failed",
                    step_name=position.name,
                    error=str(exc),
                    details=exc.details,
                )
                pipeline_status = PipelineStatus.FAILED
                failed_step, error_kind, error, exception = (
                    position.name, FailureKind.CONFIGURATION, str(exc), exc,
                )
                break
            except Exception as exc:
                # A raising predicate is a wiring defect, same as no match.
                log.error(
                    "Branch predicate raised",
                    step_name=position.name,
                    error=str(exc),
                    error_type=type(exc).__name__,
                    exc_info=True,
                )
                pipeline_status = PipelineStatus.FAILED
                failed_step, error_kind, error, exception = (
                    position.name,
                    FailureKind.CONFIGURATION,
                    f"{type(exc).__name__}: {exc}",
                    exc,
                )
                break

            step_log = log.bind(step_name=step.name, step_index=index + 1)

            self._notify(listener, step.name, step_log)
            ctx.executed_steps.append(step.name)
            step_log.debug(f"Step {index + 1}/{len(steps)}: {step.description}")

            # ── Execute step ──────────────────────────
            started = datetime.now(timezone.utc)
            try:
                result = await step.execute(ctx)
            except Exception as exc:
                kind = (
                    FailureKind.CONFIGURATION
                    if isinstance(exc, PipelineConfigurationError)
                    else FailureKind.STEP_FAILED
                )
                result = StepResult(
                    step_name=step.name,
                    status=StepStatus.FAILED,
                    started_at=started,
                    completed_at=datetime.now(timezone.utc),
                    error=str(exc),
                    metadata={"traceback": traceback.format_exc(), "error_type": type(exc).__name__},
                )
                exception = exc
                error_kind = kind

            ctx.step_results.append(result)

            if result.status == StepStatus.COMPLETED:
                steps_completed += 1
                step_log.info("Step completed", duration_ms=result.duration_ms)
                continue

            step_log.error(
                "Step failed, pipeline stopping",
                error=result.error,
                error_kind=(error_kind or FailureKind.STEP_FAILED).value,
            )
            ctx.add_error(f"Step '{step.name}' failed: {result.error}")
            pipeline_status = PipelineStatus.FAILED
            failed_step = step.name
            error_kind = error_kind or FailureKind.STEP_FAILED
            error = result.error
            break

        # ── Finalise ──────────────────────────────────
        completed_at = datetime.now(timezone.utc)
        total_duration_ms = int((completed_at - started_at).total_seconds() * 1000)

        if pipeline_status != PipelineStatus.FAILED:
            pipeline_status = PipelineStatus.SUCCESS

        log.info(
            "Pipeline finished",
            status=pipeline_status.value,
            steps_completed=steps_completed,
            failed_step=failed_step,
            duration_ms=total_duration_ms,
        )

        return PipelineResult(
            execution_id=ctx.execution_id,
            status=pipeline_status,
            started_at=started_at,
            completed_at=completed_at,
            total_duration_ms=total_duration_ms,
            steps_completed=steps_completed,
            total_steps=len(steps),
            executed_steps=list(ctx.executed_steps),
            step_results=[sr.to_dict() for sr in ctx.step_results],
            context_summary=ctx.to_summary_dict(),
            failed_step=failed_step,
            error_kind=error_kind.value if error_kind else None,
            error=error,
            exception=exception,
        )

    def _notify(
        self,
        listener: StepListener | None,
        step_name: str,
        log: structlog.BoundLogger,
    ) -> None:
        """
        Deliver a step transition; listener failures never reach the run.

        The sync part of the listener runs before the step so the transition
        is observed in order; anything slow must come back as an awaitable.
        """
        if listener is None:
            return
        try:
            outcome = listener(step_name)
            if inspect.isawaitable(outcome):
                task = asyncio.ensure_future(outcome)
                self._listener_tasks.add(task)
                task.add_done_callback(self._on_listener_done)
        except Exception as exc:
            log.debug("Step listener failed", error=str(exc))

    def _on_listener_done(self, task: asyncio.Task) -> None:
        self._listener_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self.logger.debug("Step listener failed", error=str(task.exception()))
