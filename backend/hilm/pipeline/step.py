"""
PipelineStep — abstract base class for all pipeline steps.

The engine calls execute() and records timing, logging, and errors.
Steps only implement the business logic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

from hilm.core.constants import StepStatus
from hilm.pipeline.context import MessageContext, StepResult


class PipelineStep(ABC):
    """
    Base class for every pipeline step.

    Subclasses MUST implement:
        - name (str)          — unique identifier, e.g. "transcribe_voice"
        - description (str)   — human-readable label for logs
        - execute(ctx)        — the actual business logic

    Branch points override resolve() to pick the sub-step to run.
    """

    name: str = "unnamed_step"
    description: str = "No description"

    @abstractmethod
    async def execute(self, ctx: MessageContext) -> StepResult:
        """
        Run the step's logic. Must return a StepResult.

        Read from and write to `ctx` to pass data between steps.
        Raise StepExecutionError on failure.
        """
        ...

    def resolve(self, ctx: MessageContext) -> "PipelineStep":
        """The step that actually executes at this position. Default: self."""
        return self

    # ─── Helpers available to all steps ────────────────

    def _success(
        self,
        started_at: datetime,
        metadata: dict[str, Any] | None = None,
    ) -> StepResult:
        """Build a successful StepResult with timing."""
        now = datetime.now(timezone.utc)
        return StepResult(
            step_name=self.name,
            status=StepStatus.COMPLETED,
            started_at=started_at,
            completed_at=now,
            duration_ms=int((now - started_at).total_seconds() * 1000),
            metadata=metadata or {},
        )

    def _failure(
        self,
        started_at: datetime,
        error: str,
        metadata: dict[str, Any] | None = None,
    ) -> StepResult:
        """Build a failed StepResult with timing and error message."""
        now = datetime.now(timezone.utc)
        return StepResult(
            step_name=self.name,
            status=StepStatus.FAILED,
            started_at=started_at,
            completed_at=now,
            duration_ms=int((now - started_at).total_seconds() * 1000),
            error=error,
            metadata=metadata or {},
        )

    def _now(self) -> datetime:
        """UTC-aware now."""
        return datetime.now(timezone.utc)
