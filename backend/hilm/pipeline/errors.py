"""
Exception hierarchy for the pipeline engine.

All pipeline exceptions inherit from PipelineError so callers can
catch broadly or narrowly as needed. Each exception carries structured
context (step name, execution ID, details) for logging.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(
        self,
        message: str,
        *,
        execution_id: str | None = None,
        step_name: str | None = None,
        details: dict | None = None,
    ) -> None:
        self.execution_id = execution_id
        self.step_name = step_name
        self.details = details or {}
        super().__init__(message)


class StepExecutionError(PipelineError):
    """A step failed during execution."""
    pass


class PipelineConfigurationError(PipelineError):
    """The step list is wired incorrectly. A programming error, never a user error."""
    pass


class BranchResolutionError(PipelineConfigurationError):
    """A branch point matched zero or several branches."""
    pass


class BranchJoinError(PipelineConfigurationError):
    """A join step found zero or several branch outputs."""
    pass
