"""
Pipeline engine — runs one inbound chat message through an ordered,
branching sequence of steps, with per-step logging and error handling.
"""

from hilm.pipeline.context import InboundMessage, MessageContext, ProcessedInput, StepResult
from hilm.pipeline.engine import PipelineEngine, PipelineResult
from hilm.pipeline.step import PipelineStep

__all__ = [
    "InboundMessage",
    "MessageContext",
    "PipelineEngine",
    "PipelineResult",
    "PipelineStep",
    "ProcessedInput",
    "StepResult",
]
