"""
MessageContext — mutable state carried through every step of one run.

Each step reads from and writes to the context. Fields are populated
progressively: input detection, then the single branch output, then the
prompt, cache lookup, agent reply, saved transactions and final response.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from hilm.cache.response_cache import CachedResponse
    from hilm.llm.base import AgentReply
    from hilm.services.transactions import InsertResult


# ═══════════════════════════════════════════════════════════
#  StepResult
# ═══════════════════════════════════════════════════════════

@dataclass
class StepResult:
    """Outcome of a single pipeline step execution."""

    step_name: str
    status: str                     # StepStatus value
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_name": self.step_name,
            "status": self.status,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "metadata": self.metadata,
        }


# ═══════════════════════════════════════════════════════════
#  Inputs
# ═══════════════════════════════════════════════════════════

@dataclass
class InboundMessage:
    """
    The chat message a run processes.

    ``voice_path``/``photo_path`` point at local temp files already
    downloaded by the handler.
    """

    user_id: int
    chat_id: int
    message_id: int
    text: str | None = None
    caption: str | None = None
    voice_path: str | None = None
    photo_path: str | None = None
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    language_code: str | None = None
    mode: str = "chat"

    @property
    def temp_files(self) -> list[str]:
        return [p for p in (self.voice_path, self.photo_path) if p]


@dataclass
class ProcessedInput:
    """Normalized text produced by exactly one input branch."""

    input_type: str                 # InputType value
    text: str
    metadata: dict[str, Any] = field(default_factory=dict)


# ═══════════════════════════════════════════════════════════
#  MessageContext
# ═══════════════════════════════════════════════════════════

@dataclass
class MessageContext:
    """Carries all state between pipeline steps."""

    # ─── Identity (set at init) ────────────────────────
    message: InboundMessage
    execution_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    # ─── Input detection ───────────────────────────────
    input_type: str | None = None
    date_context: dict[str, str] = field(default_factory=dict)

    # ─── Branch point / join ───────────────────────────
    # Keyed by the step that produced the output; the join
    # requires exactly one entry.
    branch_taken: str | None = None
    branch_outputs: dict[str, ProcessedInput] = field(default_factory=dict)
    processed_input: ProcessedInput | None = None

    # ─── Agent ─────────────────────────────────────────
    prompt: str | None = None
    is_cached: bool = False
    cached_response: CachedResponse | None = None
    reply: AgentReply | None = None

    # ─── Results ───────────────────────────────────────
    saved_transactions: list[InsertResult] = field(default_factory=list)
    response: str | None = None
    reply_markup: dict[str, Any] | None = None
    response_metadata: dict[str, Any] = field(default_factory=dict)

    # ─── Execution tracking ────────────────────────────
    executed_steps: list[str] = field(default_factory=list)
    step_results: list[StepResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def user_id(self) -> int:
        return self.message.user_id

    def add_error(self, error: str) -> None:
        """Record a non-fatal error."""
        self.errors.append(error)

    def to_summary_dict(self) -> dict[str, Any]:
        """Compact summary for logging."""
        return {
            "execution_id": self.execution_id,
            "user_id": self.user_id,
            "input_type": self.input_type,
            "branch_taken": self.branch_taken,
            "is_cached": self.is_cached,
            "transactions_saved": len(self.saved_transactions),
            "executed_steps": self.executed_steps,
            "errors": self.errors,
        }
