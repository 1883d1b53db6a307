"""
Interfaces of the model-backed collaborators used by the message flow.

Prompt content and model choice live in the implementations
(see ``openai_client``); steps only depend on these interfaces.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any


@dataclass
class TransactionDraft:
    """A transaction the agent extracted from the user's message."""

    amount: Decimal
    merchant: str
    category: str
    transaction_date: date
    currency: str = "AED"
    description: str | None = None
    original_amount: Decimal | None = None
    original_currency: str | None = None


@dataclass
class AgentReply:
    """What the supervisor agent answered."""

    text: str
    transactions: list[TransactionDraft] = field(default_factory=list)
    reply_markup: dict[str, Any] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class Transcriber(ABC):
    @abstractmethod
    async def transcribe(self, file_path: str) -> str:
        """Return the spoken text of an audio file."""
        ...


class ReceiptReader(ABC):
    @abstractmethod
    async def extract(self, file_path: str) -> str:
        """Return a plain-text description of a receipt or image."""
        ...


class SupervisorAgent(ABC):
    @abstractmethod
    async def respond(self, prompt: str, *, user_id: int, mode: str) -> AgentReply:
        ...
