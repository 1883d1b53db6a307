"""
OpenAI-compatible HTTP implementations of the model collaborators.

One shared ``httpx.AsyncClient`` per process; every call is traced
through LangSmith when tracing is enabled.
"""

from __future__ import annotations

import base64
import json
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import httpx

from hilm.core.config import settings
from hilm.core.logging import get_logger
from hilm.core.tracing import traceable_step
from hilm.llm.base import AgentReply, ReceiptReader, SupervisorAgent, Transcriber, TransactionDraft

logger = get_logger(__name__)

RECEIPT_PROMPT = (
    "Read this image. If it is a receipt or invoice, list the merchant, total amount, "
    "currency, date and line items. Otherwise describe what the user is asking about."
)

SUPERVISOR_PROMPTS = {
    "logger": "You log the user's expenses. Extract every transaction mentioned.",
    "query": "You answer questions about the user's spending. Do not log transactions.",
    "chat": "You are a friendly personal-finance assistant.",
}

REPLY_FORMAT = (
    'Answer with a JSON object: {"text": <reply for the user>, "transactions": '
    '[{"amount": number, "currency": str, "merchant": str, "category": str, '
    '"transaction_date": "YYYY-MM-DD", "description": str|null}]}. '
    "Use an empty transactions list when nothing should be logged."
)


class OpenAIClient:
    """Thin async wrapper over the OpenAI REST API."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.OPENAI_BASE_URL,
            headers={"Authorization": f"Bearer {api_key or settings.OPENAI_API_KEY}"},
            timeout=timeout or settings.LLM_TIMEOUT_SECONDS,
        )

    async def chat(self, messages: list[dict[str, Any]], *, model: str, json_mode: bool = False) -> str:
        body: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": settings.LLM_TEMPERATURE,
        }
        if json_mode:
            body["response_format"] = {"type": "json_object"}
        response = await self._client.post("/chat/completions", json=body)
        response.raise_for_status()
        return response.json()["choices"][0]["message"]["content"] or ""

    async def transcribe(self, file_path: str, *, model: str) -> str:
        path = Path(file_path)
        with path.open("rb") as fh:
            response = await self._client.post(
                "/audio/transcriptions",
                data={"model": model},
                files={"file": (path.name, fh.read(), "audio/ogg")},
            )
        response.raise_for_status()
        return response.json().get("text", "")

    async def aclose(self) -> None:
        await self._client.aclose()


class OpenAITranscriber(Transcriber):
    def __init__(self, client: OpenAIClient, model: str | None = None) -> None:
        self.client = client
        self.model = model or settings.TRANSCRIPTION_MODEL

    @traceable_step(name="transcribe_voice", run_type="llm")
    async def transcribe(self, file_path: str) -> str:
        text = await self.client.transcribe(file_path, model=self.model)
        logger.info("Voice transcribed", chars=len(text))
        return text.strip()


class OpenAIReceiptReader(ReceiptReader):
    def __init__(self, client: OpenAIClient, model: str | None = None) -> None:
        self.client = client
        self.model = model or settings.VISION_MODEL

    @traceable_step(name="extract_from_photo", run_type="llm")
    async def extract(self, file_path: str) -> str:
        encoded = base64.b64encode(Path(file_path).read_bytes()).decode("ascii")
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": RECEIPT_PROMPT},
                    {"type": "image_url", "image_url": {"url": f"data:image/jpeg;base64,{encoded}"}},
                ],
            }
        ]
        text = await self.client.chat(messages, model=self.model)
        logger.info("Image read", chars=len(text))
        return text.strip()


class OpenAISupervisorAgent(SupervisorAgent):
    def __init__(self, client: OpenAIClient, model: str | None = None) -> None:
        self.client = client
        self.model = model or settings.LLM_MODEL

    @traceable_step(name="supervisor_agent", run_type="chain")
    async def respond(self, prompt: str, *, user_id: int, mode: str) -> AgentReply:
        system = f"{SUPERVISOR_PROMPTS.get(mode, SUPERVISOR_PROMPTS['chat'])}\n\n{REPLY_FORMAT}"
        raw = await self.client.chat(
            [{"role": "system", "content": system}, {"role": "user", "content": prompt}],
            model=self.model,
            json_mode=True,
        )
        return parse_agent_reply(raw)


def parse_agent_reply(raw: str) -> AgentReply:
    """Parse the agent's JSON answer; anything unparseable is returned as plain text."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return AgentReply(text=raw)
    if not isinstance(data, dict):
        return AgentReply(text=raw)

    drafts = []
    for item in data.get("transactions") or []:
        try:
            drafts.append(
                TransactionDraft(
                    amount=Decimal(str(item["amount"])),
                    merchant=item["merchant"],
                    category=item.get("category") or "Other",
                    transaction_date=date.fromisoformat(item["transaction_date"]),
                    currency=item.get("currency") or "AED",
                    description=item.get("description"),
                )
            )
        except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
            logger.warning("Dropping malformed transaction from agent reply", error=str(exc))

    return AgentReply(
        text=str(data.get("text", "")),
        transactions=drafts,
        reply_markup=data.get("markup"),
    )
