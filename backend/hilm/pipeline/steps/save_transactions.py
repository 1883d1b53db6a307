"""
SaveTransactionsStep — persist the agent's drafted transactions.

Each insert goes through TransactionService.insert_with_retry so display
id collisions between concurrent messages of one user are resolved.
Saved display ids, plus any ``[ID: n]`` references in the reply, get
Edit/Delete buttons.
"""

from __future__ import annotations

import re
from typing import Any

from hilm.core.logging import get_logger
from hilm.pipeline.context import MessageContext, StepResult
from hilm.pipeline.step import PipelineStep
from hilm.repositories.transactions import NewTransaction
from hilm.services.transactions import TransactionService

logger = get_logger(__name__)

TRANSACTION_ID_RE = re.compile(r"\[ID:\s*(\d+)\]", re.IGNORECASE)


def referenced_display_ids(text: str) -> list[int]:
    """Display ids mentioned as ``[ID: n]``, in order, without repeats."""
    ids: list[int] = []
    for match in TRANSACTION_ID_RE.finditer(text):
        value = int(match.group(1))
        if value not in ids:
            ids.append(value)
    return ids


def transaction_keyboard(display_ids: list[int]) -> dict[str, Any]:
    return {
        "inline_keyboard": [
            [
                {"text": "Edit", "callback_data": f"edit_{display_id}"},
                {"text": "Delete", "callback_data": f"delete_{display_id}"},
            ]
            for display_id in display_ids
        ]
    }


class SaveTransactionsStep(PipelineStep):
    name = "save_transactions"
    description = "Save drafted transactions"

    def __init__(self, service: TransactionService) -> None:
        self.service = service

    async def execute(self, ctx: MessageContext) -> StepResult:
        started_at = self._now()
        reply = ctx.reply
        if reply is None:
            return self._success(started_at, {"saved": 0})

        if not ctx.is_cached:
            for draft in reply.transactions:
                saved = await self.service.insert_with_retry(
                    NewTransaction(
                        user_id=ctx.user_id,
                        amount=draft.amount,
                        merchant=draft.merchant,
                        category=draft.category,
                        transaction_date=draft.transaction_date,
                        currency=draft.currency,
                        description=draft.description,
                        original_amount=draft.original_amount,
                        original_currency=draft.original_currency,
                    )
                )
                ctx.saved_transactions.append(saved)
                logger.info(
                    "Transaction saved",
                    execution_id=ctx.execution_id,
                    user_id=ctx.user_id,
                    display_id=saved.display_id,
                    attempts=saved.attempts,
                )

        text = reply.text
        mentioned = referenced_display_ids(text)
        for saved in ctx.saved_transactions:
            if saved.display_id not in mentioned:
                text = f"{text}\n[ID: {saved.display_id}]"
        reply.text = text

        display_ids = referenced_display_ids(text)
        if reply.reply_markup is not None:
            ctx.reply_markup = reply.reply_markup
        elif display_ids:
            ctx.reply_markup = transaction_keyboard(display_ids)

        return self._success(
            started_at,
            {"saved": len(ctx.saved_transactions), "display_ids": display_ids},
        )
