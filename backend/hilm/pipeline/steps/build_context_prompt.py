"""BuildContextPromptStep — prefix the user's text with date and user context lines."""

from __future__ import annotations

import json

from hilm.pipeline.context import MessageContext, StepResult
from hilm.pipeline.errors import StepExecutionError
from hilm.pipeline.step import PipelineStep


class BuildContextPromptStep(PipelineStep):
    name = "build_context_prompt"
    description = "Build context-rich prompt"

    async def execute(self, ctx: MessageContext) -> StepResult:
        started_at = self._now()
        if ctx.processed_input is None:
            raise StepExecutionError(
                "No processed input to build a prompt from",
                execution_id=ctx.execution_id,
                step_name=self.name,
            )

        message = ctx.message
        user_metadata = {
            "userId": message.user_id,
            "telegramChatId": message.chat_id,
            "username": message.username,
            "firstName": message.first_name,
            "lastName": message.last_name,
            "messageId": message.message_id,
        }
        today = ctx.date_context.get("today", "")
        yesterday = ctx.date_context.get("yesterday", "")

        ctx.prompt = "\n".join([
            f"[Current Date: Today is {today}, Yesterday was {yesterday}]",
            f"[User: {message.first_name or 'Unknown'} (@{message.username or 'unknown'})]",
            f"[User ID: {message.user_id}]",
            f"[Message ID: {message.message_id}]",
            f"[User Metadata JSON: {json.dumps(user_metadata, ensure_ascii=False)}]",
            f"[Message Type: {ctx.processed_input.input_type}]",
            "",
            ctx.processed_input.text,
        ])
        return self._success(started_at)
