"""
DetermineInputTypeStep — decide which input branch the message takes.

Text wins over voice, voice over photo. Also fixes the date context
(today, yesterday, current time) used by the prompt.
"""

from __future__ import annotations

from datetime import timedelta

from hilm.core.constants import InputType
from hilm.pipeline.context import MessageContext, StepResult
from hilm.pipeline.errors import StepExecutionError
from hilm.pipeline.step import PipelineStep


class DetermineInputTypeStep(PipelineStep):
    """Classify the inbound message as text, voice or photo."""

    name = "determine_input_type"
    description = "Determine message input type"

    async def execute(self, ctx: MessageContext) -> StepResult:
        started_at = self._now()
        message = ctx.message

        if message.text and message.text.strip():
            ctx.input_type = InputType.TEXT
        elif message.voice_path:
            ctx.input_type = InputType.VOICE
        elif message.photo_path:
            ctx.input_type = InputType.PHOTO
        else:
            raise StepExecutionError(
                "Unsupported message type",
                execution_id=ctx.execution_id,
                step_name=self.name,
            )

        now = started_at.astimezone()
        ctx.date_context = {
            "today": now.date().isoformat(),
            "yesterday": (now.date() - timedelta(days=1)).isoformat(),
            "time": now.strftime("%H:%M"),
        }

        return self._success(started_at, {"input_type": ctx.input_type})
