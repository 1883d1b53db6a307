"""
SupervisorAgentStep — produce the reply text.

On a cache hit the cached text is reused and the agent is not called.
A reply whose text is itself a ``{"text", "markup"}`` JSON object is unpacked.
"""

from __future__ import annotations

import json

from hilm.llm.base import AgentReply, SupervisorAgent
from hilm.pipeline.context import MessageContext, StepResult
from hilm.pipeline.errors import StepExecutionError
from hilm.pipeline.step import PipelineStep


def unpack_json_reply(reply: AgentReply) -> AgentReply:
    text = reply.text.strip()
    if reply.reply_markup is not None or not text.startswith("{"):
        return reply
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return reply
    if isinstance(data, dict) and data.get("text") and data.get("markup"):
        reply.text = str(data["text"])
        reply.reply_markup = data["markup"]
    return reply


class SupervisorAgentStep(PipelineStep):
    name = "supervisor_agent"
    description = "Run supervisor agent"

    def __init__(self, agent: SupervisorAgent) -> None:
        self.agent = agent

    async def execute(self, ctx: MessageContext) -> StepResult:
        started_at = self._now()

        if ctx.is_cached and ctx.cached_response is not None:
            ctx.reply = AgentReply(
                text=ctx.cached_response.response,
                metadata=dict(ctx.cached_response.metadata),
            )
            return self._success(started_at, {"cached": True})

        if not ctx.prompt:
            raise StepExecutionError(
                "No prompt for the agent",
                execution_id=ctx.execution_id,
                step_name=self.name,
            )

        reply = await self.agent.respond(
            ctx.prompt,
            user_id=ctx.user_id,
            mode=ctx.message.mode,
        )
        ctx.reply = unpack_json_reply(reply)
        return self._success(
            started_at,
            {"cached": False, "transactions": len(ctx.reply.transactions)},
        )
