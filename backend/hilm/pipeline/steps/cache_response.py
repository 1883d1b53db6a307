"""CacheResponseStep — store a freshly generated, reusable reply."""

from __future__ import annotations

from hilm.cache.response_cache import CachedResponse, ResponseCache, should_cache_response
from hilm.pipeline.context import MessageContext, StepResult
from hilm.pipeline.step import PipelineStep


class CacheResponseStep(PipelineStep):
    name = "cache_response"
    description = "Cache agent response"

    def __init__(self, cache: ResponseCache) -> None:
        self.cache = cache

    async def execute(self, ctx: MessageContext) -> StepResult:
        started_at = self._now()

        # A reply served from cache is never written back.
        if ctx.is_cached or ctx.reply is None or ctx.processed_input is None:
            return self._success(started_at, {"cached": False})

        text = ctx.processed_input.text
        if ctx.saved_transactions or not should_cache_response(text):
            return self._success(started_at, {"cached": False})

        await self.cache.set(
            ctx.user_id,
            text,
            CachedResponse(
                response=ctx.reply.text,
                metadata={"input_type": ctx.input_type},
            ),
        )
        return self._success(started_at, {"cached": True})
