"""CheckCacheStep — look up a cached reply for (user, normalized text)."""

from __future__ import annotations

from hilm.cache.response_cache import ResponseCache
from hilm.pipeline.context import MessageContext, StepResult
from hilm.pipeline.step import PipelineStep


class CheckCacheStep(PipelineStep):
    name = "check_cache"
    description = "Check response cache"

    def __init__(self, cache: ResponseCache) -> None:
        self.cache = cache

    async def execute(self, ctx: MessageContext) -> StepResult:
        started_at = self._now()
        text = ctx.processed_input.text if ctx.processed_input else ""

        cached = await self.cache.get(ctx.user_id, text) if text else None
        if cached is not None:
            ctx.is_cached = True
            ctx.cached_response = cached

        return self._success(started_at, {"hit": ctx.is_cached})
