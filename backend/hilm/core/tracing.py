"""
LangSmith tracing utilities for external model calls.

Tracing is opt-in through settings; when it is disabled (local dev,
tests) the decorated coroutine runs untouched.

Usage:
    from hilm.core.tracing import setup_tracing, traceable_step

    setup_tracing()   # call once at startup

    @traceable_step(name="transcribe_voice", run_type="llm")
    async def transcribe(path):
        ...
"""

from __future__ import annotations

import functools
import os
from typing import Any, Callable

from langsmith import traceable

from hilm.core.config import settings
from hilm.core.logging import get_logger

logger = get_logger(__name__)

_tracing_enabled = False


def setup_tracing() -> bool:
    """
    Configure LangSmith tracing from application settings.

    Exports the environment variables the LangSmith SDK reads.
    Returns True if tracing was enabled, False otherwise.
    """
    global _tracing_enabled

    if not settings.LANGSMITH_TRACING or not settings.LANGSMITH_API_KEY:
        logger.info(
            "LangSmith tracing disabled",
            reason="LANGSMITH_TRACING=False or no API key",
        )
        _tracing_enabled = False
        return False

    os.environ["LANGSMITH_API_KEY"] = settings.LANGSMITH_API_KEY
    os.environ["LANGSMITH_ENDPOINT"] = settings.LANGSMITH_ENDPOINT
    os.environ["LANGSMITH_PROJECT"] = settings.LANGSMITH_PROJECT
    os.environ["LANGSMITH_TRACING"] = "true"

    logger.info("LangSmith tracing enabled", project=settings.LANGSMITH_PROJECT)
    _tracing_enabled = True
    return True


def traceable_step(
    name: str,
    run_type: str = "chain",
    metadata: dict[str, Any] | None = None,
    tags: list[str] | None = None,
) -> Callable:
    """
    Wrap an async function with LangSmith ``@traceable`` when tracing
    is enabled. A tracing failure never breaks the call: the function
    runs untraced, or its already computed result is returned. Errors
    raised by the function itself propagate unchanged.

    Args:
        name: Trace name shown in LangSmith UI.
        run_type: One of "chain", "llm", "tool", "retriever".
        metadata: Static metadata attached to every trace.
        tags: Tags for filtering in LangSmith.
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            if not _tracing_enabled:
                return await func(*args, **kwargs)

            state: dict[str, Any] = {}

            async def run(*a, **kw):
                state["called"] = True
                result = await func(*a, **kw)
                state["result"] = result
                return result

            try:
                traced_fn = traceable(
                    name=name,
                    run_type=run_type,
                    metadata=metadata or {},
                    tags=tags or [],
                )(run)
                return await traced_fn(*args, **kwargs)
            except Exception as exc:
                if "result" in state:
                    logger.warning("LangSmith tracing failed after call", trace=name, error=str(exc))
                    return state["result"]
                if state.get("called"):
                    raise
                logger.warning("LangSmith tracing failed, continuing without", trace=name, error=str(exc))
                return await func(*args, **kwargs)
        return wrapper
    return decorator
