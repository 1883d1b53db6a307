"""
Unit tests for traceable_step: tracing problems never break model calls.
"""

import pytest

from hilm.core import tracing

# =============================================================================
# HELPERS
# =============================================================================


def broken_traceable(**kwargs):
    """LangSmith decorator that fails while wrapping."""
    raise RuntimeError("langsmith client misconfigured")


def traceable_failing_after_call(**kwargs):
    """LangSmith decorator whose run bookkeeping fails after the call returns."""

    def decorate(fn):
        async def traced(*args, **kw):
            await fn(*args, **kw)
            raise RuntimeError("trace upload failed")

        return traced

    return decorate


def passthrough_traceable(**kwargs):
    def decorate(fn):
        return fn

    return decorate


@pytest.fixture
def tracing_on(monkeypatch):
    monkeypatch.setattr(tracing, "_tracing_enabled", True)

    def _use(fake_traceable):
        monkeypatch.setattr(tracing, "traceable", fake_traceable)

    return _use


def counting_call():
    calls = []

    @tracing.traceable_step(name="transcribe_voice", run_type="llm")
    async def transcribe(path):
        calls.append(path)
        return f"text of {path}"

    return transcribe, calls


# =============================================================================
# TEST CLASSES
# =============================================================================


class TestTraceableStep:
    """Tests for the tracing guard."""

    @pytest.mark.asyncio
    async def test_disabled_tracing_calls_function_directly(self, monkeypatch):
        monkeypatch.setattr(tracing, "_tracing_enabled", False)
        monkeypatch.setattr(tracing, "traceable", broken_traceable)
        transcribe, calls = counting_call()

        assert await transcribe("a.ogg") == "text of a.ogg"
        assert calls == ["a.ogg"]

    @pytest.mark.asyncio
    async def test_tracing_setup_failure_runs_untraced(self, tracing_on):
        """A failing LangSmith decorator falls back to the plain call."""
        tracing_on(broken_traceable)
        transcribe, calls = counting_call()

        assert await transcribe("a.ogg") == "text of a.ogg"
        assert calls == ["a.ogg"]

    @pytest.mark.asyncio
    async def test_tracing_failure_after_call_keeps_result(self, tracing_on):
        """The model call is not repeated when only trace bookkeeping failed."""
        tracing_on(traceable_failing_after_call)
        transcribe, calls = counting_call()

        assert await transcribe("a.ogg") == "text of a.ogg"
        assert calls == ["a.ogg"]

    @pytest.mark.asyncio
    async def test_function_errors_propagate_without_retry(self, tracing_on):
        tracing_on(passthrough_traceable)
        calls = []

        @tracing.traceable_step(name="supervisor_agent")
        async def respond(prompt):
            calls.append(prompt)
            raise ValueError("model refused")

        with pytest.raises(ValueError, match="model refused"):
            await respond("hi")
        assert calls == ["hi"]
