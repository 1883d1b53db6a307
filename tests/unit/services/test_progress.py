"""
Unit tests for ProgressController.

Edits are held "in flight" with an asyncio.Event gate on the fake editor.
"""

import asyncio

import pytest

from hilm.core.constants import ProgressPolicy
from hilm.services.progress import MessageLocation, ProgressController
from tests.fakes import FakeEditor

TEXTS = {"a": "A", "b": "B", "c": "C", "d": "D"}
LOCATION = MessageLocation(chat_id=1, message_id=99)

# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def gate():
    return asyncio.Event()


@pytest.fixture
def make_progress():
    def _make(editor, policy=ProgressPolicy.DROP, **kwargs):
        return ProgressController(editor, LOCATION, TEXTS, policy=policy, **kwargs)

    return _make


async def start_in_flight(progress, stage):
    """Start update(stage) and let it reach the editor."""
    task = asyncio.create_task(progress.update(stage))
    await asyncio.sleep(0)
    return task


# =============================================================================
# TEST CLASSES
# =============================================================================


class TestUpdate:
    """Tests for basic update behaviour."""

    @pytest.mark.asyncio
    async def test_update_edits_message(self, make_progress):
        editor = FakeEditor()
        progress = make_progress(editor)

        await progress.update("a")

        assert editor.edits == ["A"]
        assert progress.current_stage == "a"

    @pytest.mark.asyncio
    async def test_same_stage_is_noop(self, make_progress):
        """Requesting the current stage again does not edit."""
        editor = FakeEditor()
        progress = make_progress(editor, initial_stage="a")

        await progress.update("a")

        assert editor.started == 0

    @pytest.mark.asyncio
    async def test_stage_without_text_is_skipped(self, make_progress):
        editor = FakeEditor()
        progress = make_progress(editor)

        await progress.update("unknown")

        assert editor.started == 0

    @pytest.mark.asyncio
    async def test_failed_edit_is_swallowed(self, make_progress):
        """A failing edit is logged and not retried."""
        editor = FakeEditor(fail_edits=True)
        progress = make_progress(editor)

        await progress.update("a")

        assert editor.started == 1
        assert editor.edits == []
        assert progress.is_active()

    @pytest.mark.asyncio
    async def test_emit_never_raises(self, make_progress):
        """emit() is fire-and-forget even when the editor fails."""
        editor = FakeEditor(fail_edits=True)
        progress = make_progress(editor)

        progress.emit("a")
        progress.emit("b")
        await asyncio.sleep(0)
        await progress.wait_for_idle()

        assert editor.edits == []


class TestDropPolicy:
    """Updates requested while an edit is in flight are discarded."""

    @pytest.mark.asyncio
    async def test_update_while_busy_is_dropped(self, make_progress, gate):
        editor = FakeEditor(gate=gate)
        progress = make_progress(editor)

        first = await start_in_flight(progress, "a")
        await progress.update("b")
        await progress.update("c")
        gate.set()
        await first

        assert editor.edits == ["A"]
        assert editor.started == 1

    @pytest.mark.asyncio
    async def test_final_stage_is_one_that_was_emitted(self, make_progress, gate):
        """Under load some stages are skipped, but the shown one was requested."""
        editor = FakeEditor(gate=gate)
        progress = make_progress(editor)

        for stage in ("a", "b", "c", "d"):
            progress.emit(stage)
        await asyncio.sleep(0)
        gate.set()
        await progress.wait_for_idle()
        await asyncio.sleep(0)

        assert editor.edits
        assert set(editor.edits) <= {"A", "B", "C", "D"}
        assert progress.current_stage in TEXTS


class TestLatestWinsPolicy:
    """Only the most recent pending update is applied after the in-flight one."""

    @pytest.mark.asyncio
    async def test_latest_pending_update_replaces_earlier_ones(self, make_progress, gate):
        editor = FakeEditor(gate=gate)
        progress = make_progress(editor, policy=ProgressPolicy.LATEST_WINS)

        first = await start_in_flight(progress, "a")
        await progress.update("b")
        await progress.update("c")
        gate.set()
        await first

        assert editor.edits == ["A", "C"]
        assert progress.current_stage == "c"


class TestTerminalTransitions:
    """complete()/fail() are final and ordered after in-flight edits."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("policy", [ProgressPolicy.DROP, ProgressPolicy.LATEST_WINS])
    async def test_complete_waits_for_in_flight_edit_and_blocks_later_ones(self, make_progress, gate, policy):
        """The in-flight edit finishes; nothing requested around complete() is written."""
        editor = FakeEditor(gate=gate)
        progress = make_progress(editor, policy=policy)

        first = await start_in_flight(progress, "a")
        await progress.update("b")
        progress.emit("c")
        completing = asyncio.create_task(progress.complete())
        await asyncio.sleep(0)
        progress.emit("d")

        assert not completing.done()
        gate.set()
        await completing
        await first
        await asyncio.sleep(0)

        assert editor.edits == ["A"]
        assert editor.started == 1
        assert not progress.is_active()

    @pytest.mark.asyncio
    async def test_terminal_state_is_irreversible(self, make_progress):
        editor = FakeEditor()
        progress = make_progress(editor)

        await progress.complete()
        await progress.update("a")
        progress.emit("b")
        await asyncio.sleep(0)
        await progress.complete()

        assert editor.started == 0
        assert progress.is_active() is False

    @pytest.mark.asyncio
    async def test_fail_deletes_status_message(self, make_progress):
        editor = FakeEditor()
        progress = make_progress(editor)
        await progress.update("a")

        await progress.fail()

        assert editor.deleted == [LOCATION]
        assert not progress.is_active()

    @pytest.mark.asyncio
    async def test_fail_ignores_delete_errors(self, make_progress):
        editor = FakeEditor()
        editor.fail_delete = True
        progress = make_progress(editor)

        await progress.fail()

        assert not progress.is_active()

    @pytest.mark.asyncio
    async def test_fail_after_complete_does_nothing(self, make_progress):
        editor = FakeEditor()
        progress = make_progress(editor)

        await progress.complete()
        await progress.fail()

        assert editor.deleted == []
