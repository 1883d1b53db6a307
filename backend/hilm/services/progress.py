"""
ProgressController — one live, editable status message per request.

Stage changes arriving while an edit is in flight are not queued up:
under the ``drop`` policy they are discarded, under ``latest_wins`` only
the most recent one is kept and applied once the in-flight edit returns.
``complete()``/``fail()`` close the session first, then wait for the
in-flight edit, so nothing requested after them is ever written.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Mapping

from hilm.core.constants import ProgressPolicy
from hilm.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class MessageLocation:
    """Chat + message identifiers of an outbound message."""

    chat_id: int
    message_id: int


class MessageEditor(ABC):
    """Edit/delete capability of the chat transport. Both calls may fail."""

    @abstractmethod
    async def edit_text(self, location: MessageLocation, text: str) -> None:
        ...

    @abstractmethod
    async def delete(self, location: MessageLocation) -> None:
        ...


class ProgressController:
    """
    Serializes stage edits to a single status message.

    Args:
        editor: Transport used to edit/delete the message.
        location: The status message to manage.
        stage_texts: Stage → display text.
        policy: What to do with updates requested while an edit is in flight.
        initial_stage: Stage already shown when the message was sent.
    """

    def __init__(
        self,
        editor: MessageEditor,
        location: MessageLocation,
        stage_texts: Mapping[str, str],
        *,
        policy: ProgressPolicy = ProgressPolicy.DROP,
        initial_stage: str | None = None,
    ) -> None:
        self.editor = editor
        self.location = location
        self.stage_texts = stage_texts
        self.policy = ProgressPolicy(policy)

        self._current_stage = initial_stage
        self._pending_stage: str | None = None
        self._busy = False
        self._closing = False
        self._terminal = False
        self._idle = asyncio.Event()
        self._idle.set()
        self._emit_tasks: set[asyncio.Task] = set()

        self.log = logger.bind(
            chat_id=location.chat_id,
            message_id=location.message_id,
            policy=self.policy.value,
        )

    @property
    def current_stage(self) -> str | None:
        return self._current_stage

    def is_active(self) -> bool:
        """True until complete() or fail() is called."""
        return not self._closing and not self._terminal

    # ─── Updates ───────────────────────────────────────

    async def update(self, stage: str) -> None:
        """Move the status message to ``stage``'s text (see class docstring for no-op cases)."""
        if not self.is_active() or stage == self._current_stage:
            return

        if self._busy:
            if self.policy == ProgressPolicy.LATEST_WINS:
                self._pending_stage = stage
            return

        self._busy = True
        self._idle.clear()
        try:
            next_stage: str | None = stage
            while next_stage is not None and self.is_active():
                if next_stage != self._current_stage:
                    await self._edit(next_stage)
                next_stage, self._pending_stage = self._pending_stage, None
        finally:
            self._pending_stage = None
            self._busy = False
            self._idle.set()

    def emit(self, stage: str) -> None:
        """Fire-and-forget update(); never raises."""
        if not self.is_active():
            return
        try:
            task = asyncio.get_running_loop().create_task(self.update(stage))
        except RuntimeError as exc:
            self.log.debug("Progress emit skipped, no running loop", stage=stage, error=str(exc))
            return
        self._emit_tasks.add(task)
        task.add_done_callback(self._on_emit_done)

    async def _edit(self, stage: str) -> None:
        text = self.stage_texts.get(stage)
        if text is None:
            self.log.debug("No text for progress stage", stage=stage)
            return

        self._current_stage = stage
        try:
            await self.editor.edit_text(self.location, text)
        except Exception as exc:
            self.log.debug("Progress update failed", stage=stage, error=str(exc))
            return
        self.log.info("Progress updated", stage=stage)

    def _on_emit_done(self, task: asyncio.Task) -> None:
        self._emit_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.log.debug("Progress emit failed", error=str(exc))

    # ─── Terminal transitions ──────────────────────────

    async def wait_for_idle(self) -> None:
        """Wait until no edit is in flight."""
        await self._idle.wait()

    async def complete(self) -> None:
        """Close the session, letting an in-flight edit finish first."""
        if self._closing or self._terminal:
            return
        self._closing = True
        await self.wait_for_idle()
        self._terminal = True

    async def fail(self) -> None:
        """Close the session and delete the status message."""
        if self._closing or self._terminal:
            return
        self._closing = True
        await self.wait_for_idle()
        self._terminal = True
        try:
            await self.editor.delete(self.location)
        except Exception as exc:
            self.log.debug("Progress message delete failed", error=str(exc))
