"""
IngestionLedger — dedup and status tracking for delivered webhook updates.

The ledger is a bookkeeping aid: only ``record_if_new`` can fail loudly
(and only for non-duplicate store errors). Existence checks and status
transitions log their failures and carry on, since whether the user saw
a reply never depends on them.
"""

from __future__ import annotations

from typing import Any

from hilm.core.constants import WebhookUpdateStatus
from hilm.core.logging import get_logger
from hilm.db.errors import DuplicateKeyError, StoreError
from hilm.repositories.webhook_updates import WebhookUpdateStore

logger = get_logger(__name__)


class LedgerWriteError(Exception):
    """Recording a new event failed for a reason other than a duplicate id."""

    def __init__(self, message: str, *, event_id: int) -> None:
        self.event_id = event_id
        super().__init__(message)


class IngestionLedger:
    """Records externally delivered event ids and their lifecycle status."""

    def __init__(self, store: WebhookUpdateStore) -> None:
        self.store = store

    async def record_if_new(self, event_id: int, payload: dict[str, Any]) -> bool:
        """
        Insert a ``pending`` record for ``event_id``.

        Returns True on first sight, False if the id is already recorded.
        Raises LedgerWriteError for any other store failure.
        """
        try:
            await self.store.insert_pending(event_id, payload)
        except DuplicateKeyError:
            logger.info("Update already recorded", event_id=event_id)
            return False
        except StoreError as exc:
            raise LedgerWriteError(
                f"Failed to record update {event_id}: {exc}",
                event_id=event_id,
            ) from exc
        return True

    async def is_duplicate(self, event_id: int) -> bool:
        """Existence check; a failed lookup counts as not seen."""
        try:
            return await self.store.exists(event_id)
        except Exception as exc:
            logger.warning(
                "Duplicate check failed, assuming new update",
                event_id=event_id,
                error=str(exc),
                bookkeeping=True,
            )
            return False

    async def mark_processing(self, event_id: int) -> bool:
        return await self._transition(event_id, WebhookUpdateStatus.PROCESSING)

    async def mark_completed(self, event_id: int) -> bool:
        return await self._transition(event_id, WebhookUpdateStatus.COMPLETED)

    async def mark_failed(self, event_id: int, error: str) -> bool:
        return await self._transition(event_id, WebhookUpdateStatus.FAILED, error=error)

    async def _transition(
        self,
        event_id: int,
        status: WebhookUpdateStatus,
        *,
        error: str | None = None,
    ) -> bool:
        try:
            updated = await self.store.set_status(event_id, status, error=error)
        except Exception as exc:
            logger.warning(
                "Ledger status update failed",
                event_id=event_id,
                status=status.value,
                error=str(exc),
                bookkeeping=True,
            )
            return False

        if not updated:
            logger.warning(
                "Ledger status update matched no record",
                event_id=event_id,
                status=status.value,
                bookkeeping=True,
            )
        return updated
