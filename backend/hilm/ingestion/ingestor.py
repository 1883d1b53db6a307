"""
WebhookIngestor — exactly-once dispatch over an at-least-once event source.

    is_duplicate? ──yes──▶ DUPLICATE (acknowledge, no dispatch)
        │no
    record_if_new? ─no──▶ RACE_LOST (a concurrent delivery won)
        │yes (or ledger write failed: process anyway)
    mark_processing → dispatch → mark_completed / mark_failed

``ingest`` never raises: the webhook must always acknowledge, otherwise
the source redelivers the same update forever.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

from hilm.core.constants import IngestOutcome
from hilm.core.logging import get_logger
from hilm.ingestion.ledger import IngestionLedger, LedgerWriteError

logger = get_logger(__name__)

Dispatch = Callable[[dict[str, Any]], Awaitable[Any]]


class WebhookIngestor:
    """Deduplicates inbound events and dispatches each new one once."""

    def __init__(self, ledger: IngestionLedger) -> None:
        self.ledger = ledger

    async def ingest(
        self,
        event_id: int,
        payload: dict[str, Any],
        dispatch: Dispatch,
    ) -> IngestOutcome:
        log = logger.bind(event_id=event_id)

        try:
            if await self.ledger.is_duplicate(event_id):
                log.info("Duplicate update, skipping dispatch")
                return IngestOutcome.DUPLICATE

            try:
                is_new = await self.ledger.record_if_new(event_id, payload)
            except LedgerWriteError as exc:
                log.error(
                    "Ledger write failed, processing update anyway",
                    error=str(exc),
                    bookkeeping=True,
                )
                is_new = True

            if not is_new:
                log.info("Lost race to a concurrent delivery, skipping dispatch")
                return IngestOutcome.RACE_LOST

            await self.ledger.mark_processing(event_id)
        except Exception as exc:
            log.exception("Unexpected error before dispatch", error=str(exc))
            await self.ledger.mark_failed(event_id, str(exc))
            return IngestOutcome.FAILED

        try:
            await dispatch(payload)
        except Exception as exc:
            log.error("Update processing failed", error=str(exc), exc_info=True)
            await self.ledger.mark_failed(event_id, str(exc))
            return IngestOutcome.FAILED

        await self.ledger.mark_completed(event_id)
        log.info("Update processed")
        return IngestOutcome.COMPLETED
