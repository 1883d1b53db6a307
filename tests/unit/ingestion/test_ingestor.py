"""
Unit tests for WebhookIngestor.

Dispatch must happen exactly once per event id, however often and
however concurrently it is delivered.
"""

import asyncio
from collections import Counter

import pytest

from hilm.core.constants import IngestOutcome, WebhookUpdateStatus
from hilm.ingestion.ingestor import WebhookIngestor
from hilm.ingestion.ledger import IngestionLedger
from tests.fakes import FailingStoreError

# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def ingestor(ledger):
    return WebhookIngestor(ledger)


@pytest.fixture
def dispatched():
    return Counter()


@pytest.fixture
def dispatch(dispatched):
    async def _dispatch(payload):
        await asyncio.sleep(0)
        dispatched[payload["update_id"]] += 1

    return _dispatch


# =============================================================================
# TEST CLASSES
# =============================================================================


class TestDeduplication:
    """Tests for exactly-once dispatch."""

    @pytest.mark.asyncio
    async def test_sequential_redelivery_scenario(self, ingestor, dispatch, dispatched, webhook_store):
        """Ids [101, 101, 102]: one dispatch each, two completed records."""
        outcomes = [
            await ingestor.ingest(event_id, {"update_id": event_id}, dispatch)
            for event_id in (101, 101, 102)
        ]

        assert outcomes == [IngestOutcome.COMPLETED, IngestOutcome.DUPLICATE, IngestOutcome.COMPLETED]
        assert dispatched == Counter({101: 1, 102: 1})
        assert len(webhook_store.records) == 2
        assert webhook_store.status_of(101) == WebhookUpdateStatus.COMPLETED
        assert webhook_store.status_of(102) == WebhookUpdateStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_concurrent_redelivery_dispatches_once(self, ingestor, dispatch, dispatched, webhook_store):
        """Concurrent deliveries of one id: one wins, the rest skip."""
        outcomes = await asyncio.gather(*[
            ingestor.ingest(7, {"update_id": 7}, dispatch) for _ in range(5)
        ])

        assert dispatched[7] == 1
        assert outcomes.count(IngestOutcome.COMPLETED) == 1
        assert all(
            o in (IngestOutcome.DUPLICATE, IngestOutcome.RACE_LOST)
            for o in outcomes if o != IngestOutcome.COMPLETED
        )
        assert IngestOutcome.RACE_LOST in outcomes
        assert len(webhook_store.records) == 1


class TestFailures:
    """Failures are recorded, never raised."""

    @pytest.mark.asyncio
    async def test_dispatch_failure_marks_failed(self, ingestor, webhook_store):
        """A raising dispatch returns FAILED and records the error."""

        async def broken(payload):
            raise RuntimeError("agent exploded")

        outcome = await ingestor.ingest(55, {"update_id": 55}, broken)

        assert outcome == IngestOutcome.FAILED
        assert webhook_store.status_of(55) == WebhookUpdateStatus.FAILED
        assert webhook_store.records[55]["last_error"] == "agent exploded"

    @pytest.mark.asyncio
    async def test_ledger_outage_still_processes(self, ingestor, dispatch, dispatched, webhook_store):
        """A non-duplicate ledger write failure does not stop processing."""
        webhook_store.insert_error = FailingStoreError("connection refused")

        outcome = await ingestor.ingest(88, {"update_id": 88}, dispatch)

        assert outcome == IngestOutcome.COMPLETED
        assert dispatched[88] == 1

    @pytest.mark.asyncio
    async def test_status_update_failure_does_not_abort(self, ingestor, dispatch, dispatched, webhook_store):
        """Failing status transitions are contained."""
        webhook_store.status_error = FailingStoreError("read-only")

        outcome = await ingestor.ingest(3, {"update_id": 3}, dispatch)

        assert outcome == IngestOutcome.COMPLETED
        assert dispatched[3] == 1

    @pytest.mark.asyncio
    async def test_unexpected_ledger_error_is_contained(self, webhook_store, dispatch, dispatched):
        """An unexpected exception before dispatch yields FAILED instead of raising."""

        class BrokenLedger(IngestionLedger):
            async def record_if_new(self, event_id, payload):
                raise RuntimeError("bug")

        outcome = await WebhookIngestor(BrokenLedger(webhook_store)).ingest(4, {"update_id": 4}, dispatch)

        assert outcome == IngestOutcome.FAILED
        assert dispatched[4] == 0
