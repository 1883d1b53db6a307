"""
Shared pytest fixtures for the hilm test suite.

Provides fakes for every collaborator and factories for inbound messages
and contexts.
"""

import pytest

from hilm.ingestion.ledger import IngestionLedger
from hilm.pipeline.context import InboundMessage, MessageContext
from hilm.pipeline.flow import FlowServices
from hilm.services.transactions import BackoffPolicy, TransactionService
from tests.fakes import (
    FakeAgent,
    FakeReceiptReader,
    FakeResponseCache,
    FakeTranscriber,
    FakeWebhookUpdateStore,
    RacingTransactionStore,
    RecordingSleep,
)


@pytest.fixture
def webhook_store():
    return FakeWebhookUpdateStore()


@pytest.fixture
def ledger(webhook_store):
    return IngestionLedger(webhook_store)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def flow_services(recording_sleep):
    """FlowServices wired entirely with fakes."""
    return FlowServices(
        transcriber=FakeTranscriber(),
        receipt_reader=FakeReceiptReader(),
        agent=FakeAgent(),
        response_cache=FakeResponseCache(),
        transactions=TransactionService(
            RacingTransactionStore(),
            BackoffPolicy(),
            sleep=recording_sleep,
        ),
    )


@pytest.fixture
def make_message():
    """
    Return a function that creates InboundMessage objects with sensible defaults.

    Example:
        message = make_message(text=None, voice_path="/tmp/v.ogg")
    """

    def _make_message(**kwargs) -> InboundMessage:
        defaults = {
            "user_id": 42,
            "chat_id": 42,
            "message_id": 7,
            "text": "how much did I spend this week?",
            "username": "amina",
            "first_name": "Amina",
        }
        defaults.update(kwargs)
        return InboundMessage(**defaults)

    return _make_message


@pytest.fixture
def make_context(make_message):
    def _make_context(**kwargs) -> MessageContext:
        return MessageContext(message=make_message(**kwargs))

    return _make_context
