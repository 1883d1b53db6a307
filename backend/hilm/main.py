"""FastAPI application entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from fastapi import FastAPI

from hilm.api.v1 import telegram
from hilm.bot.message_handler import MessageHandler
from hilm.cache.response_cache import SqlResponseCache
from hilm.core.config import settings
from hilm.core.logging import get_logger, setup_logging
from hilm.core.tracing import setup_tracing
from hilm.db.session import async_session, engine
from hilm.ingestion.ingestor import WebhookIngestor
from hilm.ingestion.ledger import IngestionLedger
from hilm.llm.openai_client import (
    OpenAIClient,
    OpenAIReceiptReader,
    OpenAISupervisorAgent,
    OpenAITranscriber,
)
from hilm.pipeline.engine import PipelineEngine
from hilm.pipeline.flow import FlowServices, message_processing_flow
from hilm.repositories.transactions import SqlTransactionStore
from hilm.repositories.webhook_updates import SqlWebhookUpdateStore
from hilm.services.transactions import BackoffPolicy, TransactionService
from hilm.telegram.client import TelegramBotClient

API_PREFIX = "/api/v1"


@dataclass
class Components:
    """Everything the routes need, built once per process."""

    ingestor: WebhookIngestor
    message_handler: MessageHandler
    webhook_secret: str = ""
    closers: list[Callable[[], Awaitable[Any]]] = field(default_factory=list)


def build_components() -> Components:
    """Wire the production components from settings."""
    telegram_client = TelegramBotClient()
    openai_client = OpenAIClient()

    services = FlowServices(
        transcriber=OpenAITranscriber(openai_client),
        receipt_reader=OpenAIReceiptReader(openai_client),
        agent=OpenAISupervisorAgent(openai_client),
        response_cache=SqlResponseCache(
            async_session,
            ttl_seconds=settings.RESPONSE_CACHE_TTL_SECONDS,
            version=settings.RESPONSE_CACHE_VERSION,
        ),
        transactions=TransactionService(
            SqlTransactionStore(async_session),
            BackoffPolicy.from_settings(),
        ),
    )
    handler = MessageHandler(
        telegram_client,
        PipelineEngine(),
        message_processing_flow(services),
        progress_policy=settings.PROGRESS_UPDATE_POLICY,
        default_mode=settings.DEFAULT_USER_MODE,
    )
    ingestor = WebhookIngestor(IngestionLedger(SqlWebhookUpdateStore(async_session)))

    return Components(
        ingestor=ingestor,
        message_handler=handler,
        webhook_secret=settings.TELEGRAM_WEBHOOK_SECRET,
        closers=[telegram_client.aclose, openai_client.aclose, engine.dispose],
    )


def create_app(components: Components | None = None) -> FastAPI:
    """Build the app; pass ``components`` to run against fakes."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown lifecycle hooks."""
        setup_logging(settings.LOG_LEVEL or ("DEBUG" if settings.APP_ENV == "development" else "INFO"))
        setup_tracing()
        logger = get_logger("startup")

        wired = components or build_components()
        app.state.ingestor = wired.ingestor
        app.state.message_handler = wired.message_handler
        app.state.webhook_secret = wired.webhook_secret

        logger.info("Application starting", env=settings.APP_ENV)
        yield
        logger.info("Application shutting down")
        for close in wired.closers:
            await close()

    app = FastAPI(
        title="Hilm Bot API",
        description="Chat-driven personal-finance assistant",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(telegram.router, prefix=API_PREFIX)

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, str]:
        """Public health-check endpoint."""
        return {"status": "ok", "env": settings.APP_ENV}

    return app


app = create_app()
