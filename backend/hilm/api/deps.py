"""Shared dependencies for API routes. Components live on ``app.state``, wired in the lifespan."""

from __future__ import annotations

from fastapi import Request

from hilm.bot.message_handler import MessageHandler
from hilm.ingestion.ingestor import WebhookIngestor


def get_ingestor(request: Request) -> WebhookIngestor:
    return request.app.state.ingestor


def get_message_handler(request: Request) -> MessageHandler:
    return request.app.state.message_handler


def get_webhook_secret(request: Request) -> str:
    return request.app.state.webhook_secret
