"""
Telegram webhook endpoint.

Every accepted delivery is acknowledged with 200, whatever happened while
processing it; Telegram redelivers anything else, which would only repeat
the failure.
"""

from __future__ import annotations

import hmac
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from hilm.api.deps import get_ingestor, get_message_handler, get_webhook_secret
from hilm.bot.message_handler import MessageHandler
from hilm.core.logging import get_logger
from hilm.ingestion.ingestor import WebhookIngestor

logger = get_logger(__name__)

router = APIRouter(prefix="/telegram", tags=["Telegram"])


@router.post("/webhook")
async def telegram_webhook(
    request: Request,
    ingestor: WebhookIngestor = Depends(get_ingestor),
    handler: MessageHandler = Depends(get_message_handler),
    secret: str = Depends(get_webhook_secret),
    x_telegram_bot_api_secret_token: str | None = Header(default=None),
) -> dict[str, Any]:
    """Deduplicate the update by ``update_id`` and process it once."""
    if secret and not hmac.compare_digest(x_telegram_bot_api_secret_token or "", secret):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook secret",
        )

    try:
        payload = await request.json()
    except ValueError:
        logger.warning("Webhook body is not JSON, dropping")
        return {"ok": True}

    update_id = payload.get("update_id") if isinstance(payload, dict) else None
    if not isinstance(update_id, int):
        logger.warning("Webhook payload without update_id, dropping")
        return {"ok": True}

    outcome = await ingestor.ingest(update_id, payload, handler.handle_update)
    return {"ok": True, "outcome": outcome.value}
