"""
Models package — re-exports Base and all models.

Import models here so Alembic's `target_metadata = Base.metadata`
picks up every table automatically.
"""

from hilm.db.models.base import Base
from hilm.db.models.response_cache_entry import ResponseCacheEntry
from hilm.db.models.transaction import Transaction
from hilm.db.models.webhook_update import WebhookUpdate

__all__ = [
    "Base",
    "ResponseCacheEntry",
    "Transaction",
    "WebhookUpdate",
]
