"""
WebhookUpdate — ingestion ledger row, one per Telegram update_id.

Rows are only ever inserted and status-transitioned; retention is
handled outside the application.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, Column, DateTime, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB

from hilm.db.models.base import Base, utcnow


class WebhookUpdate(Base):
    """One row per externally delivered update."""

    __tablename__ = "webhook_updates"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # ── Identity ─────────────────────────────
    update_id = Column(BigInteger, nullable=False, unique=True, index=True)
    payload = Column(JSONB, nullable=False, default=dict)

    # ── Lifecycle ────────────────────────────
    status = Column(String(20), nullable=False, default="pending", index=True)
    last_error = Column(Text, nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)

    # ── Audit timestamps ─────────────────────
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<WebhookUpdate {self.update_id} status={self.status}>"
