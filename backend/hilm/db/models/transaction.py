"""
Transaction — a logged expense.

``display_id`` is the per-user sequential number shown to the user.
It is assigned by the ``set_next_display_id`` trigger at insert time
(max + 1 for the user), so two concurrent inserts for one user can
compute the same value; ``unique_user_display_id`` rejects the loser.
"""

from __future__ import annotations

from sqlalchemy import (
    BigInteger,
    Column,
    Date,
    DateTime,
    FetchedValue,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID

from hilm.db.models.base import Base, generate_uuid, utcnow

DISPLAY_ID_CONSTRAINT = "unique_user_display_id"


class Transaction(Base):
    """One row per logged transaction."""

    __tablename__ = "transactions"
    __table_args__ = (
        UniqueConstraint("user_id", "display_id", name=DISPLAY_ID_CONSTRAINT),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=generate_uuid)
    display_id = Column(Integer, nullable=False, server_default=FetchedValue())
    user_id = Column(BigInteger, nullable=False, index=True)

    # ── Transaction data ─────────────────────
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(10), nullable=False, default="AED")
    merchant = Column(Text, nullable=False)
    category = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    transaction_date = Column(Date, nullable=False)

    # ── Currency conversion ──────────────────
    original_amount = Column(Numeric(10, 2), nullable=True)
    original_currency = Column(String(10), nullable=True)

    # ── Audit timestamps ─────────────────────
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Transaction {self.id} user={self.user_id} display_id={self.display_id}>"
