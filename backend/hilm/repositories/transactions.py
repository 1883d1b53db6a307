"""
Transaction repository: inserts into ``transactions``.

The caller never supplies ``display_id``; the database trigger assigns it
and the INSERT returns it. A collision on ``unique_user_display_id``
surfaces as ``DuplicateKeyError(constraint="unique_user_display_id")``.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hilm.db.errors import StoreError, translate_integrity_error
from hilm.db.models.transaction import Transaction


@dataclass
class NewTransaction:
    """Fields the caller provides for one transaction row."""

    user_id: int
    amount: Decimal
    merchant: str
    category: str
    transaction_date: date
    currency: str = "AED"
    description: str | None = None
    original_amount: Decimal | None = None
    original_currency: str | None = None

    def to_values(self) -> dict:
        return {
            "user_id": self.user_id,
            "amount": self.amount,
            "currency": self.currency,
            "merchant": self.merchant,
            "category": self.category,
            "description": self.description,
            "transaction_date": self.transaction_date,
            "original_amount": self.original_amount,
            "original_currency": self.original_currency,
        }


@dataclass(frozen=True)
class StoredTransaction:
    """Identifiers assigned to an inserted row."""

    id: uuid.UUID
    display_id: int


async def insert_transaction(db: AsyncSession, record: NewTransaction) -> StoredTransaction:
    """Insert one row and return its primary key and trigger-assigned display id."""
    stmt = (
        insert(Transaction)
        .values(id=uuid.uuid4(), **record.to_values())
        .returning(Transaction.id, Transaction.display_id)
    )
    result = await db.execute(stmt)
    row = result.one()
    await db.flush()
    return StoredTransaction(id=row.id, display_id=row.display_id)


# ─── Store interface ─────────────────────────────────────


class TransactionStore(ABC):
    """Durable storage for transactions."""

    @abstractmethod
    async def insert(self, record: NewTransaction) -> StoredTransaction:
        """Insert a row; raise DuplicateKeyError on a unique violation, StoreError otherwise."""
        ...


class SqlTransactionStore(TransactionStore):
    """TransactionStore backed by PostgreSQL; every attempt runs in its own transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert(self, record: NewTransaction) -> StoredTransaction:
        try:
            async with self._session_factory() as session:
                stored = await insert_transaction(session, record)
                await session.commit()
                return stored
        except IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
