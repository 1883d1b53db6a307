"""
Webhook update repository: data access for the ``webhook_updates`` ledger.

Repository rules:
- Module functions receive AsyncSession explicitly, flush but never commit
- ``SqlWebhookUpdateStore`` owns session/transaction scope and translates
  driver errors into ``hilm.db.errors`` types
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hilm.core.constants import WebhookUpdateStatus
from hilm.db.errors import StoreError, translate_integrity_error
from hilm.db.models.base import utcnow
from hilm.db.models.webhook_update import WebhookUpdate


async def insert_pending(
    db: AsyncSession,
    update_id: int,
    payload: dict[str, Any],
) -> WebhookUpdate:
    """Insert a new ``pending`` row. Raises IntegrityError on a known update_id."""
    row = WebhookUpdate(
        update_id=update_id,
        payload=payload,
        status=WebhookUpdateStatus.PENDING.value,
    )
    db.add(row)
    await db.flush()
    return row


async def exists(db: AsyncSession, update_id: int) -> bool:
    """True when a row for ``update_id`` is already recorded."""
    stmt = select(WebhookUpdate.id).where(WebhookUpdate.update_id == update_id).limit(1)
    result = await db.execute(stmt)
    return result.scalar_one_or_none() is not None


async def set_status(
    db: AsyncSession,
    update_id: int,
    status: str,
    *,
    error: str | None = None,
) -> bool:
    """Transition a row's status. Returns True when a row was updated."""
    values: dict[str, Any] = {"status": status, "updated_at": utcnow()}
    if status in (WebhookUpdateStatus.COMPLETED, WebhookUpdateStatus.FAILED):
        values["processed_at"] = utcnow()
    if error is not None:
        values["last_error"] = error
    stmt = update(WebhookUpdate).where(WebhookUpdate.update_id == update_id).values(**values)
    result = await db.execute(stmt)
    await db.flush()
    return result.rowcount > 0


# ─── Store interface ─────────────────────────────────────


class WebhookUpdateStore(ABC):
    """Durable storage behind the ingestion ledger."""

    @abstractmethod
    async def insert_pending(self, update_id: int, payload: dict[str, Any]) -> None:
        """Insert a pending record; raise DuplicateKeyError if it already exists."""
        ...

    @abstractmethod
    async def exists(self, update_id: int) -> bool:
        ...

    @abstractmethod
    async def set_status(
        self,
        update_id: int,
        status: WebhookUpdateStatus,
        *,
        error: str | None = None,
    ) -> bool:
        ...


class SqlWebhookUpdateStore(WebhookUpdateStore):
    """WebhookUpdateStore backed by PostgreSQL, one session per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert_pending(self, update_id: int, payload: dict[str, Any]) -> None:
        try:
            async with self._session_factory() as session:
                await insert_pending(session, update_id, payload)
                await session.commit()
        except IntegrityError as exc:
            raise translate_integrity_error(exc) from exc
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    async def exists(self, update_id: int) -> bool:
        try:
            async with self._session_factory() as session:
                return await exists(session, update_id)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    async def set_status(
        self,
        update_id: int,
        status: WebhookUpdateStatus,
        *,
        error: str | None = None,
    ) -> bool:
        try:
            async with self._session_factory() as session:
                updated = await set_status(session, update_id, status.value, error=error)
                await session.commit()
                return updated
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
