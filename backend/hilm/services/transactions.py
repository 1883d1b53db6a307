"""
Transaction inserts with retry on display-id collisions.

The store assigns ``display_id`` (max + 1 per user) at insert time, so two
concurrent inserts for one user may compute the same value and one of them
is rejected by ``unique_user_display_id``. That rejection is expected and
retried with capped exponential backoff; any other store error is raised
immediately.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable

from hilm.core.config import settings
from hilm.core.logging import get_logger
from hilm.db.errors import DuplicateKeyError, StoreError
from hilm.db.models.transaction import DISPLAY_ID_CONSTRAINT
from hilm.repositories.transactions import NewTransaction, TransactionStore

logger = get_logger(__name__)


class TransactionStoreError(Exception):
    """The store rejected the write for a reason other than a display-id collision."""

    def __init__(self, message: str, *, attempts: int = 1) -> None:
        self.attempts = attempts
        super().__init__(message)


class InsertRetryExhaustedError(Exception):
    """Every attempt collided on the display id."""

    def __init__(self, message: str, *, attempts: int = 0) -> None:
        self.attempts = attempts
        super().__init__(message)


@dataclass(frozen=True)
class BackoffPolicy:
    """Capped exponential backoff: base, 2*base, 4*base, ... up to max_delay_ms."""

    max_retries: int = 7
    base_delay_ms: int = 100
    max_delay_ms: int = 2000

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_ms(self, attempt: int) -> int:
        """Delay after the failed attempt with zero-based index ``attempt``."""
        return min(self.base_delay_ms * 2 ** attempt, self.max_delay_ms)

    @classmethod
    def from_settings(cls) -> "BackoffPolicy":
        return cls(
            max_retries=settings.TRANSACTION_INSERT_MAX_RETRIES,
            base_delay_ms=settings.TRANSACTION_INSERT_BASE_DELAY_MS,
            max_delay_ms=settings.TRANSACTION_INSERT_MAX_DELAY_MS,
        )


@dataclass(frozen=True)
class InsertResult:
    """Outcome of a successful insert."""

    id: uuid.UUID
    display_id: int
    duration_ms: int
    attempts: int


def is_display_id_collision(exc: Exception) -> bool:
    return isinstance(exc, DuplicateKeyError) and exc.constraint == DISPLAY_ID_CONSTRAINT


class TransactionService:
    """Persists transactions through a TransactionStore."""

    def __init__(
        self,
        store: TransactionStore,
        policy: BackoffPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.store = store
        self.policy = policy or BackoffPolicy()
        self._sleep = sleep

    async def insert_with_retry(self, record: NewTransaction) -> InsertResult:
        """
        Insert ``record``, retrying only display-id collisions.

        Raises:
            TransactionStoreError: the store rejected the write.
            InsertRetryExhaustedError: all attempts collided.
        """
        start = time.monotonic()
        log = logger.bind(user_id=record.user_id)

        for attempt in range(self.policy.max_attempts):
            try:
                stored = await self.store.insert(record)
            except StoreError as exc:
                if not is_display_id_collision(exc):
                    log.error(
                        "Transaction insert failed",
                        attempt=attempt + 1,
                        error=str(exc),
                    )
                    raise TransactionStoreError(
                        f"Failed to save transaction: {exc}",
                        attempts=attempt + 1,
                    ) from exc

                if attempt + 1 >= self.policy.max_attempts:
                    break

                delay_ms = self.policy.delay_ms(attempt)
                log.warning(
                    "Display id collision, retrying",
                    attempt=attempt + 1,
                    max_attempts=self.policy.max_attempts,
                    delay_ms=delay_ms,
                )
                await self._sleep(delay_ms / 1000)
                continue

            duration_ms = int((time.monotonic() - start) * 1000)
            if attempt > 0:
                log.info(
                    "Transaction saved after retry",
                    attempts=attempt + 1,
                    display_id=stored.display_id,
                    duration_ms=duration_ms,
                )
            return InsertResult(
                id=stored.id,
                display_id=stored.display_id,
                duration_ms=duration_ms,
                attempts=attempt + 1,
            )

        log.error("Transaction insert retries exhausted", attempts=self.policy.max_attempts)
        raise InsertRetryExhaustedError(
            f"Failed to save transaction after {self.policy.max_attempts} attempts "
            "due to concurrent inserts",
            attempts=self.policy.max_attempts,
        )
