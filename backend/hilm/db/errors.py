"""
Store-level exceptions and translation of driver errors.

Repositories catch SQLAlchemy's ``IntegrityError`` and re-raise it through
``translate_integrity_error`` so callers can tell a duplicate key (an
expected outcome for the ledger and the insert retrier) apart from any
other storage failure.
"""

from __future__ import annotations

import re

from sqlalchemy.exc import DBAPIError

UNIQUE_VIOLATION = "23505"

_CONSTRAINT_RE = re.compile(r'unique constraint "([^"]+)"')


class StoreError(Exception):
    """A storage operation failed for a reason other than a duplicate key."""
    pass


class DuplicateKeyError(StoreError):
    """A write violated a unique constraint."""

    def __init__(self, message: str, *, constraint: str | None = None) -> None:
        self.constraint = constraint
        super().__init__(message)


def _sqlstate(orig: object) -> str | None:
    # asyncpg exposes sqlstate, psycopg2 exposes pgcode; the SQLAlchemy
    # asyncpg adapter keeps the driver exception as __cause__.
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return str(code)
    return None


def _constraint_name(orig: object) -> str | None:
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        name = getattr(candidate, "constraint_name", None)
        if name:
            return str(name)
        diag = getattr(candidate, "diag", None)
        if diag is not None and getattr(diag, "constraint_name", None):
            return str(diag.constraint_name)
    match = _CONSTRAINT_RE.search(str(orig))
    return match.group(1) if match else None


def translate_integrity_error(exc: DBAPIError) -> StoreError:
    """Map a driver error to DuplicateKeyError or a generic StoreError."""
    orig = exc.orig
    if _sqlstate(orig) == UNIQUE_VIOLATION or "duplicate key value" in str(orig):
        return DuplicateKeyError(str(orig), constraint=_constraint_name(orig))
    return StoreError(str(orig))
