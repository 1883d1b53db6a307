"""
ResponseCacheEntry — cached agent reply for a (user, normalized text) key.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, Column, DateTime, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB

from hilm.db.models.base import Base, utcnow


class ResponseCacheEntry(Base):
    """One row per cache key."""

    __tablename__ = "agent_response_cache"

    cache_key = Column(String(64), primary_key=True)
    user_id = Column(BigInteger, nullable=False, index=True)
    query_text = Column(Text, nullable=False)
    response = Column(JSONB, nullable=False)
    version = Column(Integer, nullable=False, default=1)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<ResponseCacheEntry {self.cache_key[:12]} user={self.user_id}>"
