"""Result cache table — used when Redis is unavailable."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, Integer, String, Text

from ..database import UTCDateTime
from .base import Base


class ResultCacheEntry(Base):
    __tablename__ = "result_cache"
    id = Column(Integer, primary_key=True)
    cache_key = Column(String(255), nullable=False, unique=True, index=True)
    data = Column(JSON, nullable=False)
    tags = Column(Text, default="")  # ",tag-a,tag-b," so LIKE '%,tag,%' matches whole tags
    expires_at = Column(UTCDateTime, nullable=False, index=True)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
