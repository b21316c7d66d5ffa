from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class CacheEntry(BaseModel):
    """Cached provider output for one composite request key."""

    key: str  # "<operation>:<sha256 of request parameters>"
    content: str
    stored_at: datetime
