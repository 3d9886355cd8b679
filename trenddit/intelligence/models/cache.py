"""Cache models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class CacheConfig(BaseModel):
    default_ttl: float = Field(default=3600.0, gt=0, description="Seconds")
    max_cache_size: int = Field(default=1000, ge=1)


class CacheEntry(BaseModel):
    """
    A cached value with its scoring metadata.
    access_count and last_accessed change on every hit.
    """

    key: str
    data: Any = None
    created_at: datetime
    expires_at: datetime
    access_count: int = 0
    last_accessed: datetime
    tags: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    data_hash: str


class CacheStats(BaseModel):
    total_entries: int = 0
    hits: int = 0
    misses: int = 0
    hit_rate: float = 0.0
    eviction_count: int = 0
    total_size: int = 0
    average_confidence: float = 0.0
