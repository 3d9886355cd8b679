"""
Intelligence models for the ingestion pipeline.
Sources, raw payloads, and normalized intelligence records.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .common import clamp, dedupe


DEFAULT_RECORD_TTL = timedelta(hours=24)


class SourceType(str, Enum):
    """Kind of upstream source; decides how its payload is parsed."""
    SOCIAL = "social"
    NEWS = "news"
    TECHNICAL = "technical"
    FINANCIAL = "financial"
    REVIEWS = "reviews"


class IntelligenceType(str, Enum):
    """Classification of a processed intelligence record."""
    TREND = "trend"
    COMPETITOR = "competitor"
    MARKET_SENTIMENT = "market_sentiment"
    REGULATORY = "regulatory"
    TECHNICAL = "technical"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class DataSource(BaseModel):
    """Configuration for an intelligence source."""

    id: str
    name: str
    type: SourceType
    url: str
    api_key: Optional[str] = None

    # Rate limiting
    rate_limit_per_hour: int = Field(default=60, ge=0)

    reliability: float = Field(default=0.7, ge=0.0, le=1.0)
    enabled: bool = True

    @field_validator("reliability", mode="before")
    @classmethod
    def _clamp_reliability(cls, value: Any) -> float:
        return clamp(value, default=0.5)


class RawIntelligence(BaseModel):
    """
    One opaque payload fragment fetched from a source.
    Discarded once it has been processed.
    """

    model_config = ConfigDict(frozen=True)

    source_id: str
    source_type: SourceType
    raw_payload: Any = None
    timestamp: datetime = Field(default_factory=datetime.now)
    source_url: Optional[str] = None
    reliability: float = Field(default=0.5, ge=0.0, le=1.0)

    @field_validator("reliability", mode="before")
    @classmethod
    def _clamp_reliability(cls, value: Any) -> float:
        return clamp(value, default=0.5)


class ProcessedIntelligence(BaseModel):
    """
    Normalized, typed intelligence record.
    Read-only once produced by the processor.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    type: IntelligenceType
    title: str
    summary: str
    sentiment: Sentiment = Sentiment.NEUTRAL
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    sources: list[str] = Field(default_factory=list)
    entities: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)

    # Business impact (1-10)
    impact_score: float = Field(default=5.0, ge=1.0, le=10.0)

    processed_at: datetime = Field(default_factory=datetime.now)
    expires_at: Optional[datetime] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        return clamp(value, default=0.5)

    @field_validator("impact_score", mode="before")
    @classmethod
    def _clamp_impact(cls, value: Any) -> float:
        return clamp(value, 1.0, 10.0, default=5.0)

    @field_validator("sources", mode="before")
    @classmethod
    def _unique_sources(cls, value: Any) -> list:
        if value is None:
            return []
        return dedupe(value)

    @model_validator(mode="after")
    def _default_expiry(self) -> "ProcessedIntelligence":
        if self.expires_at is None:
            # frozen model: bypass __setattr__ for the derived default
            object.__setattr__(self, "expires_at", self.processed_at + DEFAULT_RECORD_TTL)
        return self

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check whether the record is past its expiry."""
        return (now or datetime.now()) >= self.expires_at


class MarketChangeType(str, Enum):
    TREND_SHIFT = "trend_shift"
    COMPETITOR_ACTIVITY = "competitor_activity"
    REGULATORY_CHANGE = "regulatory_change"
    MARKET_OPPORTUNITY = "market_opportunity"


class MarketChange(BaseModel):
    """A real-world change that invalidates cached intelligence."""

    type: MarketChangeType
    description: str
    impact: str = Field(default="medium", description="low, medium, high")
    affected_entities: list[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.now)
