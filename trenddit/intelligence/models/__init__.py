"""Data models for the intelligence engine."""

from .intelligence import (
    DataSource,
    IntelligenceType,
    MarketChange,
    MarketChangeType,
    ProcessedIntelligence,
    RawIntelligence,
    Sentiment,
    SourceType,
)
from .analysis import (
    AdoptionForecast,
    AdoptionTimeline,
    AgentMetadata,
    Analysis,
    CompanyProfile,
    CompanySize,
    CompetitorActivity,
    CompetitorEvent,
    ConfidenceScore,
    Context,
    IntelligenceQuery,
    Outcome,
    OutcomeResult,
    ReasoningStep,
    SynthesizedIntelligence,
    TechMaturity,
    TimeHorizon,
    TrendMomentumAnalysis,
    UserProfile,
    UserRole,
)
from .trends import BatchProgress, Trend, TrendBatch, TrendCategory, TrendProfile
from .cache import CacheConfig, CacheEntry, CacheStats

__all__ = [
    # Intelligence models
    "DataSource",
    "IntelligenceType",
    "MarketChange",
    "MarketChangeType",
    "ProcessedIntelligence",
    "RawIntelligence",
    "Sentiment",
    "SourceType",
    # Analysis models
    "AdoptionForecast",
    "AdoptionTimeline",
    "AgentMetadata",
    "Analysis",
    "CompanyProfile",
    "CompanySize",
    "CompetitorActivity",
    "CompetitorEvent",
    "ConfidenceScore",
    "Context",
    "IntelligenceQuery",
    "Outcome",
    "OutcomeResult",
    "ReasoningStep",
    "SynthesizedIntelligence",
    "TechMaturity",
    "TimeHorizon",
    "TrendMomentumAnalysis",
    "UserProfile",
    "UserRole",
    # Trend models
    "BatchProgress",
    "Trend",
    "TrendBatch",
    "TrendCategory",
    "TrendProfile",
    # Cache models
    "CacheConfig",
    "CacheEntry",
    "CacheStats",
]
