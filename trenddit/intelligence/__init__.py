"""
Trenddit Intelligence Engine

Ingests market signals, enriches them with generative AI, runs analysis
agents concurrently and caches confidence-scored results.

Components:
1. Aggregation - Rate-limited multi-source fetching (Reddit, HN, news feeds)
2. Processing - AI enrichment with keyword heuristic fallback
3. Agents - Uniform analysis contract and registry
4. Orchestration - Concurrent multi-agent synthesis
5. Cache - Confidence-scored store with value-based eviction
6. Generation - Streaming category batches of trends
"""

# Core models
from .models import (
    Analysis,
    Context,
    DataSource,
    IntelligenceQuery,
    Outcome,
    ProcessedIntelligence,
    RawIntelligence,
    SynthesizedIntelligence,
    Trend,
    TrendBatch,
    TrendProfile,
)

# Aggregation
from .aggregation import SlidingWindowRateLimiter, SourceFetcher

# Processing
from .processing import IntelligenceProcessor

# Scoring and cache
from .scoring import ConfidenceScorer
from .cache import IntelligenceCache

# Agents
from .agents import AgentRegistry, IntelligenceAgent, MarketIntelligenceAgent

# Orchestration
from .orchestration import (
    AnalysisTimeoutError,
    ConfidenceAggregator,
    ContextSharingSystem,
    IntelligenceSynthesisError,
    MultiAgentOrchestrator,
)

# Generation
from .generation import StreamingTrendGenerator

# Service
from .service import IntelligenceService

__all__ = [
    # Models
    "Analysis",
    "Context",
    "DataSource",
    "IntelligenceQuery",
    "Outcome",
    "ProcessedIntelligence",
    "RawIntelligence",
    "SynthesizedIntelligence",
    "Trend",
    "TrendBatch",
    "TrendProfile",
    # Aggregation
    "SlidingWindowRateLimiter",
    "SourceFetcher",
    # Processing
    "IntelligenceProcessor",
    # Scoring and cache
    "ConfidenceScorer",
    "IntelligenceCache",
    # Agents
    "AgentRegistry",
    "IntelligenceAgent",
    "MarketIntelligenceAgent",
    # Orchestration
    "AnalysisTimeoutError",
    "ConfidenceAggregator",
    "ContextSharingSystem",
    "IntelligenceSynthesisError",
    "MultiAgentOrchestrator",
    # Generation
    "StreamingTrendGenerator",
    # Service
    "IntelligenceService",
]
