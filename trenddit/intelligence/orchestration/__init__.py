"""Multi-agent orchestration."""

from .coordinator import (
    AnalysisTimeoutError,
    ConfidenceAggregator,
    ContextSharingSystem,
    IntelligenceSynthesisError,
    MultiAgentOrchestrator,
)

__all__ = [
    "AnalysisTimeoutError",
    "ConfidenceAggregator",
    "ContextSharingSystem",
    "IntelligenceSynthesisError",
    "MultiAgentOrchestrator",
]
