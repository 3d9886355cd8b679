"""Intelligence agents and their registry."""

from .base import IntelligenceAgent
from .market_intelligence import MarketIntelligenceAgent
from .registry import AgentRegistry

__all__ = [
    "AgentRegistry",
    "IntelligenceAgent",
    "MarketIntelligenceAgent",
]
