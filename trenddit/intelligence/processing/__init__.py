"""Processing of raw intelligence into normalized records."""

from .processor import IntelligenceProcessor

__all__ = ["IntelligenceProcessor"]
