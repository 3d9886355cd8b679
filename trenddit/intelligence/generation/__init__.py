"""Streaming trend generation."""

from .batch_generator import CATEGORIES, StreamingTrendGenerator

__all__ = ["CATEGORIES", "StreamingTrendGenerator"]
