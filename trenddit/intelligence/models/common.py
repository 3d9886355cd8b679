"""Shared helpers for model validation."""

import math
from typing import Any


def clamp(value: Any, low: float = 0.0, high: float = 1.0, default: float | None = None) -> float:
    """
    Coerce a value into [low, high].

    Non-numeric and NaN inputs become ``default`` (or ``low`` when no default
    is given). Values from AI output and external sources pass through here
    before they reach a model field.
    """
    fallback = low if default is None else default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if math.isnan(number):
        return fallback
    return max(low, min(high, number))


def dedupe(items) -> list:
    """Remove duplicates, keeping first-seen order."""
    seen = set()
    unique = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        unique.append(item)
    return unique
