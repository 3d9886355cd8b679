"""
Keyword heuristics for raw intelligence.

Used when AI analysis is unavailable or returns fields that do not validate.
Matching is on word boundaries so "ai" does not fire inside "said", with
plural and inflected endings allowed ("competitors", "declined").
"""

import json
import re
from functools import lru_cache
from typing import Any

from ..models.intelligence import IntelligenceType, Sentiment


TYPE_RULES = [
    (IntelligenceType.COMPETITOR, ("competitor", "acquisition")),
    (IntelligenceType.REGULATORY, ("regulation", "compliance")),
    (IntelligenceType.TREND, ("trend", "ai", "ml")),
    (IntelligenceType.MARKET_SENTIMENT, ("sentiment", "market")),
]

POSITIVE_WORDS = ("good", "great", "excellent", "positive", "growth", "success")
NEGATIVE_WORDS = ("bad", "poor", "negative", "decline", "failure", "risk")

KNOWN_ENTITIES = ("openai", "google", "microsoft", "anthropic", "ai", "machine learning")
KNOWN_TAGS = ("ai", "ml", "nlp", "computer vision", "robotics", "automation")

TITLE_FIELDS = ("title", "name", "headline")
SUMMARY_FIELDS = ("summary", "description", "selftext")
SUMMARY_MAX_CHARS = 200

BASE_IMPACT = 5

INFLECTIONS = ("s", "es", "ed", "ing")


@lru_cache(maxsize=256)
def _word_pattern(phrase: str) -> re.Pattern:
    endings = INFLECTIONS + ("d",) if phrase.endswith("e") else INFLECTIONS
    return re.compile(rf"\b{re.escape(phrase)}(?:{'|'.join(endings)})?\b")


def contains_word(text: str, phrase: str) -> bool:
    """Word-boundary match of a lowercase phrase or one of its inflections."""
    return _word_pattern(phrase).search(text) is not None


def payload_text(payload: Any) -> str:
    """Lowercased text form of a payload for keyword matching."""
    if isinstance(payload, str):
        return payload.lower()
    try:
        return json.dumps(payload, default=str).lower()
    except (TypeError, ValueError):
        return str(payload).lower()


def infer_type(payload: Any) -> IntelligenceType:
    text = payload_text(payload)
    for intel_type, keywords in TYPE_RULES:
        if any(contains_word(text, word) for word in keywords):
            return intel_type
    return IntelligenceType.TECHNICAL


def analyze_sentiment(payload: Any) -> Sentiment:
    text = payload_text(payload)
    positive = sum(1 for word in POSITIVE_WORDS if contains_word(text, word))
    negative = sum(1 for word in NEGATIVE_WORDS if contains_word(text, word))

    if positive > negative:
        return Sentiment.POSITIVE
    if negative > positive:
        return Sentiment.NEGATIVE
    return Sentiment.NEUTRAL


def extract_entities(payload: Any) -> list[str]:
    text = payload_text(payload)
    return [entity for entity in KNOWN_ENTITIES if contains_word(text, entity)]


def extract_tags(payload: Any) -> list[str]:
    text = payload_text(payload)
    return [tag for tag in KNOWN_TAGS if contains_word(text, tag)]


def calculate_impact_score(payload: Any, reliability: float) -> int:
    """
    Keyword impact score.

    Base 5, +3 for breakthrough news, +2 for funding or acquisitions, +2 for
    regulation or policy, scaled by source reliability and clamped to 1..10.
    """
    text = payload_text(payload)
    score = BASE_IMPACT

    if contains_word(text, "breakthrough") or contains_word(text, "revolutionary"):
        score += 3
    if contains_word(text, "funding") or contains_word(text, "acquisition"):
        score += 2
    if contains_word(text, "regulation") or contains_word(text, "policy"):
        score += 2

    return max(1, min(10, round(score * reliability)))


def _first_text(payload: Any, fields: tuple) -> str:
    if not isinstance(payload, dict):
        return ""
    for field in fields:
        value = payload.get(field)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def extract_title(payload: Any) -> str:
    if isinstance(payload, dict):
        title = payload.get("title")
        # WordPress wraps rendered fields
        if isinstance(title, dict):
            title = title.get("rendered")
        if isinstance(title, str) and title.strip():
            return title.strip()
    return _first_text(payload, TITLE_FIELDS) or "Untitled Intelligence"


def extract_summary(payload: Any) -> str:
    summary = _first_text(payload, SUMMARY_FIELDS)
    if summary:
        return summary

    if isinstance(payload, dict):
        content = payload.get("content") or payload.get("excerpt")
        if isinstance(content, dict):
            content = content.get("rendered")
        if isinstance(content, str) and content.strip():
            return content.strip()[:SUMMARY_MAX_CHARS]

    return "No summary available"
