"""
Confidence scoring for processed intelligence.

Weighted blend of five factors, each clamped to [0, 1]:
source reliability, evidence strength, consensus, recency and the
historical accuracy of the record's type.
"""

from collections import defaultdict, deque
from datetime import datetime
from threading import Lock
from typing import Optional
import logging

from .models.common import clamp
from .models.intelligence import IntelligenceType, ProcessedIntelligence


logger = logging.getLogger(__name__)

WEIGHTS = {
    "source_reliability": 0.3,
    "evidence_strength": 0.25,
    "consensus": 0.2,
    "recency_boost": 0.15,
    "historical_accuracy": 0.1,
}

# (max age in hours, boost)
RECENCY_STEPS = [(1, 1.0), (6, 0.9), (24, 0.8), (72, 0.6)]
STALE_BOOST = 0.4

ACCURACY_HISTORY_SIZE = 100
NEUTRAL_SCORE = 0.5


class ConfidenceScorer:
    """Scores records and learns per-type accuracy from outcomes."""

    def __init__(self):
        self._history: dict[str, deque] = defaultdict(lambda: deque(maxlen=ACCURACY_HISTORY_SIZE))
        self._source_reliability: dict[str, float] = {}
        self._lock = Lock()

    def calculate_confidence(self, record: ProcessedIntelligence, now: Optional[datetime] = None) -> float:
        breakdown = self.get_confidence_breakdown(record, now)
        score = sum(breakdown[factor] * weight for factor, weight in WEIGHTS.items())
        return clamp(score)

    def get_confidence_breakdown(
        self, record: ProcessedIntelligence, now: Optional[datetime] = None
    ) -> dict[str, float]:
        """Per-factor scores for a record."""
        return {
            "source_reliability": clamp(self._source_score(record.sources)),
            "evidence_strength": clamp(self._evidence_strength(record)),
            "consensus": clamp(record.confidence),
            "recency_boost": self._recency_boost(record.processed_at, now),
            "historical_accuracy": clamp(self.get_historical_accuracy(record.type)),
        }

    def update_accuracy(self, intelligence_type, outcome: float):
        """
        Append an observed accuracy (0..1) to the rolling history of a type.
        Only the last 100 values per type are kept.
        """
        key = _type_key(intelligence_type)
        with self._lock:
            self._history[key].append(clamp(outcome))
        logger.debug(f"Recorded accuracy {outcome} for {key}")

    def update_source_reliability(self, source_id: str, reliability: float):
        with self._lock:
            self._source_reliability[source_id] = clamp(reliability, default=NEUTRAL_SCORE)

    def get_source_reliability(self, source_id: str) -> float:
        return self._source_reliability.get(source_id, NEUTRAL_SCORE)

    def get_historical_accuracy(self, intelligence_type) -> float:
        with self._lock:
            history = list(self._history.get(_type_key(intelligence_type), ()))
        if not history:
            return NEUTRAL_SCORE
        return sum(history) / len(history)

    def _source_score(self, sources: list[str]) -> float:
        if not sources:
            return NEUTRAL_SCORE
        return sum(self.get_source_reliability(s) for s in sources) / len(sources)

    @staticmethod
    def _evidence_strength(record: ProcessedIntelligence) -> float:
        strength = 0.5

        # Corroboration across sources
        if len(record.sources) > 3:
            strength += 0.2
        elif len(record.sources) > 1:
            strength += 0.1

        if len(record.entities) > 5:
            strength += 0.2
        elif len(record.entities) > 2:
            strength += 0.1

        if len(record.tags) > 3:
            strength += 0.1

        return strength

    @staticmethod
    def _recency_boost(processed_at: datetime, now: Optional[datetime] = None) -> float:
        hours_old = ((now or datetime.now()) - processed_at).total_seconds() / 3600
        for max_hours, boost in RECENCY_STEPS:
            if hours_old < max_hours:
                return boost
        return STALE_BOOST


def _type_key(intelligence_type) -> str:
    if isinstance(intelligence_type, IntelligenceType):
        return intelligence_type.value
    return str(intelligence_type)
