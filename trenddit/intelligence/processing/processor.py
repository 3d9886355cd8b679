"""AI enrichment of raw intelligence with heuristic fallback."""

import asyncio
import json
import time
import uuid
from datetime import datetime, timedelta
from typing import Any, Optional
import logging

from . import heuristics
from ..models.common import clamp
from ..models.intelligence import (
    IntelligenceType,
    ProcessedIntelligence,
    RawIntelligence,
    Sentiment,
)
from ...utils.ai_client import CompletionOptions, CompletionService, parse_json_object


logger = logging.getLogger(__name__)

# Fallback confidence multipliers on source reliability
UNPARSEABLE_CONFIDENCE_FACTOR = 0.8
FAILED_CALL_CONFIDENCE_FACTOR = 0.7

MAX_LIST_ITEMS = 5
MAX_TITLE_CHARS = 100
MAX_PAYLOAD_CHARS = 6000


class IntelligenceProcessor:
    """
    Turns one raw payload into one normalized intelligence record.

    The AI call is the primary path. Anything it gets wrong is filled in
    from keyword heuristics, so a single record never raises.
    """

    SYSTEM_PROMPT = (
        "You are an expert intelligence analyst specializing in technology and "
        "market trends. Analyze data comprehensively and objectively."
    )

    ANALYSIS_PROMPT = """Analyze this intelligence data from {source_id} ({source_type} source):

DATA TO ANALYZE:
{payload}

SOURCE RELIABILITY: {reliability}

Respond in this exact JSON format:
{{
  "type": "trend|competitor|market_sentiment|regulatory|technical",
  "title": "concise title (max 100 chars)",
  "summary": "2-3 sentence summary",
  "sentiment": "positive|neutral|negative",
  "entities": ["companies, technologies, people"],
  "tags": ["categorization tags"],
  "impact_score": 7,
  "confidence": 0.85
}}"""

    def __init__(
        self,
        completion_service: CompletionService,
        record_ttl_hours: float = 24,
        temperature: float = 0.2,
        max_tokens: int = 1500,
    ):
        self.completion_service = completion_service
        self.record_ttl = timedelta(hours=record_ttl_hours)
        self.options = CompletionOptions(
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=True,
        )
        self.processed_count = 0
        self.fallback_count = 0

    async def process(self, raw: RawIntelligence) -> ProcessedIntelligence:
        """
        Process one raw record. Never raises for a malformed record.
        """
        try:
            response = await self.completion_service.complete(
                self.SYSTEM_PROMPT,
                self._build_prompt(raw),
                self.options,
            )
        except Exception as e:
            logger.warning(f"AI processing failed for {raw.source_id}, using heuristics: {e}")
            self.fallback_count += 1
            return self._heuristic_record(raw, FAILED_CALL_CONFIDENCE_FACTOR)

        analysis = parse_json_object(response)
        if analysis is None:
            logger.warning(f"Unparseable AI analysis for {raw.source_id}, using heuristics")
            self.fallback_count += 1
            return self._heuristic_record(raw, UNPARSEABLE_CONFIDENCE_FACTOR)

        self.processed_count += 1
        return self._merge(raw, analysis)

    async def process_batch(self, raws: list[RawIntelligence]) -> list[ProcessedIntelligence]:
        """
        Process records concurrently. Failures are logged and dropped.
        """
        if not raws:
            return []

        results = await asyncio.gather(
            *(self.process(raw) for raw in raws),
            return_exceptions=True,
        )

        processed = []
        for raw, result in zip(raws, results):
            if isinstance(result, Exception):
                logger.error(f"Processing error for {raw.source_id}: {result}")
            else:
                processed.append(result)

        logger.info(f"Processed {len(processed)}/{len(raws)} raw records")
        return processed

    def _build_prompt(self, raw: RawIntelligence) -> str:
        try:
            payload = json.dumps(raw.raw_payload, indent=2, default=str)
        except (TypeError, ValueError):
            payload = str(raw.raw_payload)

        return self.ANALYSIS_PROMPT.format(
            source_id=raw.source_id,
            source_type=raw.source_type.value,
            payload=payload[:MAX_PAYLOAD_CHARS],
            reliability=raw.reliability,
        )

    def _merge(self, raw: RawIntelligence, analysis: dict) -> ProcessedIntelligence:
        """Validate AI fields one by one, filling gaps from heuristics."""
        payload = raw.raw_payload

        intel_type = _valid_enum(IntelligenceType, analysis.get("type")) or heuristics.infer_type(payload)
        sentiment = _valid_enum(Sentiment, analysis.get("sentiment")) or heuristics.analyze_sentiment(payload)

        impact = _valid_impact(analysis.get("impact_score"))
        if impact is None:
            impact = heuristics.calculate_impact_score(payload, raw.reliability)

        entities = analysis.get("entities")
        if isinstance(entities, list):
            entities = [str(e) for e in entities][:MAX_LIST_ITEMS]
        else:
            entities = heuristics.extract_entities(payload)

        tags = analysis.get("tags")
        if isinstance(tags, list):
            tags = [str(t) for t in tags][:MAX_LIST_ITEMS]
        else:
            tags = heuristics.extract_tags(payload)

        title = analysis.get("title")
        if not isinstance(title, str) or not title.strip():
            title = heuristics.extract_title(payload)

        summary = analysis.get("summary")
        if not isinstance(summary, str) or not summary.strip():
            summary = heuristics.extract_summary(payload)

        ai_confidence = _valid_confidence(analysis.get("confidence"))
        if ai_confidence is None:
            ai_confidence = raw.reliability * UNPARSEABLE_CONFIDENCE_FACTOR

        return self._build_record(
            raw,
            intel_type=intel_type,
            title=title.strip()[:MAX_TITLE_CHARS],
            summary=summary.strip(),
            sentiment=sentiment,
            confidence=ai_confidence,
            entities=entities,
            tags=tags,
            impact_score=impact,
        )

    def _heuristic_record(self, raw: RawIntelligence, confidence_factor: float) -> ProcessedIntelligence:
        payload = raw.raw_payload
        return self._build_record(
            raw,
            intel_type=heuristics.infer_type(payload),
            title=heuristics.extract_title(payload)[:MAX_TITLE_CHARS],
            summary=heuristics.extract_summary(payload),
            sentiment=heuristics.analyze_sentiment(payload),
            confidence=raw.reliability * confidence_factor,
            entities=heuristics.extract_entities(payload),
            tags=heuristics.extract_tags(payload),
            impact_score=heuristics.calculate_impact_score(payload, raw.reliability),
        )

    def _build_record(
        self,
        raw: RawIntelligence,
        intel_type: IntelligenceType,
        title: str,
        summary: str,
        sentiment: Sentiment,
        confidence: float,
        entities: list[str],
        tags: list[str],
        impact_score: float,
    ) -> ProcessedIntelligence:
        processed_at = datetime.now()
        return ProcessedIntelligence(
            id=_record_id(raw.source_id),
            type=intel_type,
            title=title,
            summary=summary,
            sentiment=sentiment,
            # A record is never more trustworthy than its source
            confidence=clamp(min(raw.reliability, confidence)),
            sources=[raw.source_id],
            entities=entities,
            tags=tags,
            impact_score=impact_score,
            processed_at=processed_at,
            expires_at=processed_at + self.record_ttl,
        )

    def get_stats(self) -> dict:
        return {
            "processed_count": self.processed_count,
            "fallback_count": self.fallback_count,
        }


def _record_id(source_id: str) -> str:
    return f"{source_id}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _valid_enum(enum_cls, value: Any):
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().lower())
        except ValueError:
            return None
    return None


def _valid_impact(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    if score != score or not 1 <= score <= 10:
        return None
    return score


def _valid_confidence(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number:
        return None
    return clamp(number)
