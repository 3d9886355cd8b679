"""
Intelligence service.

Wires the fetcher, processor, cache, agents and orchestrator together and
exposes the operations the API layer calls. Construct one per process and
close it on shutdown.
"""

import asyncio
import copy
import time
from datetime import datetime
from typing import Optional
import logging

from .agents import AgentRegistry, MarketIntelligenceAgent
from .aggregation import SourceFetcher
from .cache import IntelligenceCache
from .generation import StreamingTrendGenerator
from .models.analysis import Context, IntelligenceQuery, Outcome, OutcomeResult
from .models.cache import CacheConfig
from .models.intelligence import ProcessedIntelligence
from .orchestration import IntelligenceSynthesisError, MultiAgentOrchestrator
from .processing import IntelligenceProcessor
from ..utils.ai_client import CompletionService, GeminiCompletionService
from config.settings import Settings, get_settings


logger = logging.getLogger(__name__)

SYNTHESIS_KEY_PREFIX = "market-synthesis"
SYNTHESIS_TAGS = ["market-synthesis", "real-time-intelligence"]

OUTCOME_ACCURACY = {
    OutcomeResult.SUCCESS: 1.0,
    OutcomeResult.PARTIAL: 0.5,
    OutcomeResult.FAILURE: 0.0,
}

# Dashboard window
RECENT_MAX_AGE_SECONDS = 3600
RECENT_MIN_CONFIDENCE = 0.6


class IntelligenceService:
    """Facade over the intelligence engine."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        completion_service: Optional[CompletionService] = None,
        fetcher: Optional[SourceFetcher] = None,
        processor: Optional[IntelligenceProcessor] = None,
        cache: Optional[IntelligenceCache] = None,
        registry: Optional[AgentRegistry] = None,
        orchestrator: Optional[MultiAgentOrchestrator] = None,
    ):
        self.settings = settings or get_settings()
        self.completion_service = completion_service or GeminiCompletionService.from_settings(self.settings)

        self.fetcher = fetcher or SourceFetcher(settings=self.settings)
        self.processor = processor or IntelligenceProcessor(
            self.completion_service,
            record_ttl_hours=self.settings.record_ttl_hours,
        )
        self.cache = cache or IntelligenceCache(CacheConfig(
            default_ttl=self.settings.cache_default_ttl_seconds,
            max_cache_size=self.settings.cache_max_size,
        ))
        self.orchestrator = orchestrator or MultiAgentOrchestrator()
        self.generator = StreamingTrendGenerator(self.completion_service, cache=self.cache)

        if registry is None:
            registry = AgentRegistry()
            registry.register(MarketIntelligenceAgent(
                self.completion_service,
                intelligence_cache=self.cache,
                temperature=self.settings.ai_temperature,
                max_tokens=self.settings.ai_max_tokens,
            ))
        self.registry = registry

        for source in self.fetcher.list_sources():
            self.cache.scorer.update_source_reliability(source.id, source.reliability)

    def close(self):
        """Release in-memory state."""
        self.cache.clear()
        self.registry.clear()
        self.orchestrator.context_sharing.clear_context()
        logger.info("Intelligence service closed")

    async def ingest_and_cache(self, source_ids: Optional[list[str]] = None) -> list[ProcessedIntelligence]:
        """
        Fetch, process and cache fresh intelligence.
        """
        raws = await self.fetcher.ingest(source_ids)
        records = await self.processor.process_batch(raws)
        cached = self.cache.cache_intelligence(records)
        logger.info(f"Cached {cached} intelligence records")
        return records

    async def synthesize_market_intelligence(
        self,
        query: str,
        data_sources: Optional[list[str]] = None,
        confidence_threshold: float = 0.7,
        include_reasoning_chain: bool = True,
    ) -> dict:
        """
        Answer a market question with a multi-agent synthesis.

        A cached synthesis is returned when its confidence meets the
        threshold. Otherwise fresh data is ingested (when sources are given),
        healthy agents analyze concurrently, and the result is cached for
        30 minutes.

        Raises:
            IntelligenceSynthesisError: if no agent is available or none succeeds
        """
        start = time.monotonic()
        cache_key = f"{SYNTHESIS_KEY_PREFIX}:{query}"

        cached = self.cache.get(cache_key)
        if isinstance(cached, dict) and cached.get("confidence", 0) >= confidence_threshold:
            logger.info(f"Synthesis cache hit for: {query}")
            result = copy.deepcopy(cached)
            result["metadata"]["cache_status"] = "hit"
            return result

        if data_sources:
            await self.ingest_and_cache(data_sources)

        context = Context(domain=query, confidence_threshold=confidence_threshold)
        intelligence_query = IntelligenceQuery(
            query=query,
            context=context,
            max_response_time=self.settings.agent_max_response_time,
        )

        healthy = await self.registry.get_healthy()
        agents = [agent for agent in healthy if agent.can_handle(context)]
        if not agents:
            raise IntelligenceSynthesisError("No intelligence agents available for analysis")

        synthesis = await self.orchestrator.coordinate(agents, intelligence_query)

        result = {
            "query": query,
            "synthesis": synthesis.primary_conclusion,
            "confidence": synthesis.overall_confidence,
            "reasoning": (
                [step.model_dump(mode="json") for a in synthesis.agent_analyses for step in a.reasoning]
                if include_reasoning_chain else None
            ),
            "cross_agent_insights": synthesis.cross_agent_insights,
            "recommended_actions": synthesis.recommended_actions,
            "risk_factors": synthesis.risk_factors,
            "alternatives": synthesis.alternative_perspectives,
            "data_freshness": {
                "last_ingestion": datetime.now().isoformat(),
                "sources_used": list(data_sources) if data_sources else ["cached-intelligence"],
                "data_quality": synthesis.overall_confidence,
            },
            "metadata": {
                "agents_used": [agent.agent_type for agent in agents],
                "processing_time_ms": round((time.monotonic() - start) * 1000),
                "cache_status": "miss",
            },
        }

        self.cache.set(
            cache_key,
            result,
            ttl=self.settings.synthesis_cache_ttl_seconds,
            confidence=synthesis.overall_confidence,
            tags=SYNTHESIS_TAGS,
        )
        return copy.deepcopy(result)

    async def record_outcome(self, outcome: Outcome, intelligence_type=None):
        """Feed an observed outcome to every agent and, if typed, to the scorer."""
        agents = self.registry.get_all()
        results = await asyncio.gather(
            *(agent.learn(outcome) for agent in agents),
            return_exceptions=True,
        )
        for agent, result in zip(agents, results):
            if isinstance(result, Exception):
                logger.error(f"Agent {agent.agent_type} failed to learn: {result}")

        accuracy = OUTCOME_ACCURACY.get(outcome.actual_result)
        if intelligence_type is not None and accuracy is not None:
            self.cache.update_accuracy(intelligence_type, accuracy)

    async def get_dashboard(self) -> dict:
        """Snapshot of cache, agent and source state."""
        recent = self.cache.get_entries(
            min_confidence=RECENT_MIN_CONFIDENCE,
            max_age=RECENT_MAX_AGE_SECONDS,
        )
        healthy = await self.registry.get_healthy()

        return {
            "cache": self.cache.get_stats().model_dump(),
            "recent_intelligence": [
                {
                    "key": entry.key,
                    "confidence": entry.confidence,
                    "tags": entry.tags,
                    "created_at": entry.created_at.isoformat(),
                }
                for entry in sorted(recent, key=lambda e: e.confidence, reverse=True)
            ],
            "agents": {
                "registered": len(self.registry),
                "healthy": len(healthy),
                "types": [agent.agent_type for agent in healthy],
            },
            "sources": self.fetcher.get_source_health(),
            "generated_at": datetime.now().isoformat(),
        }

    def stream_trends(self, total_count: int = 20, profile=None, on_progress=None):
        """Async iterator of TrendBatch; see StreamingTrendGenerator.generate_batches."""
        return self.generator.generate_batches(total_count, profile, on_progress)
