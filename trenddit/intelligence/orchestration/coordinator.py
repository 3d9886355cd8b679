"""
Multi-agent coordination.

Fans one query out to every eligible agent, tolerates individual failures and
timeouts, and synthesizes the survivors into one ranked conclusion.
"""

import asyncio
import re
from collections import Counter
from datetime import datetime
from typing import Any, Optional
import logging

from ..agents.base import IntelligenceAgent
from ..models.analysis import (
    Analysis,
    ConfidenceScore,
    Context,
    IntelligenceQuery,
    SynthesizedIntelligence,
)
from ..models.common import clamp, dedupe


logger = logging.getLogger(__name__)

HIGH_CONFIDENCE = 0.8
MODERATE_CONFIDENCE = 0.6
LOW_CONFIDENCE = 0.5

MAX_LIST_ITEMS = 5
MAX_THEMES = 3
MIN_THEME_LENGTH = 5
TOP_ANALYSES = 3

ACTION_CUES = ("recommend", "should", "must", "consider", "prioritize")

TOKEN_PATTERN = re.compile(r"[a-z0-9][a-z0-9'-]*")


class IntelligenceSynthesisError(RuntimeError):
    """Raised when no agent produced an analysis."""


class AnalysisTimeoutError(TimeoutError):
    """Raised when an agent exceeds its share of the response budget."""


class ContextSharingSystem:
    """Lets agents see the contexts other agents worked from."""

    def __init__(self):
        self._shared: dict[str, dict[str, dict[str, Any]]] = {}

    def share_context(self, from_agent: str, to_agent: str, context: Context):
        self._shared.setdefault(to_agent, {})[from_agent] = {
            "context": context,
            "timestamp": datetime.now(),
        }

    def get_shared_context(self, agent: str) -> dict[str, dict[str, Any]]:
        return dict(self._shared.get(agent, {}))

    def clear_context(self):
        self._shared.clear()


class ConfidenceAggregator:
    """Plain mean of agent confidences with per-agent breakdown."""

    def aggregate_confidence(
        self,
        analyses: list[Analysis],
        agent_types: Optional[list[str]] = None,
    ) -> ConfidenceScore:
        if not analyses:
            return ConfidenceScore(overall=0.0, factors=["No analyses available"])

        overall = sum(a.confidence for a in analyses) / len(analyses)

        breakdown = {}
        for index, analysis in enumerate(analyses):
            name = agent_types[index] if agent_types and index < len(agent_types) else f"analysis_{index}"
            breakdown[name] = clamp(analysis.confidence)

        factors = []
        high = sum(1 for a in analyses if a.confidence >= HIGH_CONFIDENCE)
        low = sum(1 for a in analyses if a.confidence < LOW_CONFIDENCE)
        if high:
            factors.append(f"{high} high-confidence analyses")
        if low:
            factors.append(f"{low} low-confidence analyses")

        evidence_count = sum(len(a.evidence) for a in analyses)
        if evidence_count >= 10:
            factors.append("Strong evidence base")
        elif evidence_count < 5:
            factors.append("Limited evidence available")

        return ConfidenceScore(overall=overall, breakdown=breakdown, factors=factors)


class MultiAgentOrchestrator:
    """
    Coordinates agents for one query at a time.

    Each agent gets half of the query's response budget. Timed-out calls are
    cancelled; their results, if any, are discarded.
    """

    def __init__(
        self,
        context_sharing: Optional[ContextSharingSystem] = None,
        aggregator: Optional[ConfidenceAggregator] = None,
    ):
        self.context_sharing = context_sharing or ContextSharingSystem()
        self.aggregator = aggregator or ConfidenceAggregator()

    async def coordinate(
        self,
        agents: list[IntelligenceAgent],
        query: IntelligenceQuery,
    ) -> SynthesizedIntelligence:
        """
        Run all agents concurrently and synthesize their analyses.

        Raises:
            IntelligenceSynthesisError: if no agent completed its analysis
        """
        agents = self._select_agents(agents, query.required_agents)
        context = query.context
        if not context.domain:
            context = context.model_copy(update={"domain": query.query})

        timeout = query.max_response_time / 2
        results = await asyncio.gather(
            *(self._run_agent(agent, context, timeout) for agent in agents),
            return_exceptions=True,
        )

        survivors: list[tuple[str, Analysis]] = []
        for agent, result in zip(agents, results):
            if isinstance(result, BaseException):
                logger.error(f"Agent {agent.agent_type} analysis failed: {result}")
            elif result is not None:
                survivors.append((agent.agent_type, result))

        if not survivors:
            raise IntelligenceSynthesisError(
                "Intelligence synthesis failed: no agent could complete analysis"
            )

        logger.info(f"{len(survivors)}/{len(agents)} agents completed analysis for: {query.query}")
        self._share_contexts([agent_type for agent_type, _ in survivors], context)

        analyses = [analysis for _, analysis in survivors]
        score = self.aggregate_confidence(analyses, [agent_type for agent_type, _ in survivors])

        return SynthesizedIntelligence(
            primary_conclusion=self._primary_conclusion(analyses),
            overall_confidence=score.overall,
            agent_analyses=analyses,
            cross_agent_insights=self._cross_agent_insights(analyses),
            recommended_actions=self._recommended_actions(analyses),
            risk_factors=self._risk_factors(analyses),
            alternative_perspectives=self._alternative_perspectives(analyses),
        )

    def share_context(self, from_agent: str, to_agent: str, context: Context):
        self.context_sharing.share_context(from_agent, to_agent, context)

    def aggregate_confidence(
        self, analyses: list[Analysis], agent_types: Optional[list[str]] = None
    ) -> ConfidenceScore:
        return self.aggregator.aggregate_confidence(analyses, agent_types)

    @staticmethod
    def _select_agents(
        agents: list[IntelligenceAgent], required: Optional[list[str]]
    ) -> list[IntelligenceAgent]:
        if not required:
            return list(agents)
        selected = [a for a in agents if a.agent_type in required]
        missing = set(required) - {a.agent_type for a in selected}
        if missing:
            logger.warning(f"Required agents not available: {', '.join(sorted(missing))}")
        return selected

    @staticmethod
    async def _run_agent(agent: IntelligenceAgent, context: Context, timeout: float) -> Analysis:
        try:
            return await asyncio.wait_for(agent.analyze(context), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise AnalysisTimeoutError(f"Analysis timeout after {timeout:.1f}s") from e

    def _share_contexts(self, agent_types: list[str], context: Context):
        for source in agent_types:
            for target in agent_types:
                if source != target:
                    self.share_context(source, target, context)

    # Synthesis

    def _cross_agent_insights(self, analyses: list[Analysis]) -> list[str]:
        insights = []

        themes = self._common_themes([a.conclusion for a in analyses])
        if themes:
            insights.append(f"Multiple agents converge on: {', '.join(themes)}")

        has_high = any(a.confidence >= HIGH_CONFIDENCE for a in analyses)
        has_low = any(a.confidence < LOW_CONFIDENCE for a in analyses)
        if has_high and has_low:
            insights.append("Mixed confidence levels indicate uncertainty in some analysis areas")

        overlap = self._evidence_overlap([item for a in analyses for item in a.evidence])
        if overlap:
            insights.append(f"Strong evidence support: {', '.join(overlap[:MAX_THEMES])}")

        return insights

    @staticmethod
    def _common_themes(conclusions: list[str]) -> list[str]:
        """Words longer than four letters that appear in at least two conclusions."""
        counts = Counter()
        for conclusion in conclusions:
            tokens = {t for t in TOKEN_PATTERN.findall(conclusion.lower()) if len(t) >= MIN_THEME_LENGTH}
            counts.update(tokens)

        shared = [(token, count) for token, count in counts.items() if count >= 2]
        shared.sort(key=lambda item: item[1], reverse=True)
        return [token for token, _ in shared[:MAX_THEMES]]

    @staticmethod
    def _evidence_overlap(evidence: list[str]) -> list[str]:
        counts = Counter(evidence)
        repeated = [(item, count) for item, count in counts.items() if count >= 2]
        repeated.sort(key=lambda item: item[1], reverse=True)
        return [item for item, _ in repeated]

    @staticmethod
    def _primary_conclusion(analyses: list[Analysis]) -> str:
        top = sorted(analyses, key=lambda a: a.confidence, reverse=True)[:TOP_ANALYSES]
        if not top:
            return "Low confidence: Analysis inconclusive"

        best = top[0]
        if best.confidence >= HIGH_CONFIDENCE:
            label = "High confidence"
        elif best.confidence >= MODERATE_CONFIDENCE:
            label = "Moderate confidence"
        else:
            label = "Low confidence"
        return f"{label}: {best.conclusion}"

    @staticmethod
    def _recommended_actions(analyses: list[Analysis]) -> list[str]:
        actions = []
        for analysis in analyses:
            for step in analysis.reasoning:
                description = step.description.lower()
                if any(cue in description for cue in ACTION_CUES):
                    actions.append(step.description)
        return dedupe(actions)[:MAX_LIST_ITEMS]

    @staticmethod
    def _risk_factors(analyses: list[Analysis]) -> list[str]:
        risks = []
        for analysis in analyses:
            for step in analysis.reasoning:
                if step.confidence < LOW_CONFIDENCE:
                    risks.append(f"Low confidence: {step.description}")
                risks.extend(f"Assumption: {assumption}" for assumption in step.assumptions)
        return dedupe(risks)[:MAX_LIST_ITEMS]

    @staticmethod
    def _alternative_perspectives(analyses: list[Analysis]) -> list[str]:
        alternatives = [alt for analysis in analyses for alt in analysis.alternatives]
        return dedupe(alternatives)[:MAX_LIST_ITEMS]
