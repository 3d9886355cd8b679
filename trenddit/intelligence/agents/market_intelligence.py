"""
Market intelligence agent.

Runs a four-step reasoning pipeline per query: market context, competitive
landscape, adoption forecast and synthesis. Each step asks the completion
service for JSON and falls back to a hand-written answer when the call fails
or the output does not parse.
"""

import asyncio
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Any, Optional
import logging

from .base import IntelligenceAgent
from ..cache import IntelligenceCache
from ..models.analysis import (
    AdoptionForecast,
    AdoptionStage,
    AdoptionTimeline,
    Analysis,
    CompetitorActivity,
    CompetitorEvent,
    Context,
    Outcome,
    OutcomeResult,
    ReasoningStep,
    TimeHorizon,
    TrendMomentum,
    TrendMomentumAnalysis,
)
from ..models.common import clamp
from ...utils.ai_client import CompletionOptions, CompletionService, parse_json_object


logger = logging.getLogger(__name__)

AGENT_TYPE = "market-intelligence"
AGENT_VERSION = "1.0.0"

CAPABILITIES = [
    "trend-momentum-analysis",
    "competitive-intelligence",
    "adoption-forecasting",
    "market-sentiment-analysis",
    "chain-of-thought-reasoning",
]

DEFAULT_CONFIDENCE = 0.7
DEGRADED_CONFIDENCE = 0.3
FALLBACK_STEP_CONFIDENCE = 0.4

# Learned baseline bounds
MIN_CONFIDENCE = 0.3
MAX_CONFIDENCE = 0.9
OUTCOME_HISTORY_SIZE = 50

OUTCOME_SCORES = {
    OutcomeResult.SUCCESS: 1.0,
    OutcomeResult.PARTIAL: 0.5,
    OutcomeResult.FAILURE: 0.0,
}

MAX_SIGNALS = 5
MAX_LIST_ITEMS = 5

BASE_DATA_SOURCES = [
    "Market research reports",
    "Competitive analysis",
    "Industry news and trends",
    "Social media sentiment",
]

ALTERNATIVES = [
    "Consult multiple market research sources before committing budget",
    "Validate insights with industry expert interviews",
    "Monitor developments over an extended time period",
]


@dataclass
class StepResult:
    """Output of one reasoning step."""
    data: dict
    step: ReasoningStep
    fell_back: bool = False


class MarketIntelligenceAgent(IntelligenceAgent):
    """
    Real-time market analysis and competitive intelligence.
    """

    SYSTEM_PROMPT = (
        "You are a senior market intelligence analyst with expertise in AI and "
        "technology trends. Reason step by step, state your confidence, and "
        "respond only with the JSON object requested."
    )

    MARKET_CONTEXT_PROMPT = """Analyze the current market context for this question.

{context}

Recent market signals:
{signals}

Respond in this exact JSON format:
{{"market_signals": ["signal"], "sentiment": "one sentence on market sentiment", "confidence": 0.8}}"""

    COMPETITIVE_PROMPT = """Assess the competitive landscape for this question.

{context}

Respond in this exact JSON format:
{{"competitors": ["company"], "positioning": "one sentence on market structure", "confidence": 0.7}}"""

    ADOPTION_PROMPT = """Forecast the adoption timeline for this question.

{context}

Respond in this exact JSON format:
{{"timeline": "e.g. 12-18 months for mainstream adoption", "probability": 0.75, "confidence": 0.6}}"""

    SYNTHESIS_PROMPT = """Synthesize these findings into one conclusion sentence and one recommendation.

{context}

Market sentiment: {sentiment}
Competitive positioning: {positioning}
Adoption: {timeline} ({probability}% probability)

Respond in this exact JSON format:
{{"conclusion": "one sentence", "recommendation": "We recommend ...", "confidence": 0.7}}"""

    TREND_MOMENTUM_PROMPT = """Analyze the market momentum of this trend: {trend}

Consider market signals, adoption stage, and competitor activity.

Respond in this exact JSON format:
{{"momentum": "accelerating|steady|declining", "adoption_stage": "early|growth|maturity|decline",
"market_signals": [], "competitive_activity": [], "risk_factors": [], "opportunities": [], "confidence": 0.7}}"""

    COMPETITOR_PROMPT = """Analyze recent competitive activity for: {competitor}

Respond in this exact JSON format:
{{"activities": [{{"type": "product_launch|acquisition|partnership|funding|hiring",
"description": "", "impact": "low|medium|high"}}], "implications": []}}"""

    FORECAST_PROMPT = """Forecast the adoption of "{trend}" in the {industry} industry.

Respond in this exact JSON format:
{{"forecast_timeframe": "3months|6months|1year|2years", "adoption_probability": 0.75,
"timeline": {{"early_adopters": "", "mainstream": "", "late_adopters": ""}},
"catalysts": [], "barriers": [], "confidence": 0.7}}"""

    def __init__(
        self,
        completion_service: CompletionService,
        intelligence_cache: Optional[IntelligenceCache] = None,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ):
        super().__init__(AGENT_TYPE, AGENT_VERSION, CAPABILITIES)
        self.completion_service = completion_service
        self.intelligence_cache = intelligence_cache
        self.options = CompletionOptions(
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=True,
        )
        self._confidence = DEFAULT_CONFIDENCE
        self._reasoning_chain: list[ReasoningStep] = []
        self._learning_data: dict[str, deque] = defaultdict(lambda: deque(maxlen=OUTCOME_HISTORY_SIZE))

    # Agent contract

    async def analyze(self, context: Context) -> Analysis:
        """
        Run the four reasoning steps for one context.

        The returned Analysis carries its own reasoning. The agent-level chain
        is replaced only when a call finishes, so under concurrent calls
        get_reasoning_chain() reflects whichever call finished last.
        """
        try:
            signals = self._market_signals()
            market = await self._analyze_market_context(context, signals)
            competitive = await self._assess_competitive_landscape(context)
            adoption = await self._forecast_adoption_internal(context)
            synthesis = await self._synthesize(context, market, competitive, adoption)
        except Exception as e:
            logger.error(f"Market intelligence analysis failed: {e}")
            return self._degraded_analysis()

        steps = [market, competitive, adoption, synthesis]
        if all(result.fell_back for result in steps):
            logger.warning("All market intelligence steps fell back, returning degraded analysis")
            return self._degraded_analysis()

        chain = [result.step for result in steps]
        self._reasoning_chain = chain

        data_sources = list(BASE_DATA_SOURCES)
        if signals:
            data_sources.append("Cached market intelligence")

        return Analysis(
            conclusion=synthesis.data["conclusion"],
            confidence=sum(step.confidence for step in chain) / len(chain),
            reasoning=chain,
            evidence=[item for step in chain for item in step.evidence],
            alternatives=list(ALTERNATIVES),
            data_sources_used=data_sources,
        )

    async def learn(self, outcome: Outcome):
        """
        Record an outcome and reset the baseline to the observed success rate.
        Partial outcomes count half; in-progress outcomes are ignored.
        """
        self._learning_data[outcome.recommendation_id].append(outcome)

        scores = [
            OUTCOME_SCORES[o.actual_result]
            for history in self._learning_data.values()
            for o in history
            if o.actual_result in OUTCOME_SCORES
        ]
        if scores:
            success_rate = sum(scores) / len(scores)
            self._confidence = clamp(success_rate, MIN_CONFIDENCE, MAX_CONFIDENCE)
            logger.debug(f"Confidence baseline now {self._confidence:.2f} from {len(scores)} outcomes")

    def get_confidence(self) -> float:
        return self._confidence

    def get_reasoning_chain(self) -> list[ReasoningStep]:
        """Chain of the most recently finished analyze call; use Analysis.reasoning per query."""
        return list(self._reasoning_chain)

    async def _check_health(self) -> bool:
        return self.completion_service is not None

    # Reasoning steps

    async def _ask(self, prompt: str) -> Optional[dict]:
        """One JSON completion; None means fall back."""
        try:
            response = await self.completion_service.complete(self.SYSTEM_PROMPT, prompt, self.options)
        except Exception as e:
            logger.warning(f"Completion failed, using fallback: {e}")
            return None
        return parse_json_object(response)

    async def _analyze_market_context(self, context: Context, signals: list[str]) -> StepResult:
        prompt = self.MARKET_CONTEXT_PROMPT.format(
            context=context.describe(),
            signals="\n".join(f"- {s}" for s in signals) or "- none available",
        )
        data = await self._ask(prompt)

        fell_back = data is None or not isinstance(data.get("sentiment"), str)
        if fell_back:
            data = {
                "market_signals": [
                    "Increased enterprise RFPs mentioning AI capabilities",
                    "Growing developer community adoption",
                    "Regulatory frameworks beginning to emerge",
                ],
                "sentiment": "Cautiously optimistic with strong enterprise interest",
            }

        market_signals = _str_list(data.get("market_signals"))
        step = ReasoningStep(
            step=1,
            description="Analyzing current market context and signals",
            evidence=market_signals + signals,
            confidence=_step_confidence(data, fell_back, 0.8),
            assumptions=["Market data reflects real adoption patterns"],
        )
        return StepResult(data=data, step=step, fell_back=fell_back)

    async def _assess_competitive_landscape(self, context: Context) -> StepResult:
        data = await self._ask(self.COMPETITIVE_PROMPT.format(context=context.describe()))

        fell_back = data is None or not isinstance(data.get("positioning"), str)
        if fell_back:
            data = {
                "competitors": ["OpenAI", "Anthropic", "Google", "Microsoft"],
                "positioning": "Market fragmented with multiple strong players",
            }

        competitors = _str_list(data.get("competitors"))
        step = ReasoningStep(
            step=2,
            description="Assessing competitive landscape and positioning",
            evidence=[f"Identified {len(competitors)} major competitors: {', '.join(competitors)}"],
            confidence=_step_confidence(data, fell_back, 0.7),
            assumptions=["Public information reflects actual company strategies"],
        )
        return StepResult(data=data, step=step, fell_back=fell_back)

    async def _forecast_adoption_internal(self, context: Context) -> StepResult:
        data = await self._ask(self.ADOPTION_PROMPT.format(context=context.describe()))

        fell_back = data is None or not isinstance(data.get("timeline"), str)
        if fell_back:
            data = {
                "timeline": "12-18 months for mainstream enterprise adoption",
                "probability": 0.75,
            }
        data["probability"] = clamp(data.get("probability"), default=0.5)

        step = ReasoningStep(
            step=3,
            description="Forecasting adoption timeline and probability",
            evidence=[f"{data['timeline']} ({round(data['probability'] * 100)}% probability)"],
            confidence=_step_confidence(data, fell_back, 0.6),
            assumptions=["Historical adoption patterns predict future trends"],
        )
        return StepResult(data=data, step=step, fell_back=fell_back)

    async def _synthesize(
        self,
        context: Context,
        market: StepResult,
        competitive: StepResult,
        adoption: StepResult,
    ) -> StepResult:
        probability = round(adoption.data["probability"] * 100)
        prompt = self.SYNTHESIS_PROMPT.format(
            context=context.describe(),
            sentiment=market.data["sentiment"],
            positioning=competitive.data["positioning"],
            timeline=adoption.data["timeline"],
            probability=probability,
        )
        data = await self._ask(prompt)

        fell_back = data is None or not isinstance(data.get("conclusion"), str) or not data["conclusion"].strip()
        if fell_back:
            data = {
                "conclusion": (
                    f"Market analysis indicates {market.data['sentiment'].lower().rstrip('.')} "
                    f"with {competitive.data['positioning'].lower().rstrip('.')}. "
                    f"Adoption forecast suggests {adoption.data['timeline']} "
                    f"with {probability}% probability."
                ),
                "recommendation": "Consider validating the forecast against additional market sources before committing investment",
            }

        recommendation = data.get("recommendation")
        if not isinstance(recommendation, str) or not recommendation.strip():
            recommendation = "Consider piloting before broad investment"

        prior = [market.step, competitive.step, adoption.step]
        step = ReasoningStep(
            step=4,
            description=recommendation.strip(),
            evidence=["Multi-factor analysis synthesis"],
            # The synthesis is as strong as the steps feeding it
            confidence=_step_confidence(
                data, fell_back, sum(s.confidence for s in prior) / len(prior)
            ),
            assumptions=["Market dynamics remain stable over forecast period"],
        )
        data["conclusion"] = data["conclusion"].strip()
        return StepResult(data=data, step=step, fell_back=fell_back)

    def _market_signals(self) -> list[str]:
        """Titles of the most impactful cached intelligence records."""
        if self.intelligence_cache is None:
            return []

        records = self.intelligence_cache.get_cached_intelligence()
        records.sort(key=lambda r: (r.impact_score, r.confidence), reverse=True)
        return [
            f"{r.title} ({', '.join(r.sources)}, impact {r.impact_score:.0f}/10)"
            for r in records[:MAX_SIGNALS]
        ]

    def _degraded_analysis(self) -> Analysis:
        step = ReasoningStep(
            step=1,
            description="Fallback analysis due to service unavailability",
            evidence=["Service interruption"],
            confidence=DEGRADED_CONFIDENCE,
            assumptions=["Normal service will resume"],
        )
        self._reasoning_chain = [step]
        return Analysis(
            conclusion=(
                "Market intelligence analysis temporarily unavailable. Recommend consulting "
                "multiple data sources for comprehensive market assessment."
            ),
            confidence=DEGRADED_CONFIDENCE,
            reasoning=[step],
            evidence=["Fallback mode active"],
            alternatives=["Retry analysis when service available"],
            data_sources_used=["Internal fallback data"],
        )

    # Specialized analyses

    async def analyze_trend_momentum(self, trend: str) -> TrendMomentumAnalysis:
        data = await self._ask(self.TREND_MOMENTUM_PROMPT.format(trend=trend))
        if data is None:
            logger.warning(f"Trend momentum fallback for {trend}")
            return TrendMomentumAnalysis(
                trend=trend,
                market_signals=["Insufficient live data; momentum assumed steady"],
                confidence=FALLBACK_STEP_CONFIDENCE,
            )

        return TrendMomentumAnalysis(
            trend=trend,
            momentum=_enum_or(TrendMomentum, data.get("momentum"), TrendMomentum.STEADY),
            adoption_stage=_enum_or(AdoptionStage, data.get("adoption_stage"), AdoptionStage.GROWTH),
            market_signals=_str_list(data.get("market_signals")),
            competitive_activity=_str_list(data.get("competitive_activity")),
            risk_factors=_str_list(data.get("risk_factors")),
            opportunities=_str_list(data.get("opportunities")),
            confidence=data.get("confidence", FALLBACK_STEP_CONFIDENCE),
        )

    async def track_competitor_activity(self, competitors: list[str]) -> list[CompetitorActivity]:
        """Analyze competitors concurrently. A failed competitor gets an empty activity list."""
        results = await asyncio.gather(
            *(self._competitor_activity(c) for c in competitors),
            return_exceptions=True,
        )

        activities = []
        for competitor, result in zip(competitors, results):
            if isinstance(result, Exception):
                logger.error(f"Competitor analysis failed for {competitor}: {result}")
                result = _empty_activity(competitor)
            activities.append(result)
        return activities

    async def _competitor_activity(self, competitor: str) -> CompetitorActivity:
        data = await self._ask(self.COMPETITOR_PROMPT.format(competitor=competitor))
        if data is None:
            return _empty_activity(competitor)

        events = []
        for raw in data.get("activities") or []:
            if isinstance(raw, dict) and isinstance(raw.get("description"), str):
                events.append(CompetitorEvent(
                    type=str(raw.get("type") or "product_launch"),
                    description=raw["description"],
                    impact=raw.get("impact") if raw.get("impact") in ("low", "medium", "high") else "medium",
                ))

        return CompetitorActivity(
            competitor=competitor,
            activities=events,
            implications=_str_list(data.get("implications")),
        )

    async def forecast_adoption(self, trend: str, industry: str) -> AdoptionForecast:
        data = await self._ask(self.FORECAST_PROMPT.format(trend=trend, industry=industry))
        if data is None:
            logger.warning(f"Adoption forecast fallback for {trend} in {industry}")
            return AdoptionForecast(
                trend=trend,
                industry=industry,
                adoption_probability=0.75,
                catalysts=["Market pressure", "Regulatory requirements"],
                barriers=["Implementation complexity", "Cost considerations"],
                confidence=FALLBACK_STEP_CONFIDENCE,
            )

        timeline = data.get("timeline") if isinstance(data.get("timeline"), dict) else {}
        return AdoptionForecast(
            trend=trend,
            industry=industry,
            forecast_timeframe=_enum_or(TimeHorizon, data.get("forecast_timeframe"), TimeHorizon.ONE_YEAR),
            adoption_probability=data.get("adoption_probability", 0.5),
            timeline=AdoptionTimeline(**{
                k: str(v) for k, v in timeline.items()
                if k in AdoptionTimeline.model_fields and v
            }),
            catalysts=_str_list(data.get("catalysts")),
            barriers=_str_list(data.get("barriers")),
            confidence=data.get("confidence", FALLBACK_STEP_CONFIDENCE),
        )


def _str_list(value: Any, limit: int = MAX_LIST_ITEMS) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item not in (None, "")][:limit]


def _step_confidence(data: dict, fell_back: bool, default: float) -> float:
    if fell_back:
        return FALLBACK_STEP_CONFIDENCE
    return clamp(data.get("confidence"), default=default)


def _enum_or(enum_cls, value: Any, default):
    try:
        return enum_cls(value)
    except (TypeError, ValueError):
        return default


def _empty_activity(competitor: str) -> CompetitorActivity:
    return CompetitorActivity(
        competitor=competitor,
        implications=["No recent activity data available"],
    )
