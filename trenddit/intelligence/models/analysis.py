"""
Analysis models for agents and the orchestrator.
Contexts going in, reasoning chains and syntheses coming out.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import clamp


def _unit(value: Any) -> float:
    return clamp(value, default=0.5)


class CompanySize(str, Enum):
    STARTUP = "startup"
    SMALL = "small"
    MEDIUM = "medium"
    ENTERPRISE = "enterprise"


class TechMaturity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class UserRole(str, Enum):
    CTO = "cto"
    INNOVATION_DIRECTOR = "innovation_director"
    COMPLIANCE_OFFICER = "compliance_officer"
    ENGINEERING_MANAGER = "engineering_manager"


class TimeHorizon(str, Enum):
    THREE_MONTHS = "3months"
    SIX_MONTHS = "6months"
    ONE_YEAR = "1year"
    TWO_YEARS = "2years"


class CompanyProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    industry: str
    size: CompanySize = CompanySize.MEDIUM
    tech_maturity: TechMaturity = TechMaturity.MEDIUM


class UserProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: UserRole
    experience: str = Field(default="senior", description="junior, mid, senior")


class Context(BaseModel):
    """
    Input bundle for one analysis call.
    Built by the caller of the orchestrator; immutable per call.
    """

    model_config = ConfigDict(frozen=True)

    company: Optional[CompanyProfile] = None
    user: Optional[UserProfile] = None
    domain: Optional[str] = None
    time_horizon: TimeHorizon = TimeHorizon.SIX_MONTHS
    confidence_threshold: float = Field(default=0.7, ge=0.0, le=1.0)

    @field_validator("confidence_threshold", mode="before")
    @classmethod
    def _clamp_threshold(cls, value: Any) -> float:
        return clamp(value, default=0.7)

    def describe(self) -> str:
        """Render the context as prompt-ready lines."""
        lines = []
        if self.domain:
            lines.append(f"Focus: {self.domain}")
        if self.company:
            lines.append(
                f"Company: {self.company.industry} industry, {self.company.size.value} size, "
                f"{self.company.tech_maturity.value} tech maturity"
            )
        if self.user:
            lines.append(f"Audience: {self.user.role.value} ({self.user.experience})")
        lines.append(f"Time horizon: {self.time_horizon.value}")
        return "\n".join(lines)


class ReasoningStep(BaseModel):
    """One stage of an agent's reasoning chain."""

    step: int
    description: str
    evidence: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    assumptions: list[str] = Field(default_factory=list)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        return _unit(value)


class Analysis(BaseModel):
    """One agent's complete output for one query."""

    model_config = ConfigDict(frozen=True)

    conclusion: str
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: list[ReasoningStep] = Field(default_factory=list)
    evidence: list[str] = Field(default_factory=list)
    alternatives: list[str] = Field(default_factory=list)
    data_sources_used: list[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.now)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        return _unit(value)


class OutcomeResult(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    PARTIAL = "partial"
    IN_PROGRESS = "in_progress"


class Outcome(BaseModel):
    """Observed result of acting on a recommendation."""

    recommendation_id: str
    actual_result: OutcomeResult
    user_feedback: Optional[int] = Field(default=None, ge=1, le=5)
    notes: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)


class IntelligenceQuery(BaseModel):
    """A question for the orchestrator."""

    query: str
    context: Context = Field(default_factory=Context)
    required_agents: Optional[list[str]] = None

    # Total budget in seconds; each agent gets half
    max_response_time: float = Field(default=30.0, gt=0)


class SynthesizedIntelligence(BaseModel):
    """The orchestrator's single output per query."""

    model_config = ConfigDict(frozen=True)

    primary_conclusion: str
    overall_confidence: float = Field(ge=0.0, le=1.0)
    agent_analyses: list[Analysis] = Field(default_factory=list)
    cross_agent_insights: list[str] = Field(default_factory=list)
    recommended_actions: list[str] = Field(default_factory=list)
    risk_factors: list[str] = Field(default_factory=list)
    alternative_perspectives: list[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.now)

    @field_validator("overall_confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        return _unit(value)


class ConfidenceScore(BaseModel):
    overall: float = Field(ge=0.0, le=1.0)
    breakdown: dict[str, float] = Field(default_factory=dict)
    factors: list[str] = Field(default_factory=list)

    @field_validator("overall", mode="before")
    @classmethod
    def _clamp_overall(cls, value: Any) -> float:
        return clamp(value, default=0.0)


class AgentMetadata(BaseModel):
    type: str
    version: str
    capabilities: list[str] = Field(default_factory=list)


# Market intelligence agent outputs

class TrendMomentum(str, Enum):
    ACCELERATING = "accelerating"
    STEADY = "steady"
    DECLINING = "declining"


class AdoptionStage(str, Enum):
    EARLY = "early"
    GROWTH = "growth"
    MATURITY = "maturity"
    DECLINE = "decline"


class TrendMomentumAnalysis(BaseModel):
    trend: str
    momentum: TrendMomentum = TrendMomentum.STEADY
    adoption_stage: AdoptionStage = AdoptionStage.GROWTH
    market_signals: list[str] = Field(default_factory=list)
    competitive_activity: list[str] = Field(default_factory=list)
    risk_factors: list[str] = Field(default_factory=list)
    opportunities: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        return _unit(value)


class CompetitorEvent(BaseModel):
    type: str = Field(default="product_launch", description="product_launch, acquisition, partnership, funding, hiring")
    description: str
    impact: str = Field(default="medium", description="low, medium, high")
    timestamp: datetime = Field(default_factory=datetime.now)


class CompetitorActivity(BaseModel):
    competitor: str
    activities: list[CompetitorEvent] = Field(default_factory=list)
    implications: list[str] = Field(default_factory=list)


class AdoptionTimeline(BaseModel):
    early_adopters: str = "3-6 months"
    mainstream: str = "6-12 months"
    late_adopters: str = "12-24 months"


class AdoptionForecast(BaseModel):
    trend: str
    industry: str
    forecast_timeframe: TimeHorizon = TimeHorizon.ONE_YEAR
    adoption_probability: float = Field(default=0.5, ge=0.0, le=1.0)
    timeline: AdoptionTimeline = Field(default_factory=AdoptionTimeline)
    catalysts: list[str] = Field(default_factory=list)
    barriers: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    @field_validator("adoption_probability", "confidence", mode="before")
    @classmethod
    def _clamp_unit(cls, value: Any) -> float:
        return _unit(value)
