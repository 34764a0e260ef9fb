from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, timezone

from feasibility.models.base import CamelModel
from feasibility.models.factors import Factor, FactorDiscovery, MarketDataPoint
from feasibility.models.narrative import Risk, RoadmapPhase
from feasibility.models.profiles import BusinessProfile, LocationProfile
from feasibility.models.scoring import ScoringResult, Verdict, YearRecord
from feasibility.models.signals import ExternalSignals


class PipelineStep(BaseModel):
    step_name: str
    status: str = "pending"  # pending, running, completed, failed
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_ms: Optional[float] = None
    error: Optional[str] = None


class LLMCallLog(BaseModel):
    step_name: str
    model: str
    system_prompt: str
    user_prompt: str
    response: str
    tokens_used: Optional[int] = None
    duration_ms: Optional[float] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class MoneyRange(CamelModel):
    min: float
    max: float


class MarketAnalysis(CamelModel):
    size: str
    growth: str
    competition: str
    explanation: str = ""


class FinancialProjection(CamelModel):
    yearly_data: list[YearRecord]
    break_even_months: int
    roi: int
    explanation: str = ""
    setup_cost_range: Optional[MoneyRange] = None
    monthly_revenue_range: Optional[MoneyRange] = None
    monthly_expenses_range: Optional[MoneyRange] = None


class CompetitionAnalysis(CamelModel):
    direct_competitors: int
    indirect_competitors: int
    competitive_advantage: str = ""
    threats: list[str] = Field(default_factory=list)
    opportunities: list[str] = Field(default_factory=list)
    explanation: str = ""


class Roadmap(CamelModel):
    phases: list[RoadmapPhase] = Field(default_factory=list)
    explanation: str = ""


class AnalysisResult(CamelModel):
    """Response contract consumed by the presentation layer."""
    verdict: Verdict
    score: int
    summary: str
    budget_fit_percent: int
    market_analysis: MarketAnalysis
    financial_projection: FinancialProjection
    competition_analysis: CompetitionAnalysis
    roadmap: Roadmap
    risks: list[Risk] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    expert_insights: str = ""
    scoring_factors: dict[str, int] = Field(default_factory=dict, description="Factor name (spaces removed) to score")
    dynamic_factors: list[Factor] = Field(default_factory=list)
    market_data: list[MarketDataPoint] = Field(default_factory=list)
    business_idea: str
    location: str
    budget: str
    business_category: str
    city_tier: int


class AnalysisResponse(AnalysisResult):
    """What POST /api/analyses returns: the result plus the id it was stored under."""
    id: Optional[str] = None


class AnalysisReport(BaseModel):
    id: Optional[str] = None
    user_id: Optional[str] = None
    request_summary: dict = Field(default_factory=dict)
    business_profile: Optional[BusinessProfile] = None
    location_profile: Optional[LocationProfile] = None
    external_signals: Optional[ExternalSignals] = None
    discovery: Optional[FactorDiscovery] = None
    scoring: Optional[ScoringResult] = None
    analysis: Optional[AnalysisResult] = None
    error: Optional[str] = Field(None, description="User-facing error if the analysis could not be completed")
    narrative_warnings: list[str] = Field(default_factory=list, description="Narrative statements that disagreed with the scoring result")
    pipeline_steps: list[PipelineStep] = Field(default_factory=list)
    llm_call_logs: list[LLMCallLog] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
