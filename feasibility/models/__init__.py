from feasibility.models.request import AnalysisRequest, NOT_SPECIFIED
from feasibility.models.profiles import BusinessProfile, LocationProfile
from feasibility.models.factors import Factor, FactorDiscovery, MarketDataPoint
from feasibility.models.signals import ExternalSignals, IndicatorPoint
from feasibility.models.scoring import MonthRecord, ScoringResult, StumpContribution, Verdict, YearRecord
from feasibility.models.narrative import Explanation, Risk, RoadmapPhase
from feasibility.models.report import (
    AnalysisReport, AnalysisResponse, AnalysisResult, CompetitionAnalysis, FinancialProjection, LLMCallLog,
    MarketAnalysis, MoneyRange, PipelineStep, Roadmap,
)

__all__ = [
    "AnalysisRequest", "NOT_SPECIFIED",
    "BusinessProfile", "LocationProfile",
    "Factor", "FactorDiscovery", "MarketDataPoint",
    "ExternalSignals", "IndicatorPoint",
    "MonthRecord", "ScoringResult", "StumpContribution", "Verdict", "YearRecord",
    "Explanation", "Risk", "RoadmapPhase",
    "AnalysisReport", "AnalysisResponse", "AnalysisResult", "CompetitionAnalysis", "FinancialProjection", "LLMCallLog",
    "MarketAnalysis", "MoneyRange", "PipelineStep", "Roadmap",
]
