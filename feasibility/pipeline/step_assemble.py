from feasibility.models.factors import FactorDiscovery
from feasibility.models.narrative import Explanation
from feasibility.models.profiles import BusinessProfile, LocationProfile
from feasibility.models.report import (
    AnalysisResult,
    CompetitionAnalysis,
    FinancialProjection,
    MarketAnalysis,
    MoneyRange,
    Roadmap,
)
from feasibility.models.request import AnalysisRequest
from feasibility.models.scoring import ScoringResult, YearRecord

PENDING = "Data pending"


def assemble_result(
    request: AnalysisRequest,
    business: BusinessProfile,
    location: LocationProfile,
    discovery: FactorDiscovery,
    scoring: ScoringResult,
    yearly_data: list[YearRecord],
    explanation: Explanation,
) -> AnalysisResult:
    """Build the response contract. Every number comes from scoring or discovery, never from prose."""
    return AnalysisResult(
        verdict=scoring.verdict,
        score=scoring.score,
        summary=explanation.summary or f"Analysis complete for {request.business_idea} in {request.location}.",
        budget_fit_percent=scoring.budget_fit_percent,
        market_analysis=MarketAnalysis(
            size=discovery.market_size or PENDING,
            growth=discovery.market_growth or PENDING,
            competition=f"{discovery.direct_competitors} direct, {discovery.indirect_competitors} indirect",
            explanation=explanation.market_explanation,
        ),
        financial_projection=FinancialProjection(
            yearly_data=yearly_data,
            break_even_months=scoring.break_even_months,
            roi=scoring.roi,
            explanation=explanation.financial_explanation,
            setup_cost_range=MoneyRange(
                min=discovery.estimated_setup_cost_min, max=discovery.estimated_setup_cost_max,
            ),
            monthly_revenue_range=MoneyRange(
                min=discovery.estimated_monthly_revenue_min, max=discovery.estimated_monthly_revenue_max,
            ),
            monthly_expenses_range=MoneyRange(
                min=discovery.estimated_monthly_expenses_min, max=discovery.estimated_monthly_expenses_max,
            ),
        ),
        competition_analysis=CompetitionAnalysis(
            direct_competitors=discovery.direct_competitors,
            indirect_competitors=discovery.indirect_competitors,
            competitive_advantage=explanation.competitive_advantage,
            threats=explanation.threats,
            opportunities=explanation.opportunities,
            explanation=explanation.competition_explanation,
        ),
        roadmap=Roadmap(phases=explanation.roadmap_phases, explanation=explanation.roadmap_explanation),
        risks=explanation.risks,
        recommendations=explanation.recommendations,
        expert_insights=explanation.expert_insights,
        scoring_factors={f.name.replace(" ", ""): f.score for f in discovery.factors},
        dynamic_factors=discovery.factors,
        market_data=discovery.market_data,
        business_idea=request.business_idea,
        location=request.location,
        budget=request.budget,
        business_category=business.category,
        city_tier=location.tier,
    )
