import logging

from feasibility.engine.engine import ScoringEngine
from feasibility.engine.money import BudgetAmount
from feasibility.engine.projection import add_monthly_breakdown
from feasibility.models.report import AnalysisReport
from feasibility.models.scoring import ScoringResult, YearRecord

logger = logging.getLogger(__name__)


def project_monthly(engine: ScoringEngine, scoring: ScoringResult) -> list[YearRecord]:
    """Seasonal month-by-month view of the engine's yearly projections."""
    return add_monthly_breakdown(scoring.financial_projections, engine.policy.projection)


def rescore_report(report: AnalysisReport, engine: ScoringEngine) -> AnalysisReport:
    """Recompute scoring for a stored report from its saved discovery. No model call is made.

    Projections keep the original start year so the yearly rows stay comparable,
    and the stored verdict is passed on so the hysteresis band applies.
    """
    if not (report.discovery and report.business_profile and report.location_profile and report.scoring):
        raise ValueError("Report has no completed scoring to recompute")

    budget = BudgetAmount.from_raw(report.request_summary.get("budget"))
    start_year = report.scoring.financial_projections[0].year if report.scoring.financial_projections else None
    scoring = engine.evaluate(
        report.discovery, report.business_profile, report.location_profile, budget,
        start_year=start_year, previous_verdict=report.scoring.verdict,
    )

    update: dict = {"scoring": scoring}
    if report.analysis:
        projection = report.analysis.financial_projection.model_copy(update={
            "yearly_data": project_monthly(engine, scoring),
            "break_even_months": scoring.break_even_months,
            "roi": scoring.roi,
        })
        update["analysis"] = report.analysis.model_copy(update={
            "verdict": scoring.verdict,
            "score": scoring.score,
            "budget_fit_percent": scoring.budget_fit_percent,
            "financial_projection": projection,
        })
        if scoring.verdict != report.scoring.verdict or scoring.score != report.scoring.score:
            update["narrative_warnings"] = report.narrative_warnings + [
                f"Rescored with {scoring.strategy}: {report.scoring.score} {report.scoring.verdict} -> "
                f"{scoring.score} {scoring.verdict}; narrative text describes the earlier result"
            ]

    logger.info(
        f"Rescored {report.id} with {scoring.strategy}: "
        f"{report.scoring.score} -> {scoring.score} ({scoring.verdict})"
    )
    return report.model_copy(update=update)
