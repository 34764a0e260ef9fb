import logging
from datetime import datetime, timezone

from feasibility.engine.features import budget_ratio, extract_features, setup_cost_basis
from feasibility.engine.financials import annual_roi, break_even_months, confidence_multiplier, project_years
from feasibility.engine.money import BudgetAmount
from feasibility.engine.policy import DEFAULT_POLICY, ScoringPolicy
from feasibility.engine.strategies import ScoringStrategy, get_strategy
from feasibility.engine.verdict import assign_verdict
from feasibility.models.factors import FactorDiscovery
from feasibility.models.profiles import BusinessProfile, LocationProfile
from feasibility.models.scoring import ScoringResult, Verdict

logger = logging.getLogger(__name__)


class ScoringEngine:
    """Deterministic scorer: (factors, business, location, budget) -> ScoringResult.

    Holds no per-request state, so a single instance is shared across requests.
    """

    def __init__(self, policy: ScoringPolicy = DEFAULT_POLICY, strategy: ScoringStrategy | None = None):
        self.policy = policy
        self.strategy = strategy or get_strategy(None, policy)

    def evaluate(
        self,
        discovery: FactorDiscovery,
        business: BusinessProfile,
        location: LocationProfile,
        budget: BudgetAmount,
        start_year: int | None = None,
        previous_verdict: Verdict | None = None,
    ) -> ScoringResult:
        """Score one request. ``previous_verdict`` applies the hysteresis band when rescoring."""
        features = extract_features(discovery, business, location, budget, self.policy)
        score, contributions = self.strategy.score(features)

        cost_basis, cost_source = setup_cost_basis(discovery, business)
        fit = min(100, int(round(budget_ratio(budget, cost_basis) * 100)))

        verdict, reasons = assign_verdict(
            score, fit, features["min_factor_score"], self.policy.verdict, previous=previous_verdict,
        )

        projection = self.policy.projection
        monthly_profit = discovery.avg_monthly_revenue - discovery.avg_monthly_expenses
        multiplier = confidence_multiplier(score, projection)
        years = project_years(
            discovery.avg_monthly_revenue,
            discovery.avg_monthly_expenses,
            multiplier,
            start_year or datetime.now(timezone.utc).year,
            projection,
        )

        result = ScoringResult(
            score=score,
            verdict=verdict,
            budget_fit_percent=fit,
            break_even_months=break_even_months(cost_basis, monthly_profit, projection.break_even_cap_months),
            roi=annual_roi(monthly_profit, budget.amount),
            financial_projections=years,
            strategy=self.strategy.name,
            policy_version=self.policy.version,
            features={k: round(v, 4) for k, v in features.items()},
            contributions=contributions,
            verdict_reasons=reasons,
            confidence_multiplier=multiplier,
            setup_cost_basis=cost_basis,
            setup_cost_source=cost_source,
            budget_amount=budget.amount,
            budget_specified=budget.specified,
        )
        logger.info(
            f"Scored with {self.strategy.name} (policy {self.policy.version}): "
            f"score={result.score}, verdict={result.verdict}, budget_fit={result.budget_fit_percent}%, "
            f"break_even={result.break_even_months}mo, roi={result.roi}%"
        )
        return result
