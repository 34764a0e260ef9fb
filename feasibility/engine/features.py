import math
import re
import statistics

from feasibility.engine.money import BudgetAmount
from feasibility.engine.policy import ScoringPolicy
from feasibility.models.factors import Factor, FactorDiscovery
from feasibility.models.profiles import BusinessProfile, LocationProfile

_PERCENT_RE = re.compile(r"(?<![\d.])(-?\d+(?:\.\d+)?)\s*%")
_NUMBER_RE = re.compile(r"(?<![\d.])-?\d+(?:\.\d+)?")


def _finite(value: float, default: float) -> float:
    return value if isinstance(value, (int, float)) and math.isfinite(value) else default


def weighted_mean(factors: list[Factor], default: float = 50.0) -> float:
    """Weighted mean of factor scores, normalizing weights that do not sum to 1."""
    total_weight = sum(f.weight for f in factors)
    if total_weight <= 0:
        return default
    mean = sum(f.score * f.weight for f in factors) / total_weight
    return min(100.0, max(0.0, _finite(mean, default)))


def parse_growth_percent(text: str | None) -> float | None:
    """Pull a growth percentage out of a string like '12-15% CAGR'. Prefers '%'-tagged numbers."""
    if not text:
        return None
    match = _PERCENT_RE.search(text) or _NUMBER_RE.search(text)
    if not match:
        return None
    return float(match.group(1) if match.re is _PERCENT_RE else match.group(0))


def setup_cost_basis(discovery: FactorDiscovery, business: BusinessProfile) -> tuple[float, str]:
    """Setup cost the budget is measured against: market estimate, else category benchmark."""
    if discovery.avg_setup_cost > 0:
        return discovery.avg_setup_cost, "market estimate"
    return business.minimum_setup_cost, "category benchmark"


def budget_ratio(budget: BudgetAmount, cost_basis: float) -> float:
    if cost_basis <= 0:
        return 1.0
    return _finite(budget.amount / cost_basis, 1.0)


def extract_features(
    discovery: FactorDiscovery,
    business: BusinessProfile,
    location: LocationProfile,
    budget: BudgetAmount,
    policy: ScoringPolicy,
) -> dict[str, float]:
    """Fixed feature vector shared by every scoring strategy. All values are finite."""
    factors = discovery.factors
    scores = [f.score for f in factors]

    cost_basis, _ = setup_cost_basis(discovery, business)
    ratio = min(policy.budget_ratio_cap, budget_ratio(budget, cost_basis))

    if discovery.direct_competitors or discovery.indirect_competitors:
        weighted_competitors = (
            discovery.direct_competitors
            + policy.indirect_competitor_weight * discovery.indirect_competitors
        )
        competition = min(1.0, weighted_competitors / policy.competitor_saturation)
    else:
        competition = business.competitive_intensity

    growth_percent = parse_growth_percent(discovery.market_growth)
    if growth_percent is None:
        growth_percent = business.growth_rate_percent
    growth = min(1.0, max(0.0, growth_percent / policy.growth_saturation_percent))

    revenue = discovery.avg_monthly_revenue
    expenses = discovery.avg_monthly_expenses
    if discovery.avg_profit_margin > 0:
        margin = discovery.avg_profit_margin
    elif revenue > 0 and expenses > 0:
        margin = max(0.0, (revenue - expenses) / revenue)
    else:
        margin = business.typical_margin

    if expenses > 0:
        rev_exp = min(policy.revenue_expense_cap, revenue / expenses)
    elif revenue > 0:
        rev_exp = policy.revenue_expense_cap
    else:
        rev_exp = 1.0

    dispersion = statistics.pstdev(scores) / policy.dispersion_scale if len(scores) > 1 else 0.0

    return {
        "weighted_score": weighted_mean(factors, policy.neutral_score),
        "budget_ratio": ratio,
        "competition_density": competition,
        "market_growth": growth,
        "profit_margin": min(1.0, margin),
        "location_tier_score": policy.tier_scores[location.tier - 1],
        "revenue_expense_ratio": _finite(rev_exp, 1.0),
        "score_dispersion": min(1.0, dispersion),
        "max_factor_score": float(max(scores)) if scores else policy.neutral_score,
        "min_factor_score": float(min(scores)) if scores else policy.neutral_score,
    }
