import math

from feasibility.engine.policy import ProjectionPolicy
from feasibility.models.scoring import YearRecord


def break_even_months(setup_cost: float, monthly_profit: float, cap: int) -> int:
    """Months to recover setup cost.

    ``cap`` applies only when the business never turns a profit. A slow but
    positive payback is reported as is, even past the cap.
    """
    if monthly_profit <= 0 or not math.isfinite(monthly_profit):
        return cap
    return max(0, math.ceil(setup_cost / monthly_profit))


def annual_roi(monthly_profit: float, budget_amount: float) -> int:
    """Annualized return on the budget in percent; negative for losses."""
    if budget_amount <= 0 or not math.isfinite(monthly_profit):
        return 0
    return int(round(monthly_profit * 12 / budget_amount * 100))


def confidence_multiplier(score: int, policy: ProjectionPolicy) -> float:
    """Linear map of score 0..100 onto [confidence_min, confidence_max].

    Low scoring ideas are assumed to under-perform their naive revenue
    estimate and high scoring ones to beat it.
    """
    span = policy.confidence_max - policy.confidence_min
    return round(policy.confidence_min + span * min(100, max(0, score)) / 100, 4)


def project_years(
    monthly_revenue: float,
    monthly_expenses: float,
    multiplier: float,
    start_year: int,
    policy: ProjectionPolicy,
) -> list[YearRecord]:
    records = []
    for i in range(policy.horizon_years):
        growth = policy.revenue_growth_curve[i]
        revenue = round(monthly_revenue * 12 * growth * multiplier)
        expenses = round(monthly_expenses * 12 * (1 + i * policy.expense_growth_per_year))
        records.append(YearRecord(year=start_year + i, revenue=revenue, expenses=expenses))
    return records
