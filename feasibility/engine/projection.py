from feasibility.engine.policy import DEFAULT_POLICY, ProjectionPolicy
from feasibility.models.scoring import MonthRecord, YearRecord


def _spread(total: int, weights: tuple[float, ...]) -> list[int]:
    """Split ``total`` by weights; the rounding residue lands on the last month."""
    parts = [round(total * w) for w in weights[:-1]]
    parts.append(total - sum(parts))
    return parts


def add_monthly_breakdown(
    years: list[YearRecord],
    policy: ProjectionPolicy = DEFAULT_POLICY.projection,
) -> list[YearRecord]:
    """Attach 12 seasonal MonthRecords to each year. Expenses are spread evenly."""
    even = tuple(1 / 12 for _ in range(12))
    out = []
    for year in years:
        revenues = _spread(year.revenue, policy.seasonal_weights)
        expenses = _spread(year.expenses, even)
        months = [
            MonthRecord(month=name, revenue=rev, expenses=exp)
            for name, rev, exp in zip(policy.month_names, revenues, expenses)
        ]
        out.append(year.model_copy(update={"months": months}))
    return out
