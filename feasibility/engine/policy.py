"""Tunable domain priors for the scoring engine.

Everything the engine treats as a constant lives here: budget multipliers,
the decision-stump ensemble, verdict thresholds and projection curves. The
tables are expert-authored, not learned. Change them by publishing a new
``ScoringPolicy`` with a bumped ``version`` rather than editing values in
place, so stored reports stay traceable to the policy that scored them.
"""
import math
from dataclasses import dataclass, field
from typing import Literal

CombineOp = Literal["multiply", "divide", "min", "max"]

FEATURE_KEYS = (
    "weighted_score",
    "budget_ratio",
    "competition_density",
    "market_growth",
    "profit_margin",
    "location_tier_score",
    "revenue_expense_ratio",
    "score_dispersion",
    "max_factor_score",
    "min_factor_score",
)


@dataclass(frozen=True)
class BudgetStep:
    min_ratio: float
    multiplier: float


@dataclass(frozen=True)
class DecisionStump:
    """Single-feature rule: ``left`` when feature <= threshold, else ``right``."""
    name: str
    feature: str
    threshold: float
    left: float
    right: float
    weight: float = 1.0
    rationale: str = ""


@dataclass(frozen=True)
class InteractionStump:
    """Two-feature rule applied to ``op(feature_a, feature_b)``."""
    name: str
    feature_a: str
    feature_b: str
    op: CombineOp
    threshold: float
    left: float
    right: float
    weight: float = 1.0
    rationale: str = ""


@dataclass(frozen=True)
class VerdictPolicy:
    # GO needs every gate and AVOID fires on any floor; the gap between is CAUTION.
    go_min_score: int = 65
    go_min_budget_fit: int = 50
    avoid_below_score: int = 35
    critical_budget_fit: int = 25
    risk_floor_factor_score: int = 20
    # Score points a known prior verdict shifts both score thresholds in its favour.
    # Budget and risk floors never move.
    hysteresis_band: int = 3

    def score_thresholds(self, previous: str | None = None) -> tuple[int, int]:
        """(go_min, avoid_below) adjusted for the verdict a report held before."""
        if previous is None:
            return self.go_min_score, self.avoid_below_score
        band = self.hysteresis_band
        go_min = self.go_min_score - band if previous == "GO" else self.go_min_score + band
        avoid_below = self.avoid_below_score + band if previous == "AVOID" else self.avoid_below_score - band
        return go_min, avoid_below


@dataclass(frozen=True)
class ProjectionPolicy:
    horizon_years: int = 5
    revenue_growth_curve: tuple[float, ...] = (1.0, 1.15, 1.30, 1.45, 1.60)
    expense_growth_per_year: float = 0.05
    # Jan..Dec, festive peak in Oct-Nov
    seasonal_weights: tuple[float, ...] = (
        0.07, 0.06, 0.08, 0.08, 0.08, 0.08, 0.08, 0.09, 0.09, 0.10, 0.10, 0.09,
    )
    month_names: tuple[str, ...] = (
        "Jan", "Feb", "Mar", "Apr", "May", "Jun",
        "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
    )
    confidence_min: float = 0.6
    confidence_max: float = 1.4
    break_even_cap_months: int = 36

    def __post_init__(self):
        if len(self.seasonal_weights) != 12 or len(self.month_names) != 12:
            raise ValueError("seasonal_weights and month_names must have 12 entries")
        if not math.isclose(sum(self.seasonal_weights), 1.0, abs_tol=1e-6):
            raise ValueError(f"seasonal_weights must sum to 1.0, got {sum(self.seasonal_weights)}")
        if len(self.revenue_growth_curve) < self.horizon_years:
            raise ValueError("revenue_growth_curve shorter than the projection horizon")


@dataclass(frozen=True)
class ScoringPolicy:
    version: str
    base_prediction: float = 50.0
    neutral_score: float = 50.0
    budget_ratio_cap: float = 5.0
    revenue_expense_cap: float = 5.0
    competitor_saturation: float = 50.0
    indirect_competitor_weight: float = 0.5
    growth_saturation_percent: float = 30.0
    dispersion_scale: float = 50.0
    tier_scores: tuple[float, float, float] = (1.0, 0.7, 0.4)  # tier 1, 2, 3
    budget_steps: tuple[BudgetStep, ...] = ()
    stumps: tuple[DecisionStump, ...] = ()
    interactions: tuple[InteractionStump, ...] = ()
    verdict: VerdictPolicy = field(default_factory=VerdictPolicy)
    projection: ProjectionPolicy = field(default_factory=ProjectionPolicy)

    def __post_init__(self):
        for stump in self.stumps:
            if stump.feature not in FEATURE_KEYS:
                raise ValueError(f"Stump '{stump.name}' references unknown feature '{stump.feature}'")
        for stump in self.interactions:
            for key in (stump.feature_a, stump.feature_b):
                if key not in FEATURE_KEYS:
                    raise ValueError(f"Interaction '{stump.name}' references unknown feature '{key}'")
        ratios = [s.min_ratio for s in self.budget_steps]
        if ratios != sorted(ratios, reverse=True):
            raise ValueError("budget_steps must be ordered by descending min_ratio")


BUDGET_STEPS = (
    BudgetStep(2.0, 1.15),
    BudgetStep(1.5, 1.10),
    BudgetStep(1.0, 1.00),
    BudgetStep(0.7, 0.85),
    BudgetStep(0.5, 0.70),
    BudgetStep(0.3, 0.55),
    BudgetStep(0.0, 0.40),
)

STUMPS = (
    # Factor quality ladder: together these approximate a monotone curve.
    DecisionStump("very_weak_factors", "weighted_score", 30, -10, 0,
                  rationale="Factor average below 30 signals a fundamentally weak idea"),
    DecisionStump("weak_factors", "weighted_score", 45, -6, 2),
    DecisionStump("average_factors", "weighted_score", 55, -2, 5),
    DecisionStump("strong_factors", "weighted_score", 65, 0, 6),
    DecisionStump("excellent_factors", "weighted_score", 75, 0, 5),
    # Funding
    DecisionStump("severe_underfunding", "budget_ratio", 0.3, -30, 0,
                  rationale="Severe underfunding is catastrophic"),
    DecisionStump("underfunding", "budget_ratio", 0.5, -12, 0,
                  rationale="Less than half the setup cost leaves no runway"),
    DecisionStump("funded", "budget_ratio", 1.0, -6, 3,
                  rationale="Budget covers the estimated setup cost"),
    DecisionStump("well_funded", "budget_ratio", 2.0, 0, 3,
                  rationale="Extra capital helps, with diminishing returns"),
    # Market
    DecisionStump("open_market", "competition_density", 0.3, 4, 0,
                  rationale="Few competitors nearby"),
    DecisionStump("crowded_market", "competition_density", 0.7, 0, -6,
                  rationale="Saturated market compresses prices"),
    DecisionStump("stagnant_market", "market_growth", 0.2, -3, 2),
    DecisionStump("booming_market", "market_growth", 0.5, 0, 3),
    # Unit economics
    DecisionStump("thin_margin", "profit_margin", 0.08, -6, 0,
                  rationale="Margins under 8% cannot absorb shocks"),
    DecisionStump("healthy_margin", "profit_margin", 0.2, 0, 4),
    DecisionStump("loss_making", "revenue_expense_ratio", 1.0, -10, 0,
                  rationale="Expected expenses exceed expected revenue"),
    DecisionStump("comfortable_surplus", "revenue_expense_ratio", 1.3, 0, 4),
    # Location and signal quality
    DecisionStump("metro_demand", "location_tier_score", 0.5, -2, 2),
    DecisionStump("mixed_signals", "score_dispersion", 0.4, 1, -3,
                  rationale="Widely scattered factor scores mean an uneven opportunity"),
    DecisionStump("dealbreaker_factor", "min_factor_score", 20, -6, 0,
                  rationale="A single critical factor near zero can sink the business"),
    DecisionStump("no_standout_strength", "max_factor_score", 60, -2, 1),
)

INTERACTIONS = (
    InteractionStump("competition_vs_budget", "competition_density", "budget_ratio", "divide", 0.8, 0, -6,
                     rationale="High competition times low budget compounds risk"),
    InteractionStump("growth_with_margin", "market_growth", "profit_margin", "multiply", 0.06, 0, 4,
                     rationale="Growing market with healthy margins"),
    InteractionStump("funding_and_economics", "budget_ratio", "revenue_expense_ratio", "min", 1.0, -4, 2,
                     rationale="Both funding and unit economics must hold"),
    InteractionStump("metro_growth", "location_tier_score", "market_growth", "multiply", 0.3, 0, 2,
                     rationale="Metro demand amplifies market growth"),
)

DEFAULT_POLICY = ScoringPolicy(
    version="2025.2",
    budget_steps=BUDGET_STEPS,
    stumps=STUMPS,
    interactions=INTERACTIONS,
)
