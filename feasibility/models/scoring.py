from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel
from typing import Literal, Optional

Verdict = Literal["GO", "CAUTION", "AVOID"]


class MonthRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    month: str
    revenue: int
    expenses: int

    @computed_field
    @property
    def profit(self) -> int:
        return self.revenue - self.expenses


class YearRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    year: int
    revenue: int
    expenses: int
    months: Optional[list[MonthRecord]] = None

    @computed_field
    @property
    def profit(self) -> int:
        return self.revenue - self.expenses


class StumpContribution(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    features: list[str]
    value: float = Field(..., description="Feature value (or combined value) compared to the threshold")
    threshold: float
    contribution: float
    rationale: str


class ScoringResult(BaseModel):
    """Output of the deterministic engine. Never produced or altered by the language model."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    score: int = Field(..., ge=0, le=100)
    verdict: Verdict
    budget_fit_percent: int = Field(..., ge=0, le=100)
    break_even_months: int
    roi: int
    financial_projections: list[YearRecord]
    strategy: str
    policy_version: str
    features: dict[str, float] = Field(default_factory=dict)
    contributions: list[StumpContribution] = Field(default_factory=list)
    verdict_reasons: list[str] = Field(default_factory=list)
    confidence_multiplier: float = 1.0
    setup_cost_basis: float = Field(0.0, description="Setup cost the budget was compared against (INR)")
    setup_cost_source: str = Field("", description="'market estimate' or 'category benchmark'")
    budget_amount: float = 0.0
    budget_specified: bool = True
