from pydantic import Field
from typing import Literal

from feasibility.models.base import CamelModel


class Factor(CamelModel):
    name: str
    weight: float = Field(..., ge=0, le=1, description="Relative importance; a factor set should sum to 1.0")
    score: int = Field(..., ge=0, le=100)
    reasoning: str = ""
    is_location_specific: bool = False


class MarketDataPoint(CamelModel):
    metric: str
    min_value: float = 0.0
    max_value: float = 0.0
    estimated_value: float = 0.0
    unit: str = ""
    source: str = ""
    confidence: Literal["high", "medium", "low"] = "low"


class FactorDiscovery(CamelModel):
    """Sanitized output of the factor-discovery call. Monetary values in INR."""
    factors: list[Factor] = Field(default_factory=list)
    market_data: list[MarketDataPoint] = Field(default_factory=list)
    estimated_setup_cost_min: float = 0.0
    estimated_setup_cost_max: float = 0.0
    estimated_monthly_revenue_min: float = 0.0
    estimated_monthly_revenue_max: float = 0.0
    estimated_monthly_expenses_min: float = 0.0
    estimated_monthly_expenses_max: float = 0.0
    avg_profit_margin: float = Field(0.0, ge=0, le=1)
    direct_competitors: int = Field(0, ge=0)
    indirect_competitors: int = Field(0, ge=0)
    market_size: str = ""
    market_growth: str = ""

    @property
    def avg_setup_cost(self) -> float:
        return (self.estimated_setup_cost_min + self.estimated_setup_cost_max) / 2

    @property
    def avg_monthly_revenue(self) -> float:
        return (self.estimated_monthly_revenue_min + self.estimated_monthly_revenue_max) / 2

    @property
    def avg_monthly_expenses(self) -> float:
        return (self.estimated_monthly_expenses_min + self.estimated_monthly_expenses_max) / 2
