from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, Optional


class LocationProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: str = Field("", description="Location text as supplied by the user")
    city: Optional[str] = Field(None, description="Canonical city name, None when unresolved")
    state: Optional[str] = None
    tier: Literal[1, 2, 3] = Field(3, description="City tier; 3 also means unknown")
    population: Optional[int] = Field(None, description="City population (census estimate)")
    literacy_rate: Optional[float] = Field(None, description="Literacy rate 0.0-1.0")
    average_monthly_income: Optional[int] = Field(None, description="Average household income per month in INR")
    growth_rate: Optional[float] = Field(None, description="Annual population growth in percent")
    matched_on: Optional[str] = Field(None, description="Gazetteer key that produced the match")

    @property
    def resolved(self) -> bool:
        return self.city is not None


class BusinessProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    label: str
    minimum_setup_cost: float = Field(..., ge=0, description="Minimum viable setup cost in INR")
    typical_margin: float = Field(..., ge=0, le=1)
    growth_rate_percent: float
    competitive_intensity: float = Field(..., ge=0, le=1)
    complexity_score: int = Field(..., ge=0, le=100)
    scalability_score: int = Field(..., ge=0, le=100)
