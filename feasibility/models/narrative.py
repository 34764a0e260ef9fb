from pydantic import Field
from typing import Literal

from feasibility.models.base import CamelModel


class Risk(CamelModel):
    risk: str
    severity: Literal["low", "medium", "high"] = "medium"
    mitigation: str = ""


class RoadmapPhase(CamelModel):
    phase: str
    duration: str = ""
    tasks: list[str] = Field(default_factory=list)
    milestones: list[str] = Field(default_factory=list)


class Explanation(CamelModel):
    """Sanitized narrative from the explanation call. Carries no authoritative numbers."""
    summary: str = ""
    market_explanation: str = ""
    competition_explanation: str = ""
    financial_explanation: str = ""
    competitive_advantage: str = ""
    threats: list[str] = Field(default_factory=list)
    opportunities: list[str] = Field(default_factory=list)
    risks: list[Risk] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    roadmap_phases: list[RoadmapPhase] = Field(default_factory=list)
    roadmap_explanation: str = ""
    expert_insights: str = ""
