from pydantic import BaseModel, Field
from typing import Optional


class IndicatorPoint(BaseModel):
    indicator: str
    date: str
    value: float


class ExternalSignals(BaseModel):
    """Grounding context folded verbatim into the discovery prompt."""
    web_search_results: str = Field("", description="Digest of web search snippets")
    macro_statistics: str = Field("", description="Human-readable national indicator digest")
    indicators: list[IndicatorPoint] = Field(default_factory=list)
    population_growth_percent: Optional[float] = None
    sources: list[dict] = Field(default_factory=list, description="[{title, url}] of web results")

    @property
    def is_empty(self) -> bool:
        return not self.web_search_results and not self.macro_statistics
