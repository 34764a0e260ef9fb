"""Clamp, truncate and coerce every AI-sourced payload before it is trusted.

All functions are pure and idempotent: sanitizing an already sanitized value
returns it unchanged. Input may be a raw dict from the model (camelCase keys)
or one of our models, which is dumped by alias first.
"""
import math
import re
from typing import Any

from pydantic import BaseModel

from feasibility.models.factors import Factor, FactorDiscovery, MarketDataPoint
from feasibility.models.narrative import Explanation, Risk, RoadmapPhase

MAX_TEXT = 5000
MAX_NAME = 100
MAX_SHORT = 200
MAX_ITEM = 500

MAX_FACTORS = 8
MAX_MARKET_POINTS = 20
MAX_RISKS = 10
MAX_LIST_ITEMS = 10
MAX_RECOMMENDATIONS = 5
MAX_PHASES = 5
MAX_COMPETITORS = 100_000

CONFIDENCE_LEVELS = ("high", "medium", "low")
SEVERITY_LEVELS = ("low", "medium", "high")

_UNSAFE_PATTERNS = [
    re.compile(r"<[^>]*>"),
    re.compile(r"<\s*/?\s*(?:script|iframe|object|embed|style)", re.IGNORECASE),
    re.compile(r"(?:java|vb)script\s*:", re.IGNORECASE),
    re.compile(r"\bon\w+\s*=", re.IGNORECASE),
    re.compile(r"data\s*:\s*text/html", re.IGNORECASE),
    re.compile(r"&#"),
]


def _strip_unsafe(text: str) -> str:
    # Repeat until stable so nested payloads like "javasjavascript:cript:" cannot reassemble.
    while True:
        cleaned = text
        for pattern in _UNSAFE_PATTERNS:
            cleaned = pattern.sub("", cleaned)
        if cleaned == text:
            return cleaned
        text = cleaned


def sanitize_text(value: Any, max_len: int = MAX_TEXT) -> str:
    if not isinstance(value, str):
        return ""
    return _strip_unsafe(value)[:max_len].strip()


def sanitize_text_list(value: Any, max_items: int = MAX_LIST_ITEMS, max_len: int = MAX_ITEM) -> list[str]:
    if not isinstance(value, list):
        return []
    cleaned = (sanitize_text(v, max_len) for v in value)
    return [v for v in cleaned if v][:max_items]


def to_number(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().replace(",", ""))
        except ValueError:
            return default
    else:
        return default
    return number if math.isfinite(number) else default


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


def clamp(value: Any, lo: float, hi: float, default: float = 0.0) -> float:
    return min(hi, max(lo, to_number(value, default)))


def coerce_enum(value: Any, allowed: tuple[str, ...], default: str) -> str:
    if isinstance(value, str) and value.strip().lower() in allowed:
        return value.strip().lower()
    return default


def _as_dict(payload: Any) -> dict:
    if isinstance(payload, BaseModel):
        return payload.model_dump(by_alias=True)
    return payload if isinstance(payload, dict) else {}


def _range(data: dict, low_key: str, high_key: str) -> tuple[float, float]:
    low = clamp(data.get(low_key), 0, math.inf)
    high = clamp(data.get(high_key), 0, math.inf)
    return (low, high) if low <= high else (high, low)


def sanitize_factor(raw: Any) -> Factor | None:
    data = _as_dict(raw)
    name = sanitize_text(data.get("name"), MAX_NAME)
    if not name:
        return None
    return Factor(
        name=name,
        weight=clamp(data.get("weight"), 0.0, 1.0),
        score=int(round(clamp(data.get("score"), 0, 100))),
        reasoning=sanitize_text(data.get("reasoning"), MAX_ITEM),
        is_location_specific=to_bool(data.get("isLocationSpecific", False)),
    )


def sanitize_market_point(raw: Any) -> MarketDataPoint | None:
    data = _as_dict(raw)
    metric = sanitize_text(data.get("metric"), MAX_NAME)
    if not metric:
        return None
    low, high = _range(data, "minValue", "maxValue")
    return MarketDataPoint(
        metric=metric,
        min_value=low,
        max_value=high,
        estimated_value=clamp(data.get("estimatedValue"), 0, math.inf),
        unit=sanitize_text(data.get("unit"), 20),
        source=sanitize_text(data.get("source"), MAX_SHORT),
        confidence=coerce_enum(data.get("confidence"), CONFIDENCE_LEVELS, "low"),
    )


def _sanitize_items(raw: Any, fn, limit: int) -> list:
    if not isinstance(raw, list):
        return []
    items = (fn(r) for r in raw)
    return [i for i in items if i is not None][:limit]


def sanitize_discovery(payload: Any) -> FactorDiscovery:
    data = _as_dict(payload)
    setup_min, setup_max = _range(data, "estimatedSetupCostMin", "estimatedSetupCostMax")
    revenue_min, revenue_max = _range(data, "estimatedMonthlyRevenueMin", "estimatedMonthlyRevenueMax")
    expenses_min, expenses_max = _range(data, "estimatedMonthlyExpensesMin", "estimatedMonthlyExpensesMax")
    return FactorDiscovery(
        factors=_sanitize_items(data.get("factors"), sanitize_factor, MAX_FACTORS),
        market_data=_sanitize_items(data.get("marketData"), sanitize_market_point, MAX_MARKET_POINTS),
        estimated_setup_cost_min=setup_min,
        estimated_setup_cost_max=setup_max,
        estimated_monthly_revenue_min=revenue_min,
        estimated_monthly_revenue_max=revenue_max,
        estimated_monthly_expenses_min=expenses_min,
        estimated_monthly_expenses_max=expenses_max,
        avg_profit_margin=clamp(data.get("avgProfitMargin"), 0.0, 1.0),
        direct_competitors=int(round(clamp(data.get("directCompetitors"), 0, MAX_COMPETITORS))),
        indirect_competitors=int(round(clamp(data.get("indirectCompetitors"), 0, MAX_COMPETITORS))),
        market_size=sanitize_text(data.get("marketSize"), MAX_SHORT),
        market_growth=sanitize_text(data.get("marketGrowth"), MAX_SHORT),
    )


def sanitize_risk(raw: Any) -> Risk | None:
    data = _as_dict(raw)
    text = sanitize_text(data.get("risk"), MAX_ITEM)
    if not text:
        return None
    return Risk(
        risk=text,
        severity=coerce_enum(data.get("severity"), SEVERITY_LEVELS, "medium"),
        mitigation=sanitize_text(data.get("mitigation"), MAX_ITEM),
    )


def sanitize_phase(raw: Any) -> RoadmapPhase | None:
    data = _as_dict(raw)
    name = sanitize_text(data.get("phase"), MAX_NAME)
    if not name:
        return None
    return RoadmapPhase(
        phase=name,
        duration=sanitize_text(data.get("duration"), 50),
        tasks=sanitize_text_list(data.get("tasks")),
        milestones=sanitize_text_list(data.get("milestones")),
    )


def sanitize_explanation(payload: Any) -> Explanation:
    data = _as_dict(payload)
    return Explanation(
        summary=sanitize_text(data.get("summary")),
        market_explanation=sanitize_text(data.get("marketExplanation")),
        competition_explanation=sanitize_text(data.get("competitionExplanation")),
        financial_explanation=sanitize_text(data.get("financialExplanation")),
        competitive_advantage=sanitize_text(data.get("competitiveAdvantage"), 1000),
        threats=sanitize_text_list(data.get("threats")),
        opportunities=sanitize_text_list(data.get("opportunities")),
        risks=_sanitize_items(data.get("risks"), sanitize_risk, MAX_RISKS),
        recommendations=sanitize_text_list(data.get("recommendations"), MAX_RECOMMENDATIONS),
        roadmap_phases=_sanitize_items(data.get("roadmapPhases"), sanitize_phase, MAX_PHASES),
        roadmap_explanation=sanitize_text(data.get("roadmapExplanation")),
        expert_insights=sanitize_text(data.get("expertInsights")),
    )
