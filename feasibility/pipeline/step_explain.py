import logging
import re

from feasibility.models.factors import FactorDiscovery
from feasibility.models.narrative import Explanation
from feasibility.models.report import LLMCallLog
from feasibility.models.request import AnalysisRequest
from feasibility.models.scoring import ScoringResult
from feasibility.pipeline.sanitizer import sanitize_explanation
from feasibility.services.llm_service import LLMService, complete_json

logger = logging.getLogger(__name__)

MAX_TOKENS = 3500
TEMPERATURE = 0.8

MIN_RISKS = 3
MIN_RECOMMENDATIONS = 3
ROADMAP_PHASES = 3

_VERDICT_RE = re.compile(r"\b(GO|CAUTION|AVOID)\b")
_SCORE_RE = re.compile(r"\b(\d{1,3})\s*/\s*100\b")

SYSTEM_PROMPT = (
    "You are a business analyst for Indian markets. You receive a business idea, location, budget and "
    "a PRE-COMPUTED decision with scoring factors and market data. Your job is ONLY to explain it with "
    "location-specific, qualitative insight. Do NOT change the score, the verdict or any financial number: "
    "they are final.\n\n"
    "Return ONLY a JSON object with these keys:\n"
    '{"summary": str, "marketExplanation": str, "competitionExplanation": str, "financialExplanation": str, '
    '"competitiveAdvantage": str, "threats": [str], "opportunities": [str], '
    '"risks": [{"risk": str, "severity": "low"|"medium"|"high", "mitigation": str}], '
    '"recommendations": [str], '
    '"roadmapPhases": [{"phase": str, "duration": str, "tasks": [str], "milestones": [str]}], '
    '"roadmapExplanation": str, "expertInsights": str}\n\n'
    "Give 3-10 risks (a lower score should carry more high-severity risks), 3-5 recommendations "
    "and a 3-phase roadmap. Be specific to the neighbourhood or city: local rents, nearby competition, "
    "regional regulation."
)


def build_explanation_prompt(request: AnalysisRequest, scoring: ScoringResult, discovery: FactorDiscovery) -> str:
    factors = "\n".join(
        f"- {f.name}: {f.score}/100 (weight: {f.weight:.0%}) - {f.reasoning}" for f in discovery.factors
    )
    market = "\n".join(
        f"- {d.metric}: {d.estimated_value:g} {d.unit} (range: {d.min_value:g}-{d.max_value:g}, "
        f"confidence: {d.confidence})"
        for d in discovery.market_data
    ) or "- none"
    return (
        f"Business Idea: {request.business_idea}\n"
        f"Location: {request.location}\n"
        f"Budget: {request.budget}\n\n"
        "PRE-COMPUTED DECISION (DO NOT CHANGE):\n"
        f"- Score: {scoring.score}/100\n"
        f"- Verdict: {scoring.verdict}\n"
        f"- Budget Fit: {scoring.budget_fit_percent}%\n"
        f"- Break-even: {scoring.break_even_months} months\n"
        f"- ROI: {scoring.roi}%\n"
        f"- Direct Competitors: {discovery.direct_competitors}\n"
        f"- Indirect Competitors: {discovery.indirect_competitors}\n"
        f"- Market Size: {discovery.market_size or 'unknown'}\n"
        f"- Market Growth: {discovery.market_growth or 'unknown'}\n\n"
        f"SCORING FACTORS:\n{factors}\n\n"
        f"MARKET DATA:\n{market}\n\n"
        f"Setup Cost Range: INR {discovery.estimated_setup_cost_min:,.0f} - {discovery.estimated_setup_cost_max:,.0f}\n"
        f"Monthly Revenue Range: INR {discovery.estimated_monthly_revenue_min:,.0f} - "
        f"{discovery.estimated_monthly_revenue_max:,.0f}\n"
        f"Monthly Expenses Range: INR {discovery.estimated_monthly_expenses_min:,.0f} - "
        f"{discovery.estimated_monthly_expenses_max:,.0f}\n\n"
        "Explain this analysis for the location."
    )


def check_consistency(explanation: Explanation, scoring: ScoringResult) -> list[str]:
    """Find narrative statements that contradict the scoring result.

    Only the summary and expert insights are scanned since those are the
    fields that tend to restate the decision. List fields that miss the
    requested shape are flagged as well.
    """
    warnings = []
    for field in ("summary", "expert_insights"):
        text = getattr(explanation, field)
        for word in set(_VERDICT_RE.findall(text)):
            if word != scoring.verdict:
                warnings.append(f"{field} mentions verdict {word} but the result is {scoring.verdict}")
        for number in set(_SCORE_RE.findall(text)):
            if int(number) != scoring.score:
                warnings.append(f"{field} mentions score {number}/100 but the result is {scoring.score}/100")

    if scoring.verdict == "AVOID" and explanation.risks and not any(r.severity == "high" for r in explanation.risks):
        warnings.append("AVOID verdict but no high-severity risk was listed")

    if len(explanation.risks) < MIN_RISKS:
        warnings.append(f"only {len(explanation.risks)} risks listed, expected at least {MIN_RISKS}")
    if len(explanation.recommendations) < MIN_RECOMMENDATIONS:
        warnings.append(
            f"only {len(explanation.recommendations)} recommendations listed, expected at least {MIN_RECOMMENDATIONS}"
        )
    if len(explanation.roadmap_phases) != ROADMAP_PHASES:
        warnings.append(f"roadmap has {len(explanation.roadmap_phases)} phases, expected {ROADMAP_PHASES}")
    return warnings


async def explain_result(
    request: AnalysisRequest,
    scoring: ScoringResult,
    discovery: FactorDiscovery,
    llm: LLMService,
    call_logs: list[LLMCallLog] | None = None,
) -> tuple[Explanation, list[str]]:
    """Narrate a finalized ScoringResult. Returns the sanitized explanation and any inconsistencies.

    A summary that contradicts the result is dropped so the deterministic
    fallback is used instead.
    """
    payload = await complete_json(
        llm,
        system_prompt=SYSTEM_PROMPT,
        user_prompt=build_explanation_prompt(request, scoring, discovery),
        step_name="explain",
        max_tokens=MAX_TOKENS,
        temperature=TEMPERATURE,
        call_logs=call_logs,
    )
    explanation = sanitize_explanation(payload)

    warnings = check_consistency(explanation, scoring)
    for w in warnings:
        logger.warning(f"Narrative inconsistency: {w}")
    if any(w.startswith("summary ") for w in warnings):
        explanation = explanation.model_copy(update={"summary": ""})

    return explanation, warnings
