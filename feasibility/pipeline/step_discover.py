import logging

from feasibility.errors import UpstreamMalformedResponse
from feasibility.models.factors import FactorDiscovery
from feasibility.models.profiles import BusinessProfile, LocationProfile
from feasibility.models.report import LLMCallLog
from feasibility.models.request import AnalysisRequest
from feasibility.models.signals import ExternalSignals
from feasibility.pipeline.sanitizer import sanitize_discovery
from feasibility.services.llm_service import LLMService, complete_json

logger = logging.getLogger(__name__)

MIN_FACTORS = 4
MAX_TOKENS = 3000
TEMPERATURE = 0.3

SYSTEM_PROMPT = (
    "You are an Indian market research analyst with working knowledge of commercial rents, "
    "competitor landscapes, licensing and consumer behaviour across Indian cities, towns and villages.\n\n"
    "Given a business idea, a location and a budget:\n"
    "1. Identify the 4 to 8 scoring factors that matter most for THIS business in THIS place. "
    "Do not use a fixed checklist: water availability matters for a laundry in a dry village, "
    "talent access for a tech company in Bangalore, student footfall for a cafe near a college. "
    "Give each factor a weight (weights sum to 1.0) and a realistic score from 0 to 100.\n"
    "2. Estimate market data with min/max ranges in INR: setup cost (deposit, fit-out, equipment, "
    "licences), monthly revenue, monthly operating expenses, direct and indirect competitor counts, "
    "local market size and growth.\n\n"
    "Return ONLY a JSON object with these keys:\n"
    '{"factors": [{"name": str, "weight": 0.0-1.0, "score": 0-100, "reasoning": str, "isLocationSpecific": bool}], '
    '"marketData": [{"metric": str, "minValue": number, "maxValue": number, "estimatedValue": number, '
    '"unit": str, "source": str, "confidence": "high"|"medium"|"low"}], '
    '"estimatedSetupCostMin": number, "estimatedSetupCostMax": number, '
    '"estimatedMonthlyRevenueMin": number, "estimatedMonthlyRevenueMax": number, '
    '"estimatedMonthlyExpensesMin": number, "estimatedMonthlyExpensesMax": number, '
    '"avgProfitMargin": 0.0-1.0, "directCompetitors": int, "indirectCompetitors": int, '
    '"marketSize": str, "marketGrowth": str}\n\n'
    "Scores must reflect a sober assessment, not optimism."
)


def _demographics(location: LocationProfile) -> str:
    parts = []
    if location.population:
        parts.append(f"population {location.population:,}")
    if location.literacy_rate is not None:
        parts.append(f"literacy {location.literacy_rate:.0%}")
    if location.average_monthly_income:
        parts.append(f"average household income INR {location.average_monthly_income:,}/month")
    if location.growth_rate is not None:
        parts.append(f"population growth {location.growth_rate:g}% a year")
    return ", ".join(parts)


def build_discovery_prompt(
    request: AnalysisRequest,
    business: BusinessProfile,
    location: LocationProfile,
    signals: ExternalSignals | None,
) -> str:
    prompt = (
        f"Business Idea: {request.business_idea}\n"
        f"Location: {request.location}\n"
        f"Budget: {request.budget}\n\n"
        f"Classified category: {business.label} "
        f"(typical minimum setup cost INR {business.minimum_setup_cost:,.0f}, "
        f"typical margin {business.typical_margin:.0%})\n"
        f"Category benchmarks: {business.growth_rate_percent:g}% annual growth, "
        f"operational complexity {business.complexity_score} of 100, "
        f"scalability {business.scalability_score} of 100\n"
    )
    if location.resolved:
        prompt += f"Resolved city: {location.city}, {location.state} (tier {location.tier})\n"
        demographics = _demographics(location)
        if demographics:
            prompt += f"City demographics: {demographics}\n"
    else:
        prompt += "Resolved city: unknown (treat as a small town)\n"

    if signals and not signals.is_empty:
        prompt += "\nReal-time data to ground your estimates:\n"
        if signals.web_search_results:
            prompt += f"\n--- Web Search Results ---\n{signals.web_search_results}\n"
        if signals.macro_statistics:
            prompt += f"\n--- Population & Economic Data (World Bank) ---\n{signals.macro_statistics}\n"
        prompt += "\nCalibrate market size, competitor counts and costs against this data where it applies.\n"

    prompt += "\nReturn the dynamic factors and market data for this combination."
    return prompt


async def discover_factors(
    request: AnalysisRequest,
    business: BusinessProfile,
    location: LocationProfile,
    signals: ExternalSignals | None,
    llm: LLMService,
    call_logs: list[LLMCallLog] | None = None,
) -> FactorDiscovery:
    """Ask the model for weighted factors and market estimates, then sanitize them.

    There is no fabricated fallback: an unusable response aborts the analysis.
    """
    payload = await complete_json(
        llm,
        system_prompt=SYSTEM_PROMPT,
        user_prompt=build_discovery_prompt(request, business, location, signals),
        step_name="discover",
        max_tokens=MAX_TOKENS,
        temperature=TEMPERATURE,
        call_logs=call_logs,
    )
    discovery = sanitize_discovery(payload)
    if len(discovery.factors) < MIN_FACTORS:
        raise UpstreamMalformedResponse(
            f"Factor discovery returned {len(discovery.factors)} usable factors, need {MIN_FACTORS}"
        )

    logger.info(
        f"Discovered {len(discovery.factors)} factors and {len(discovery.market_data)} market points "
        f"(setup INR {discovery.estimated_setup_cost_min:,.0f}-{discovery.estimated_setup_cost_max:,.0f})"
    )
    return discovery
