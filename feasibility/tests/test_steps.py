import json

import pytest
from unittest.mock import MagicMock

from feasibility.errors import UpstreamMalformedResponse
from feasibility.models.request import AnalysisRequest
from feasibility.models.scoring import ScoringResult
from feasibility.models.signals import ExternalSignals
from feasibility.pipeline.sanitizer import sanitize_explanation
from feasibility.pipeline.step_discover import build_discovery_prompt, discover_factors
from feasibility.pipeline.step_explain import build_explanation_prompt, check_consistency, explain_result


def _llm(*responses):
    llm = MagicMock()
    llm.max_retries = 0
    llm.prompts = []
    queue = list(responses)

    async def mock_text(system_prompt, user_prompt, step_name, **kwargs):
        llm.prompts.append((step_name, user_prompt))
        return queue.pop(0)

    llm.text_completion = mock_text
    return llm


@pytest.fixture
def request_():
    return AnalysisRequest(
        business_idea="Cloud kitchen serving tiffin meals to office workers",
        location="Koramangala, Bangalore",
        budget="15 lakhs",
    )


def _scoring(score=72, verdict="GO"):
    return ScoringResult(
        score=score,
        verdict=verdict,
        budget_fit_percent=100,
        break_even_months=6,
        roi=80,
        financial_projections=[],
        strategy="ensemble",
        policy_version="test",
    )


def test_discovery_prompt_includes_context(request_, cloud_kitchen, bangalore):
    signals = ExternalSignals(
        web_search_results="[1] Cloud kitchens in Bangalore\nSource: https://example.in\nGrowing fast",
        macro_statistics="Urban Population: 36.4%",
    )
    prompt = build_discovery_prompt(request_, cloud_kitchen, bangalore, signals)
    assert "Cloud kitchen serving tiffin meals" in prompt
    assert "Budget: 15 lakhs" in prompt
    assert "Resolved city: Bangalore" in prompt
    assert "--- Web Search Results ---" in prompt
    assert "Urban Population: 36.4%" in prompt


def test_discovery_prompt_carries_city_and_category_priors(request_, cloud_kitchen, bangalore):
    prompt = build_discovery_prompt(request_, cloud_kitchen, bangalore, None)
    assert "City demographics: population 8,443,675, literacy 89%" in prompt
    assert "average household income INR 50,000/month" in prompt
    assert "population growth 3.5% a year" in prompt
    assert "operational complexity 45 of 100" in prompt
    assert "scalability 70 of 100" in prompt


def test_discovery_prompt_without_signals(request_, cloud_kitchen):
    from feasibility.engine.location import LocationClassifier
    unknown = LocationClassifier().classify("Somewhere remote")
    prompt = build_discovery_prompt(request_, cloud_kitchen, unknown, ExternalSignals())
    assert "Resolved city: unknown" in prompt
    assert "City demographics" not in prompt
    assert "Web Search Results" not in prompt


@pytest.mark.asyncio
async def test_discover_factors(request_, cloud_kitchen, bangalore, discovery_payload):
    llm = _llm("```json\n" + json.dumps(discovery_payload) + "\n```")
    discovery = await discover_factors(request_, cloud_kitchen, bangalore, None, llm)
    assert len(discovery.factors) == 6
    assert discovery.direct_competitors == 12
    assert llm.prompts[0][0] == "discover"


@pytest.mark.asyncio
async def test_too_few_factors_is_rejected(request_, cloud_kitchen, bangalore, discovery_payload):
    discovery_payload["factors"] = discovery_payload["factors"][:3]
    llm = _llm(json.dumps(discovery_payload))
    with pytest.raises(UpstreamMalformedResponse):
        await discover_factors(request_, cloud_kitchen, bangalore, None, llm)


@pytest.mark.asyncio
async def test_prose_without_json_is_rejected(request_, cloud_kitchen, bangalore):
    llm = _llm("This business looks promising overall, with good demand in the area.")
    with pytest.raises(UpstreamMalformedResponse):
        await discover_factors(request_, cloud_kitchen, bangalore, None, llm)


def test_explanation_prompt_carries_decision(request_, discovery):
    prompt = build_explanation_prompt(request_, _scoring(), discovery)
    assert "PRE-COMPUTED DECISION (DO NOT CHANGE)" in prompt
    assert "Score: 72/100" in prompt
    assert "Verdict: GO" in prompt
    assert "Office Worker Demand: 80/100" in prompt


def test_consistent_explanation_has_no_warnings(explanation_payload):
    explanation_payload["summary"] = "A GO at 72/100: demand is strong."
    assert check_consistency(sanitize_explanation(explanation_payload), _scoring()) == []


def test_contradicting_verdict_and_score_are_flagged(explanation_payload):
    explanation_payload["summary"] = "We would AVOID this idea, it scores 40/100."
    explanation_payload["expertInsights"] = "Overall a CAUTION case."
    warnings = check_consistency(sanitize_explanation(explanation_payload), _scoring())
    assert len(warnings) == 3
    assert any("verdict AVOID" in w for w in warnings)
    assert any("score 40/100" in w for w in warnings)
    assert any(w.startswith("expert_insights") for w in warnings)


def test_avoid_without_high_risk_is_flagged(explanation_payload):
    explanation_payload["risks"] = [{"risk": name, "severity": "low"} for name in ("Rent", "Staff", "Supply")]
    warnings = check_consistency(sanitize_explanation(explanation_payload), _scoring(20, "AVOID"))
    assert warnings == ["AVOID verdict but no high-severity risk was listed"]


def test_short_risk_and_recommendation_lists_are_flagged(explanation_payload):
    explanation_payload["risks"] = explanation_payload["risks"][:1]
    explanation_payload["recommendations"] = ["Start small", "Track repeat rate"]
    warnings = check_consistency(sanitize_explanation(explanation_payload), _scoring())
    assert warnings == [
        "only 1 risks listed, expected at least 3",
        "only 2 recommendations listed, expected at least 3",
    ]


@pytest.mark.parametrize("phase_count", [0, 2, 4, 5])
def test_roadmap_must_have_three_phases(explanation_payload, phase_count):
    explanation_payload["roadmapPhases"] = [
        {"phase": f"Phase {i + 1}", "duration": "1 month", "tasks": ["Plan"], "milestones": ["Done"]}
        for i in range(phase_count)
    ]
    warnings = check_consistency(sanitize_explanation(explanation_payload), _scoring())
    assert warnings == [f"roadmap has {phase_count} phases, expected 3"]


def test_recommendations_are_capped_at_five(explanation_payload):
    explanation_payload["recommendations"] = [f"Step {i}" for i in range(9)]
    explanation = sanitize_explanation(explanation_payload)
    assert explanation.recommendations == [f"Step {i}" for i in range(5)]
    assert check_consistency(explanation, _scoring()) == []


@pytest.mark.asyncio
async def test_short_narrative_keeps_summary(request_, discovery, explanation_payload):
    explanation_payload["recommendations"] = ["Start small"]
    llm = _llm(json.dumps(explanation_payload))
    explanation, warnings = await explain_result(request_, _scoring(), discovery, llm)
    assert explanation.summary == explanation_payload["summary"]
    assert warnings == ["only 1 recommendations listed, expected at least 3"]


@pytest.mark.asyncio
async def test_contradicting_summary_is_dropped(request_, discovery, explanation_payload):
    explanation_payload["summary"] = "Verdict: AVOID."
    llm = _llm(json.dumps(explanation_payload))
    explanation, warnings = await explain_result(request_, _scoring(), discovery, llm)
    assert explanation.summary == ""
    assert explanation.market_explanation == explanation_payload["marketExplanation"]
    assert warnings


@pytest.mark.asyncio
async def test_explanation_is_sanitized(request_, discovery, explanation_payload):
    explanation_payload["competitiveAdvantage"] = "<b>Subscriptions</b>"
    llm = _llm(json.dumps(explanation_payload))
    explanation, warnings = await explain_result(request_, _scoring(), discovery, llm)
    assert explanation.competitive_advantage == "Subscriptions"
    assert explanation.summary == explanation_payload["summary"]
    assert warnings == []
    assert llm.prompts[0][0] == "explain"
