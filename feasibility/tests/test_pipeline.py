import asyncio
import json

import pytest
from unittest.mock import MagicMock

from feasibility.errors import FeasibilityError, UpstreamMalformedResponse, UpstreamRateLimited
from feasibility.models.request import AnalysisRequest
from feasibility.models.signals import ExternalSignals
from feasibility.pipeline.orchestrator import AnalysisPipeline
from feasibility.pipeline.step_score import rescore_report
from feasibility.engine.engine import ScoringEngine
from feasibility.engine.strategies import WeightedAverageStrategy
from feasibility.services.pipeline_status import PipelineStatus


@pytest.fixture
def mock_llm(discovery_payload, explanation_payload):
    llm = MagicMock()
    llm.max_retries = 0
    llm.responses = {
        "discover": json.dumps(discovery_payload),
        "explain": "```json\n" + json.dumps(explanation_payload) + "\n```",
    }

    async def mock_text(system_prompt, user_prompt, step_name, **kwargs):
        response = llm.responses[step_name]
        if isinstance(response, Exception):
            raise response
        return response

    llm.text_completion = mock_text
    return llm


@pytest.fixture
def mock_signals():
    signals = MagicMock()

    async def mock_fetch(business_idea, location):
        return ExternalSignals(
            web_search_results="[1] Bangalore cloud kitchens\nSource: https://example.in\nDemand is rising",
            macro_statistics="Urban Population: 36.4%",
        )

    signals.fetch_signals = mock_fetch
    return signals


@pytest.fixture
def mock_db(tmp_path):
    from feasibility.services.db_service import DBService
    return DBService(f"sqlite:///{tmp_path}/test.db")


@pytest.fixture
def koramangala_request():
    return AnalysisRequest(
        business_idea="Cloud kitchen serving tiffin meals to office workers",
        location="Koramangala, Bangalore",
        budget="15 lakhs",
    )


@pytest.mark.asyncio
async def test_full_pipeline(mock_llm, mock_signals, mock_db, koramangala_request, explanation_payload):
    pipeline = AnalysisPipeline(mock_llm, mock_signals, mock_db)
    report = await pipeline.run(koramangala_request, user_id="user-1")

    assert report.id is not None
    assert report.error is None
    assert report.scoring.score == 90
    assert report.scoring.verdict == "GO"

    analysis = report.analysis
    assert analysis.score == report.scoring.score
    assert analysis.verdict == report.scoring.verdict
    assert analysis.budget_fit_percent == 100
    assert analysis.business_category == "cloud_kitchen"
    assert analysis.city_tier == 1
    assert analysis.summary == explanation_payload["summary"]
    assert analysis.competition_analysis.direct_competitors == 12
    assert analysis.scoring_factors["OfficeWorkerDemand"] == 80
    assert len(analysis.financial_projection.yearly_data) == 5
    assert all(len(y.months) == 12 for y in analysis.financial_projection.yearly_data)

    names = [s.step_name for s in report.pipeline_steps]
    assert names == ["validate", "classify", "signals", "discover", "score", "project", "explain", "assemble", "persist"]

    loaded = mock_db.get_report(report.id)
    assert loaded is not None
    assert loaded.user_id == "user-1"
    assert loaded.analysis.score == 90

    listed = mock_db.list_reports(user_id="user-1")
    assert [r["id"] for r in listed] == [report.id]
    assert listed[0]["verdict"] == "GO"


@pytest.mark.asyncio
async def test_signals_failure_degrades(mock_llm, mock_db, koramangala_request):
    signals = MagicMock()

    async def broken_fetch(*args):
        raise RuntimeError("dns failure")

    signals.fetch_signals = broken_fetch
    report = await AnalysisPipeline(mock_llm, signals, mock_db).run(koramangala_request)

    assert report.external_signals is None
    assert report.analysis is not None
    failed = [s for s in report.pipeline_steps if s.status == "failed"]
    assert [s.step_name for s in failed] == ["signals"]


@pytest.mark.asyncio
async def test_runs_without_signals_or_db(mock_llm, koramangala_request):
    report = await AnalysisPipeline(mock_llm, None, None).run(koramangala_request)
    assert report.analysis.verdict == "GO"


@pytest.mark.asyncio
async def test_discovery_failure_is_persisted_and_raised(mock_llm, mock_signals, mock_db, koramangala_request):
    mock_llm.responses["discover"] = UpstreamRateLimited("429 from provider")
    pipeline = AnalysisPipeline(mock_llm, mock_signals, mock_db)
    status = PipelineStatus(report_id="failing-run")

    with pytest.raises(UpstreamRateLimited):
        await pipeline.run(koramangala_request, report_id="failing-run", status=status)

    stored = mock_db.get_report("failing-run")
    assert stored.analysis is None
    assert stored.error == UpstreamRateLimited.user_message
    assert stored.pipeline_steps[-1].step_name == "discover"
    assert stored.pipeline_steps[-1].status == "failed"

    assert status.complete
    assert status.final_payload() == {"type": "error", "report_id": "failing-run", "error": UpstreamRateLimited.user_message}

    audit = mock_db.get_audit_log("failing-run")
    assert any(s["step_name"] == "discover" and s["status"] == "failed" for s in audit["pipeline_steps"])


@pytest.mark.asyncio
async def test_unusable_explanation_fails_analysis(mock_llm, mock_signals, mock_db, koramangala_request):
    mock_llm.responses["explain"] = "Sorry, I cannot help with that."
    with pytest.raises(UpstreamMalformedResponse):
        await AnalysisPipeline(mock_llm, mock_signals, mock_db).run(koramangala_request)


@pytest.mark.asyncio
async def test_unexpected_error_is_wrapped(mock_llm, mock_signals, mock_db, koramangala_request):
    engine = MagicMock()
    engine.evaluate.side_effect = ZeroDivisionError("boom")
    pipeline = AnalysisPipeline(mock_llm, mock_signals, mock_db, engine=engine)
    with pytest.raises(FeasibilityError) as exc:
        await pipeline.run(koramangala_request)
    assert "score" in str(exc.value)
    assert exc.value.status_code == 500


@pytest.mark.asyncio
async def test_status_events_are_emitted(mock_llm, mock_signals, mock_db, koramangala_request):
    status = PipelineStatus(report_id="r1")
    await AnalysisPipeline(mock_llm, mock_signals, mock_db).run(koramangala_request, report_id="r1", status=status)

    assert status.complete
    assert status.final_payload() == {"type": "complete", "report_id": "r1"}
    completed = [e.step_name for e in status.events if e.status == "completed"]
    assert completed[0] == "validate"
    assert completed[-1] == "persist"
    assert status.events[0].to_payload()["type"] == "step"


@pytest.mark.asyncio
async def test_rescore_with_weighted_strategy(mock_llm, mock_signals, mock_db, koramangala_request):
    report = await AnalysisPipeline(mock_llm, mock_signals, mock_db).run(koramangala_request)
    stored = mock_db.get_report(report.id)

    rescored = rescore_report(stored, ScoringEngine(strategy=WeightedAverageStrategy()))
    assert rescored.scoring.strategy == "weighted"
    assert rescored.analysis.score == rescored.scoring.score
    assert rescored.analysis.summary == stored.analysis.summary
    assert rescored.scoring.financial_projections[0].year == stored.scoring.financial_projections[0].year
    if rescored.scoring.score != stored.scoring.score:
        assert len(rescored.narrative_warnings) == len(stored.narrative_warnings) + 1

    mock_db.update_scoring(rescored)
    assert mock_db.get_report(report.id).scoring.strategy == "weighted"


def test_rescore_requires_completed_scoring():
    from feasibility.models.report import AnalysisReport
    with pytest.raises(ValueError):
        rescore_report(AnalysisReport(id="x"), ScoringEngine())


@pytest.mark.asyncio
async def test_concurrent_runs_keep_their_own_call_logs(mock_llm, koramangala_request):
    from feasibility.models.report import LLMCallLog

    async def logging_text(system_prompt, user_prompt, step_name, call_logs=None, **kwargs):
        await asyncio.sleep(0)
        response = mock_llm.responses[step_name]
        if call_logs is not None:
            call_logs.append(LLMCallLog(
                step_name=step_name, model="mock", system_prompt=system_prompt,
                user_prompt=user_prompt, response=response,
            ))
        await asyncio.sleep(0)
        return response

    mock_llm.text_completion = logging_text
    pipeline = AnalysisPipeline(mock_llm, None, None)
    tea_stall = AnalysisRequest(
        business_idea="Tea stall near a college campus", location="Pune", budget="5 lakhs",
    )

    first, second = await asyncio.gather(pipeline.run(koramangala_request), pipeline.run(tea_stall))

    assert [c.step_name for c in first.llm_call_logs] == ["discover", "explain"]
    assert [c.step_name for c in second.llm_call_logs] == ["discover", "explain"]
    assert all("Cloud kitchen" in c.user_prompt for c in first.llm_call_logs)
    assert all("Tea stall" in c.user_prompt for c in second.llm_call_logs)
