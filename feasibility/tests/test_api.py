import asyncio
import json

import pytest
from unittest.mock import MagicMock
from fastapi.testclient import TestClient

from feasibility.api.dependencies import get_db_service, get_engine, get_pipeline
from feasibility.engine.engine import ScoringEngine
from feasibility.errors import UpstreamQuotaExhausted, UpstreamRateLimited
from feasibility.main import app, validation_message
from feasibility.pipeline.orchestrator import AnalysisPipeline
from feasibility.services.db_service import DBService

VALID_BODY = {
    "businessIdea": "Cloud kitchen serving tiffin meals to office workers",
    "location": "Koramangala, Bangalore",
    "budget": "15 lakhs",
}


@pytest.fixture
def mock_llm(discovery_payload, explanation_payload):
    llm = MagicMock()
    llm.max_retries = 0
    llm.calls = 0
    llm.responses = {"discover": json.dumps(discovery_payload), "explain": json.dumps(explanation_payload)}

    async def mock_text(system_prompt, user_prompt, step_name, **kwargs):
        llm.calls += 1
        response = llm.responses[step_name]
        if isinstance(response, Exception):
            raise response
        return response

    llm.text_completion = mock_text
    return llm


@pytest.fixture
def db(tmp_path):
    return DBService(f"sqlite:///{tmp_path}/api.db")


@pytest.fixture
def client(mock_llm, db):
    engine = ScoringEngine()
    app.dependency_overrides[get_pipeline] = lambda: AnalysisPipeline(mock_llm, None, db, engine=engine)
    app.dependency_overrides[get_db_service] = lambda: db
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_create_analysis(client, db):
    resp = client.post("/api/analyses", json=VALID_BODY, headers={"X-User-Id": "u-42"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["verdict"] == "GO"
    assert body["score"] == 90
    assert body["budgetFitPercent"] == 100
    assert body["financialProjection"]["breakEvenMonths"] == 6
    assert body["businessCategory"] == "cloud_kitchen"
    assert len(body["roadmap"]["phases"]) == 3

    stored = db.get_report(body["id"])
    assert stored.user_id == "u-42"
    assert stored.scoring.score == 90


def test_create_analysis_keeps_audit_data_server_side(client):
    body = client.post("/api/analyses", json=VALID_BODY).json()
    for key in ("llmCallLogs", "llm_call_logs", "pipelineSteps", "pipeline_steps", "scoring", "discovery", "userId", "user_id"):
        assert key not in body


def test_short_idea_is_rejected_before_pipeline(client, mock_llm):
    resp = client.post("/api/analyses", json=dict(VALID_BODY, businessIdea="  short  "))
    assert resp.status_code == 400
    assert resp.json() == {"error": "Business idea must be at least 10 characters"}
    assert mock_llm.calls == 0


def test_missing_idea(client):
    resp = client.post("/api/analyses", json={"location": "Pune"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "businessIdea is required"}


def test_location_and_budget_default(client):
    resp = client.post("/api/analyses", json={"businessIdea": VALID_BODY["businessIdea"]})
    assert resp.status_code == 200
    body = resp.json()
    assert body["location"] == "Not specified"
    assert body["budget"] == "Not specified"


@pytest.mark.parametrize("error,status", [
    (UpstreamRateLimited("429"), 429),
    (UpstreamQuotaExhausted("insufficient_quota"), 503),
])
def test_upstream_errors_map_to_status(client, mock_llm, error, status):
    mock_llm.responses["discover"] = error
    resp = client.post("/api/analyses", json=VALID_BODY)
    assert resp.status_code == status
    assert resp.json() == {"error": type(error).user_message}


def test_malformed_model_output_is_502(client, mock_llm):
    mock_llm.responses["explain"] = "no json at all"
    resp = client.post("/api/analyses", json=VALID_BODY)
    assert resp.status_code == 502
    assert "internal" not in resp.json()["error"].lower()


def test_get_list_delete(client):
    created = client.post("/api/analyses", json=VALID_BODY, headers={"X-User-Id": "u-1"}).json()
    analysis_id = created["id"]

    assert client.get(f"/api/analyses/{analysis_id}").json()["id"] == analysis_id
    listed = client.get("/api/analyses", params={"user_id": "u-1"}).json()
    assert [r["id"] for r in listed] == [analysis_id]
    assert client.get("/api/analyses", params={"user_id": "someone-else"}).json() == []

    audit = client.get(f"/api/analyses/{analysis_id}/audit-log").json()
    assert audit["llm_calls"] == []
    assert any(s["step_name"] == "discover" for s in audit["pipeline_steps"])

    assert client.delete(f"/api/analyses/{analysis_id}").json() == {"status": "deleted"}
    assert client.get(f"/api/analyses/{analysis_id}").status_code == 404
    assert client.delete(f"/api/analyses/{analysis_id}").status_code == 404


def test_rescore(client):
    analysis_id = client.post("/api/analyses", json=VALID_BODY).json()["id"]

    resp = client.post(f"/api/analyses/{analysis_id}/rescore", params={"strategy": "weighted"})
    assert resp.status_code == 200
    assert resp.json()["strategy"] == "weighted"

    stored = client.get(f"/api/analyses/{analysis_id}").json()
    assert stored["scoring"]["strategy"] == "weighted"
    assert stored["analysis"]["score"] == resp.json()["score"]


def test_rescore_unknown_strategy(client):
    analysis_id = client.post("/api/analyses", json=VALID_BODY).json()["id"]
    resp = client.post(f"/api/analyses/{analysis_id}/rescore", params={"strategy": "coin_flip"})
    assert resp.status_code == 400
    assert "coin_flip" in resp.json()["error"]


def test_rescore_missing_report(client):
    assert client.post("/api/analyses/nope/rescore").status_code == 404


def test_stream_unknown_id(client):
    assert client.get("/api/analyses/nope/stream").status_code == 404


def test_validation_message():
    assert validation_message([]) == "Invalid request"
    assert validation_message([{"type": "missing", "loc": ("body", "businessIdea"), "msg": "Field required"}]) == "businessIdea is required"
    assert validation_message([{"type": "value_error", "loc": ("body", "budget"), "msg": "Value error, Budget must be a string"}]) == "Budget must be a string"


@pytest.mark.asyncio
async def test_unwatched_background_status_is_released(monkeypatch):
    from feasibility.api import routes
    from feasibility.models.request import AnalysisRequest
    from feasibility.services.pipeline_status import statuses

    monkeypatch.setattr(routes, "STATUS_RETENTION_SECONDS", 0)
    pipeline = MagicMock()

    async def failing_run(request, report_id, status, user_id):
        status.mark_complete(error=UpstreamRateLimited.user_message)
        raise UpstreamRateLimited("429")

    pipeline.run = failing_run
    status = statuses.create("unwatched")

    await routes._run_in_background(pipeline, AnalysisRequest(**VALID_BODY), "unwatched", status, None)
    assert statuses.get("unwatched") is status  # kept until the retention delay runs out
    await asyncio.sleep(0.01)
    assert statuses.get("unwatched") is None


@pytest.mark.asyncio
async def test_finished_status_survives_for_late_stream(monkeypatch):
    from feasibility.api import routes
    from feasibility.models.request import AnalysisRequest
    from feasibility.services.pipeline_status import statuses

    monkeypatch.setattr(routes, "STATUS_RETENTION_SECONDS", 60)
    pipeline = MagicMock()

    async def quick_run(request, report_id, status, user_id):
        status.mark_complete()

    pipeline.run = quick_run
    status = statuses.create("late-client")

    await routes._run_in_background(pipeline, AnalysisRequest(**VALID_BODY), "late-client", status, None)
    await asyncio.sleep(0.01)
    assert statuses.get("late-client") is status
    statuses.discard("late-client")
