import asyncio
import json
import logging
import uuid

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse

from feasibility.engine.engine import ScoringEngine
from feasibility.engine.strategies import get_strategy
from feasibility.errors import FeasibilityError
from feasibility.models.report import AnalysisReport, AnalysisResponse
from feasibility.models.request import AnalysisRequest
from feasibility.models.scoring import ScoringResult
from feasibility.api.dependencies import get_db_service, get_engine, get_pipeline
from feasibility.pipeline.orchestrator import AnalysisPipeline
from feasibility.pipeline.step_score import rescore_report
from feasibility.services.db_service import DBService
from feasibility.services.pipeline_status import statuses

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analyses", tags=["analyses"])

# How long a finished run's status waits for a late SSE client before it is dropped
STATUS_RETENTION_SECONDS = 300

# Background analyses must stay referenced until they finish
_background_tasks: set[asyncio.Task] = set()


@router.post("", response_model=AnalysisResponse)
async def create_analysis(
    request: AnalysisRequest,
    pipeline: AnalysisPipeline = Depends(get_pipeline),
    x_user_id: str | None = Header(None),
):
    """Run the full analysis and return the result with its id.

    The audit trail stays server side, readable through the report and
    audit-log routes. Failures map through the FeasibilityError handler.
    """
    report = await pipeline.run(request, user_id=x_user_id)
    return AnalysisResponse(id=report.id, **report.analysis.model_dump())


async def _run_in_background(pipeline: AnalysisPipeline, request: AnalysisRequest, report_id: str, status, user_id):
    try:
        await pipeline.run(request, report_id=report_id, status=status, user_id=user_id)
    except FeasibilityError as e:
        # Already recorded on the status and in the stored report
        logger.warning(f"Background analysis {report_id} failed: {e.user_message}")
    finally:
        asyncio.get_running_loop().call_later(STATUS_RETENTION_SECONDS, statuses.discard, report_id)


@router.post("/async")
async def create_analysis_async(
    request: AnalysisRequest,
    pipeline: AnalysisPipeline = Depends(get_pipeline),
    x_user_id: str | None = Header(None),
):
    """Start the analysis in the background, return report_id and stream URL."""
    report_id = str(uuid.uuid4())
    status = statuses.create(report_id)

    task = asyncio.create_task(_run_in_background(pipeline, request, report_id, status, x_user_id))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    return {
        "report_id": report_id,
        "stream_url": f"/api/analyses/{report_id}/stream",
    }


@router.get("/{analysis_id}/stream")
async def stream_pipeline(analysis_id: str):
    """SSE stream of pipeline step events."""
    status = statuses.get(analysis_id)
    if not status:
        raise HTTPException(status_code=404, detail="No active pipeline for this ID")

    async def event_generator():
        while True:
            events = await status.next_events(timeout=15.0)
            for evt in events:
                yield f"data: {json.dumps(evt.to_payload())}\n\n"

            if status.complete:
                yield f"data: {json.dumps(status.final_payload())}\n\n"
                statuses.discard(analysis_id)
                break

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/{analysis_id}/rescore", response_model=ScoringResult)
async def rescore_analysis(
    analysis_id: str,
    strategy: str | None = None,
    db: DBService = Depends(get_db_service),
    engine: ScoringEngine = Depends(get_engine),
):
    """Recompute the score of a stored analysis from its saved factors, optionally with another strategy."""
    report = db.get_report(analysis_id)
    if not report:
        raise HTTPException(status_code=404, detail="Analysis not found")
    try:
        if strategy:
            engine = ScoringEngine(policy=engine.policy, strategy=get_strategy(strategy, engine.policy))
        rescored = rescore_report(report, engine)
    except ValueError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})

    db.update_scoring(rescored)
    return rescored.scoring


@router.get("", response_model=list[dict])
async def list_analyses(user_id: str | None = None, db: DBService = Depends(get_db_service)):
    """List past analyses (summary only), newest first."""
    return db.list_reports(user_id=user_id)


@router.get("/{analysis_id}", response_model=AnalysisReport)
async def get_analysis(
    analysis_id: str,
    db: DBService = Depends(get_db_service),
):
    """Get the full analysis report by ID."""
    report = db.get_report(analysis_id)
    if not report:
        raise HTTPException(status_code=404, detail="Analysis not found")
    return report


@router.delete("/{analysis_id}")
async def delete_analysis(
    analysis_id: str,
    db: DBService = Depends(get_db_service),
):
    """Delete an analysis and its audit trail."""
    deleted = db.delete_report(analysis_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Analysis not found")
    return {"status": "deleted"}


@router.get("/{analysis_id}/audit-log")
async def get_audit_log(
    analysis_id: str,
    db: DBService = Depends(get_db_service),
):
    """Get pipeline steps and LLM call logs for an analysis."""
    return db.get_audit_log(analysis_id)
