import inspect
import time
import uuid
import logging
from datetime import datetime, timezone

from feasibility.engine.business import BusinessClassifier
from feasibility.engine.engine import ScoringEngine
from feasibility.engine.location import LocationClassifier
from feasibility.engine.money import BudgetAmount
from feasibility.errors import FeasibilityError
from feasibility.models.factors import FactorDiscovery
from feasibility.models.narrative import Explanation
from feasibility.models.profiles import BusinessProfile, LocationProfile
from feasibility.models.report import AnalysisReport, LLMCallLog, PipelineStep
from feasibility.models.request import AnalysisRequest
from feasibility.models.scoring import ScoringResult
from feasibility.models.signals import ExternalSignals
from feasibility.services.db_service import DBService
from feasibility.services.llm_service import LLMService
from feasibility.services.pipeline_status import PipelineStatus
from feasibility.services.signal_service import SignalService
from feasibility.pipeline.step_assemble import assemble_result
from feasibility.pipeline.step_discover import discover_factors
from feasibility.pipeline.step_explain import explain_result
from feasibility.pipeline.step_persist import persist_report
from feasibility.pipeline.step_score import project_monthly

logger = logging.getLogger(__name__)


class AnalysisPipeline:
    def __init__(
        self,
        llm: LLMService,
        signals: SignalService | None,
        db: DBService | None,
        engine: ScoringEngine | None = None,
        location_classifier: LocationClassifier | None = None,
        business_classifier: BusinessClassifier | None = None,
    ):
        self.llm = llm
        self.signals = signals
        self.db = db
        self.engine = engine or ScoringEngine()
        self.location_classifier = location_classifier or LocationClassifier()
        self.business_classifier = business_classifier or BusinessClassifier()

    async def run(
        self,
        request: AnalysisRequest,
        report_id: str | None = None,
        status: PipelineStatus | None = None,
        user_id: str | None = None,
    ) -> AnalysisReport:
        """Run one analysis end to end.

        Optional steps (signals, persist) degrade to nothing on failure.
        A failed mandatory step is recorded, the partial report is persisted
        for audit and the FeasibilityError is re-raised to the caller.
        """
        if report_id is None:
            report_id = str(uuid.uuid4())
        steps: list[PipelineStep] = []
        call_logs: list[LLMCallLog] = []  # owned by this run only

        logger.info(f"=== Analysis started for '{request.business_idea[:80]}' in {request.location} (id={report_id}) ===")

        report = AnalysisReport(
            id=report_id,
            user_id=user_id,
            request_summary=request.model_dump(),
        )
        report.pipeline_steps = steps  # shared so later steps, persist included, land in the report

        # Step 1: Validate (pydantic already did it)
        steps.append(PipelineStep(
            step_name="validate", status="completed",
            started_at=datetime.now(timezone.utc), completed_at=datetime.now(timezone.utc),
            duration_ms=0,
        ))
        if status:
            status.emit("validate", "completed", duration_ms=0)

        try:
            budget, location, business = await self._run_step("classify", steps, self._classify, request, status=status)
            report.location_profile = location
            report.business_profile = business

            signals = await self._run_step(
                "signals", steps, self._signals, request, required=False, status=status,
            )
            report.external_signals = signals

            discovery = await self._run_step(
                "discover", steps, self._discover, request, business, location, signals, call_logs, status=status,
            )
            report.discovery = discovery

            scoring = await self._run_step(
                "score", steps, self._score, discovery, business, location, budget, status=status,
            )
            report.scoring = scoring

            yearly_data = await self._run_step("project", steps, project_monthly, self.engine, scoring, status=status)

            explanation, warnings = await self._run_step(
                "explain", steps, self._explain, request, scoring, discovery, call_logs, status=status,
            )
            report.narrative_warnings = warnings

            report.analysis = await self._run_step(
                "assemble", steps, assemble_result,
                request, business, location, discovery, scoring, yearly_data, explanation,
                status=status,
            )
        except FeasibilityError as e:
            report.error = e.user_message
            report.llm_call_logs = call_logs
            await self._run_step("persist", steps, self._persist, report, required=False, status=status)
            if status:
                status.mark_complete(error=e.user_message)
            logger.error(f"=== Analysis {report_id} failed: {type(e).__name__}: {e} ===")
            raise

        report.llm_call_logs = call_logs

        # Step 9: Persist (a storage failure never fails the response)
        await self._run_step("persist", steps, self._persist, report, required=False, status=status)

        if status:
            status.mark_complete()

        logger.info(
            f"=== Analysis completed for {report_id}: "
            f"score={scoring.score}, verdict={scoring.verdict} ==="
        )

        return report

    async def _run_step(
        self,
        name: str,
        steps: list[PipelineStep],
        fn,
        *args,
        required: bool = True,
        status: PipelineStatus | None = None,
    ):
        step = PipelineStep(step_name=name, status="running", started_at=datetime.now(timezone.utc))
        start = time.time()
        logger.info(f"Step '{name}' started")
        if status:
            status.emit(name, "started")
        try:
            result = await fn(*args) if inspect.iscoroutinefunction(fn) else fn(*args)
            step.status = "completed"
            step.completed_at = datetime.now(timezone.utc)
            step.duration_ms = (time.time() - start) * 1000
            steps.append(step)
            logger.info(f"Step '{name}' completed in {step.duration_ms:.0f}ms")
            if status:
                status.emit(name, "completed", duration_ms=step.duration_ms)
            return result
        except Exception as e:
            step.status = "failed"
            step.error = str(e)
            step.completed_at = datetime.now(timezone.utc)
            step.duration_ms = (time.time() - start) * 1000
            steps.append(step)
            logger.error(f"Step '{name}' failed in {step.duration_ms:.0f}ms: {e}")
            if status:
                status.emit(name, "failed", duration_ms=step.duration_ms, error=str(e))
            if not required:
                return None
            if isinstance(e, FeasibilityError):
                raise
            raise FeasibilityError(f"Step '{name}' failed: {e}") from e

    def _classify(self, request: AnalysisRequest) -> tuple[BudgetAmount, LocationProfile, BusinessProfile]:
        budget = BudgetAmount.from_raw(request.budget)
        location = self.location_classifier.classify(request.location)
        business = self.business_classifier.classify(request.business_idea)
        logger.info(
            f"Classified: category={business.category}, city={location.city or 'unknown'} "
            f"(tier {location.tier}), budget=INR {budget.amount:,.0f}"
            f"{'' if budget.specified else ' (default)'}"
        )
        return budget, location, business

    async def _signals(self, request: AnalysisRequest) -> ExternalSignals | None:
        if self.signals is None:
            return None
        return await self.signals.fetch_signals(request.business_idea, request.location)

    async def _discover(
        self,
        request: AnalysisRequest,
        business: BusinessProfile,
        location: LocationProfile,
        signals: ExternalSignals | None,
        call_logs: list[LLMCallLog],
    ) -> FactorDiscovery:
        return await discover_factors(request, business, location, signals, self.llm, call_logs)

    def _score(
        self,
        discovery: FactorDiscovery,
        business: BusinessProfile,
        location: LocationProfile,
        budget: BudgetAmount,
    ) -> ScoringResult:
        return self.engine.evaluate(discovery, business, location, budget)

    async def _explain(
        self,
        request: AnalysisRequest,
        scoring: ScoringResult,
        discovery: FactorDiscovery,
        call_logs: list[LLMCallLog],
    ) -> tuple[Explanation, list[str]]:
        return await explain_result(request, scoring, discovery, self.llm, call_logs)

    def _persist(self, report: AnalysisReport) -> str | None:
        if self.db is None:
            return None
        return persist_report(report, self.db)
