import os
import logging
from sqlalchemy import create_engine, delete, desc, select
from sqlalchemy.orm import Session, sessionmaker

from feasibility.models.db import Base, AnalysisRecord, AuditLogEntry, LLMCallRecord
from feasibility.models.report import AnalysisReport

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./feasibility.db"


def _summary_row(record: AnalysisRecord) -> dict:
    return {
        "id": record.id,
        "user_id": record.user_id,
        "business_idea": record.business_idea,
        "location": record.location,
        "budget": record.budget,
        "business_category": record.business_category,
        "city_tier": record.city_tier,
        "verdict": record.verdict,
        "score": record.score,
        "summary": record.summary,
        "created_at": record.created_at.isoformat() if record.created_at else None,
    }


def _step_row(entry: AuditLogEntry) -> dict:
    return {
        "step_name": entry.step_name,
        "status": entry.status,
        "duration_ms": entry.duration_ms,
        "error": entry.error,
    }


def _call_row(call: LLMCallRecord) -> dict:
    return {
        "step_name": call.step_name,
        "model": call.model,
        "system_prompt": call.system_prompt,
        "user_prompt": call.user_prompt,
        "response": call.response,
        "tokens_used": call.tokens_used,
        "duration_ms": call.duration_ms,
    }


def _record_for(report: AnalysisReport) -> AnalysisRecord:
    request = report.request_summary
    analysis = report.analysis
    return AnalysisRecord(
        id=report.id,
        user_id=report.user_id,
        business_idea=request.get("business_idea", ""),
        location=request.get("location"),
        budget=request.get("budget"),
        business_category=report.business_profile.category if report.business_profile else None,
        city_tier=report.location_profile.tier if report.location_profile else None,
        verdict=analysis.verdict if analysis else None,
        score=analysis.score if analysis else None,
        summary=analysis.summary if analysis else report.error,
        strategy=report.scoring.strategy if report.scoring else None,
        policy_version=report.scoring.policy_version if report.scoring else None,
        report_json=report.model_dump_json(),
        created_at=report.created_at,
    )


class DBService:
    """SQLAlchemy store for analysis reports and their audit trail (steps and model calls)."""

    def __init__(self, database_url: str | None = None):
        url = database_url or os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
        self.engine = create_engine(url, echo=False)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine)

    def save_report(self, report: AnalysisReport) -> str:
        """Insert or replace a report. Re-saving replaces its audit rows."""
        with self.Session() as session:
            session.merge(_record_for(report))
            self._clear_audit(session, report.id)
            session.add_all(
                AuditLogEntry(
                    analysis_id=report.id,
                    step_name=step.step_name,
                    status=step.status,
                    duration_ms=step.duration_ms,
                    error=step.error,
                )
                for step in report.pipeline_steps
            )
            session.add_all(
                LLMCallRecord(analysis_id=report.id, **log.model_dump(exclude={"timestamp"}))
                for log in report.llm_call_logs
            )
            session.commit()
        logger.info(f"Saved analysis {report.id} ({len(report.pipeline_steps)} steps, {len(report.llm_call_logs)} model calls)")
        return report.id

    def get_report(self, report_id: str) -> AnalysisReport | None:
        with self.Session() as session:
            record = session.get(AnalysisRecord, report_id)
            if record is None:
                return None
            return AnalysisReport.model_validate_json(record.report_json)

    def list_reports(self, user_id: str | None = None) -> list[dict]:
        """Summaries, newest first, optionally for one user."""
        query = select(AnalysisRecord).order_by(desc(AnalysisRecord.created_at))
        if user_id:
            query = query.where(AnalysisRecord.user_id == user_id)
        with self.Session() as session:
            return [_summary_row(r) for r in session.scalars(query)]

    def delete_report(self, report_id: str) -> bool:
        with self.Session() as session:
            record = session.get(AnalysisRecord, report_id)
            if record is None:
                return False
            self._clear_audit(session, report_id)
            session.delete(record)
            session.commit()
        logger.info(f"Deleted analysis {report_id}")
        return True

    def update_scoring(self, report: AnalysisReport) -> None:
        """Overwrite the stored JSON and the verdict columns after a rescore. Audit rows are kept."""
        with self.Session() as session:
            record = session.get(AnalysisRecord, report.id)
            if record is None:
                logger.warning(f"Cannot update scoring for unknown analysis {report.id}")
                return
            record.report_json = report.model_dump_json()
            if report.scoring:
                record.verdict = report.scoring.verdict
                record.score = report.scoring.score
                record.strategy = report.scoring.strategy
                record.policy_version = report.scoring.policy_version
            session.commit()

    def get_audit_log(self, report_id: str) -> dict:
        with self.Session() as session:
            steps = session.scalars(
                select(AuditLogEntry).where(AuditLogEntry.analysis_id == report_id).order_by(AuditLogEntry.id)
            ).all()
            calls = session.scalars(
                select(LLMCallRecord).where(LLMCallRecord.analysis_id == report_id).order_by(LLMCallRecord.id)
            ).all()
            return {
                "pipeline_steps": [_step_row(s) for s in steps],
                "llm_calls": [_call_row(c) for c in calls],
            }

    @staticmethod
    def _clear_audit(session: Session, report_id: str):
        session.execute(delete(AuditLogEntry).where(AuditLogEntry.analysis_id == report_id))
        session.execute(delete(LLMCallRecord).where(LLMCallRecord.analysis_id == report_id))
