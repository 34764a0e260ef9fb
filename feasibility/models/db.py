from sqlalchemy import Column, String, Text, DateTime, Float, Integer
from sqlalchemy.orm import declarative_base
from datetime import datetime, timezone
import uuid

Base = declarative_base()


def _utcnow():
    return datetime.now(timezone.utc)


class AnalysisRecord(Base):
    """One feasibility analysis. Summary columns are denormalized from ``report_json`` for listing."""
    __tablename__ = "analysis_records"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=True, index=True)
    business_idea = Column(Text, nullable=False)
    location = Column(String(200), nullable=True)
    budget = Column(String(100), nullable=True)
    business_category = Column(String(50), nullable=True)
    city_tier = Column(Integer, nullable=True)
    verdict = Column(String(10), nullable=True)
    score = Column(Integer, nullable=True)
    summary = Column(Text, nullable=True)
    strategy = Column(String(20), nullable=True)
    policy_version = Column(String(40), nullable=True)
    report_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=_utcnow, index=True)


class AuditLogEntry(Base):
    __tablename__ = "audit_log_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    analysis_id = Column(String, nullable=False, index=True)
    step_name = Column(String(30), nullable=False)
    status = Column(String(20), nullable=False)
    duration_ms = Column(Float, nullable=True)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime, default=_utcnow)


class LLMCallRecord(Base):
    __tablename__ = "llm_call_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    analysis_id = Column(String, nullable=False, index=True)
    step_name = Column(String(30), nullable=False)
    model = Column(String(100), nullable=False)
    system_prompt = Column(Text, nullable=False)
    user_prompt = Column(Text, nullable=False)
    response = Column(Text, nullable=False)
    tokens_used = Column(Integer, nullable=True)
    duration_ms = Column(Float, nullable=True)
    created_at = Column(DateTime, default=_utcnow)
