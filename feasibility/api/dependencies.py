import os
from functools import lru_cache

from feasibility.engine.engine import ScoringEngine
from feasibility.engine.strategies import get_strategy
from feasibility.services.llm_service import LLMService
from feasibility.services.signal_service import SignalService
from feasibility.services.db_service import DBService
from feasibility.pipeline.orchestrator import AnalysisPipeline


@lru_cache
def get_llm_service() -> LLMService:
    return LLMService()


@lru_cache
def get_signal_service() -> SignalService:
    return SignalService()


@lru_cache
def get_db_service() -> DBService:
    return DBService()


@lru_cache
def get_engine() -> ScoringEngine:
    """Strategy is chosen once per process from SCORING_STRATEGY."""
    return ScoringEngine(strategy=get_strategy(os.getenv("SCORING_STRATEGY") or None))


def get_pipeline() -> AnalysisPipeline:
    return AnalysisPipeline(
        llm=get_llm_service(),
        signals=get_signal_service(),
        db=get_db_service(),
        engine=get_engine(),
    )
