from feasibility.models.report import AnalysisReport
from feasibility.services.db_service import DBService


def persist_report(report: AnalysisReport, db: DBService) -> str:
    """Save the report with its audit trail. Failed analyses are saved too."""
    return db.save_report(report)
