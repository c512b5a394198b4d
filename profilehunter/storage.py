import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from .database import BatchRun, Resolution, get_session, init_database
from .logger import StructuredLogger, get_logger
from .models import BatchReport


def _record_row(position: int, record) -> Resolution:
    return Resolution(
        position=position,
        email=record.email,
        linkedin=record.linkedin,
        layers=json.dumps(list(record.layers)),
        failed_layers=json.dumps(list(record.failed_layers)),
        confidence=record.confidence,
        error=record.error,
    )


def _row_dict(row: Resolution) -> Dict[str, Any]:
    data = {
        "email": row.email,
        "linkedin": row.linkedin,
        "layers": json.loads(row.layers or "[]"),
        "failedLayers": json.loads(row.failed_layers or "[]"),
        "confidence": row.confidence,
    }
    if row.error:
        data["error"] = row.error
    return data


def save_report(report: BatchReport, db_path: Path) -> int:
    """Persist a batch report and return its batch id."""
    init_database(db_path)
    session = get_session(db_path)
    try:
        run = BatchRun(created_at=report.created_at, apollo_credits=report.apollo_credits)
        run.resolutions = [_record_row(i, r) for i, r in enumerate(report.results)]
        session.add(run)
        session.commit()
        return run.id
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def load_last_report(db_path: Path) -> Optional[Dict[str, Any]]:
    """Return the most recent batch as {results, apolloCredits, createdAt}, or None."""
    if not db_path.exists():
        return None
    init_database(db_path)
    session = get_session(db_path)
    try:
        run = session.query(BatchRun).order_by(BatchRun.id.desc()).first()
        if run is None:
            return None
        return {
            "results": [_row_dict(r) for r in run.resolutions],
            "apolloCredits": run.apollo_credits,
            "createdAt": run.created_at.isoformat(),
        }
    finally:
        session.close()


def list_reports(db_path: Path, limit: int = 10) -> List[Dict[str, Any]]:
    """Summaries of the most recent batches, newest first."""
    if not db_path.exists():
        return []
    init_database(db_path)
    session = get_session(db_path)
    try:
        runs = session.query(BatchRun).order_by(BatchRun.id.desc()).limit(limit).all()
        summaries = []
        for run in runs:
            total = len(run.resolutions)
            resolved = sum(1 for r in run.resolutions if r.linkedin)
            summaries.append({
                "id": run.id,
                "createdAt": run.created_at.isoformat(),
                "emails": total,
                "resolved": resolved,
                "apolloCredits": run.apollo_credits,
            })
        return summaries
    finally:
        session.close()


class ReportStore:
    """
    Keeps the last batch report of this process, optionally mirrored to SQLite.

    With no db_path the store is purely in memory. Database failures are
    logged and never lose the in-memory report.
    """

    def __init__(self, db_path: Optional[Path] = None, logger: Optional[StructuredLogger] = None):
        self.db_path = db_path
        self.logger = logger or get_logger()
        self._last: Optional[BatchReport] = None

    def save(self, report: BatchReport) -> bool:
        """Keep the report as last; returns False if the database write failed."""
        self._last = report
        if self.db_path is None:
            return True
        try:
            save_report(report, self.db_path)
        except (SQLAlchemyError, OSError) as e:
            self.logger.record_error("storage", type(e).__name__)
            self.logger.error("Could not persist batch report", db_path=str(self.db_path), error=str(e))
            return False
        return True

    def last_results(self) -> List[Dict[str, Any]]:
        if self._last is not None:
            return [r.to_dict() for r in self._last.results]
        if self.db_path is not None:
            try:
                stored = load_last_report(self.db_path)
            except (SQLAlchemyError, OSError) as e:
                self.logger.error("Could not read stored batch report", db_path=str(self.db_path), error=str(e))
                return []
            if stored:
                return stored["results"]
        return []
