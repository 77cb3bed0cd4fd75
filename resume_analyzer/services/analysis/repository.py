"""Persistence adapter between the analysis pipeline and the ``Resume`` table."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from resume_analyzer.extensions import db
from resume_analyzer.models import Resume

from .schemas import (
    ANALYSIS_SCHEMA_VERSION,
    AnalysisResult,
    analysis_to_transport_payload,
    load_analysis_from_storage,
)

logger = logging.getLogger(__name__)


class AnalysisRepository:
    """Reads and writes analysis results stored on ``Resume.analysis_json``.

    A stored result is never overwritten by ``store_analysis``; the first
    successful write for a resume wins.
    """

    def get_analysis(self, resume_id: int) -> Optional[AnalysisResult]:
        # Reload so a result committed by another session is seen
        resume = db.session.get(Resume, resume_id, populate_existing=True)
        if resume is None:
            return None
        return load_analysis_from_storage(resume.analysis_json)

    def store_analysis(self, resume_id: int, result: AnalysisResult) -> bool:
        resume = db.session.get(Resume, resume_id, populate_existing=True)
        if resume is None:
            logger.warning("Cannot store analysis: resume %s does not exist", resume_id)
            return False
        if load_analysis_from_storage(resume.analysis_json) is not None:
            logger.info("Resume %s already has a stored analysis; keeping it", resume_id)
            return False

        resume.analysis_json = analysis_to_transport_payload(result)
        resume.analysis_version = ANALYSIS_SCHEMA_VERSION
        resume.status = Resume.STATUS_ANALYZED
        resume.analyzed_at = datetime.now(timezone.utc)
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Failed to store analysis for resume %s", resume_id)
            return False
        logger.info("Stored analysis for resume %s (score=%.1f)", resume_id, result.score)
        return True

    def store_parsed_text(self, resume_id: int, text: str) -> bool:
        resume = db.session.get(Resume, resume_id)
        if resume is None:
            return False
        resume.parsed_text = text
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Failed to store parsed text for resume %s", resume_id)
            return False
        return True

    def mark_status(self, resume_id: int, status: str) -> bool:
        if status not in Resume.VALID_STATES:
            raise ValueError(f"Unknown resume status: {status!r}")
        resume = db.session.get(Resume, resume_id)
        if resume is None:
            return False
        resume.status = status
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Failed to update status for resume %s", resume_id)
            return False
        return True
