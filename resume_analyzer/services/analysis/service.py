"""Cache-before-compute facade used by the HTTP layer.

``get_or_create_analysis`` returns the persisted analysis when one exists and
otherwise downloads the document, extracts text, runs the pipeline and stores
the result. Concurrent requests for the same resume inside one process share a
single computation; requests in different processes may still both compute,
and the repository keeps whichever result is written first.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Mapping, Optional

from resume_analyzer.models import Resume
from resume_analyzer.services.resume_management import (
    ResumeStorageService,
    extract_text,
    get_resume_text,
)

from .analyzer import ResumeAnalyzer, build_analyzer
from .config import AnalysisConfig
from .exceptions import AnalysisFailed
from .repository import AnalysisRepository
from .schemas import AnalysisResult

logger = logging.getLogger(__name__)


class _KeyedLocks:
    """One lock per key, discarded once nobody holds or waits on it."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Any, threading.Lock] = {}
        self._users: Dict[Any, int] = {}

    @contextmanager
    def hold(self, key: Any) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._users[key] = self._users.get(key, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[key] -= 1
                if self._users[key] == 0:
                    del self._users[key]
                    del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class ResumeAnalysisService:
    def __init__(
        self,
        storage: ResumeStorageService,
        repository: AnalysisRepository,
        analyzer: ResumeAnalyzer,
    ):
        self.storage = storage
        self.repository = repository
        self.analyzer = analyzer
        self._locks = _KeyedLocks()

    def get_or_create_analysis(self, resume: Resume) -> AnalysisResult:
        cached = self.repository.get_analysis(resume.id)
        if cached is not None:
            logger.debug("Serving cached analysis for resume %s", resume.id)
            return cached

        with self._locks.hold(resume.id):
            # Another request may have finished while we waited
            cached = self.repository.get_analysis(resume.id)
            if cached is not None:
                logger.debug("Analysis for resume %s computed by a concurrent request", resume.id)
                return cached
            return self._compute(resume)

    def _compute(self, resume: Resume) -> AnalysisResult:
        text = get_resume_text(resume)
        if text is None:
            logger.info("Extracting text for resume %s from s3://%s", resume.id, resume.s3_key)
            raw = self.storage.download_bytes(resume.s3_key, bucket=resume.s3_bucket)
            text = extract_text(raw, resume.content_type, resume.original_filename)
            self.repository.store_parsed_text(resume.id, text)

        self.repository.mark_status(resume.id, Resume.STATUS_ANALYZING)
        try:
            result = self.analyzer.analyze(text)
        except AnalysisFailed:
            self.repository.mark_status(resume.id, Resume.STATUS_FAILED)
            raise

        if not self.repository.store_analysis(resume.id, result):
            stored = self.repository.get_analysis(resume.id)
            if stored is not None:
                return stored
            logger.warning("Analysis for resume %s was computed but not persisted", resume.id)
            self.repository.mark_status(resume.id, Resume.STATUS_FAILED)
        return result


def build_default_service(
    app_config: Optional[Mapping[str, Any]] = None,
    analysis_config: Optional[AnalysisConfig] = None,
    storage: Optional[ResumeStorageService] = None,
) -> ResumeAnalysisService:
    """Wire the service with S3 storage, the SQL repository and a configured analyzer."""
    app_config = app_config or {}
    storage = storage or ResumeStorageService(
        bucket=app_config.get("S3_BUCKET_NAME"),
        region=app_config.get("AWS_REGION"),
    )
    return ResumeAnalysisService(
        storage=storage,
        repository=AnalysisRepository(),
        analyzer=build_analyzer(analysis_config),
    )
