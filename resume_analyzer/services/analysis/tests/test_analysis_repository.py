from __future__ import annotations

import pytest

from resume_analyzer.extensions import db
from resume_analyzer.models import Resume, UserProfile
from resume_analyzer.services.analysis.repository import AnalysisRepository
from resume_analyzer.services.analysis.schemas import (
    ANALYSIS_SCHEMA_VERSION,
    DetailedAnalysis,
    Improvement,
    MarketAlignmentData,
    build_analysis_result,
)


def _sample_result(score: float = 74):
    return build_analysis_result(
        detailed=DetailedAnalysis(
            impact_score=70,
            clarity_score=75,
            achievement_score=72,
            skills_relevance=78,
            overall_score=score,
            section_scores={"skills": 80},
        ),
        improvements=[Improvement(area="Skills", suggestion="Group by domain")],
        insights=[],
        market_alignment=MarketAlignmentData(role_alignment=61, recommended_skills=["dbt"]),
    )


@pytest.fixture
def resume(app):
    db.session.add(UserProfile(id="user-1", email="jane@example.com"))
    row = Resume(user_id="user-1", s3_key="user-1/1-cv.pdf", original_filename="cv.pdf")
    db.session.add(row)
    db.session.commit()
    return row


def test_get_analysis_is_none_until_stored(resume) -> None:
    assert AnalysisRepository().get_analysis(resume.id) is None


def test_store_then_get_round_trips(resume) -> None:
    repo = AnalysisRepository()
    result = _sample_result()

    assert repo.store_analysis(resume.id, result) is True
    assert repo.get_analysis(resume.id) == result

    row = db.session.get(Resume, resume.id)
    assert row.status == Resume.STATUS_ANALYZED
    assert row.analysis_version == ANALYSIS_SCHEMA_VERSION
    assert row.analyzed_at is not None
    assert row.to_dict()["score"] == 74


def test_first_stored_analysis_wins(resume) -> None:
    repo = AnalysisRepository()
    first = _sample_result(score=74)

    assert repo.store_analysis(resume.id, first)
    assert repo.store_analysis(resume.id, _sample_result(score=12)) is False
    assert repo.get_analysis(resume.id) == first


def test_unknown_resume(app) -> None:
    repo = AnalysisRepository()
    assert repo.get_analysis(999) is None
    assert repo.store_analysis(999, _sample_result()) is False
    assert repo.mark_status(999, Resume.STATUS_FAILED) is False


def test_parsed_text_and_status_updates(resume) -> None:
    repo = AnalysisRepository()
    assert repo.store_parsed_text(resume.id, "Resume body")
    assert repo.mark_status(resume.id, Resume.STATUS_ANALYZING)

    row = db.session.get(Resume, resume.id)
    assert row.parsed_text == "Resume body"
    assert row.status == "analyzing"

    with pytest.raises(ValueError):
        repo.mark_status(resume.id, "exploded")
