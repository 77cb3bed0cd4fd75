from __future__ import annotations

from resume_analyzer.services.analysis import (
    AnalysisFailed,
    AnalysisResult,
    MarketAlignmentData,
    UnparsableResponseError,
)
from resume_analyzer.services.analysis.schemas import Improvement, Insight
from resume_analyzer.services.resume_management import ExtractionFailed, StorageError, UnsupportedFileType


def _sample_result() -> AnalysisResult:
    return AnalysisResult(
        score=74.0,
        improvements=[
            Improvement(area="Experience", suggestion="Quantify the migration impact", priority="high")
        ],
        insights=[
            Insight(type="strength", description="Strong backend depth", action_items=["Lead a design review"])
        ],
        market_alignment=MarketAlignmentData(
            role_alignment=68.0,
            missing_keywords=["Kubernetes"],
            industry_trends=["Platform engineering"],
            recommended_skills=["Terraform"],
        ),
    )


def test_analysis_success_payload_is_camel_case(client, auth_headers, make_resume, install_analysis_service) -> None:
    resume = make_resume()
    service = install_analysis_service(result=_sample_result())

    resp = client.get(f"/api/analysis/resume/{resume.id}", headers=auth_headers())
    body = resp.get_json()

    assert resp.status_code == 200
    assert body["success"] is True
    assert body["data"]["score"] == 74.0
    assert body["data"]["marketAlignment"]["roleAlignment"] == 68.0
    assert body["data"]["marketAlignment"]["missingKeywords"] == ["Kubernetes"]
    assert body["data"]["insights"][0]["actionItems"] == ["Lead a design review"]
    assert service.requested == [resume.id]


def test_analysis_of_unknown_or_foreign_resume(client, auth_headers, make_resume, install_analysis_service) -> None:
    service = install_analysis_service(result=_sample_result())
    foreign = make_resume(user_id="user-2")

    assert client.get("/api/analysis/resume/999", headers=auth_headers()).status_code == 404
    assert client.get(f"/api/analysis/resume/{foreign.id}", headers=auth_headers()).status_code == 404
    assert service.requested == []


def test_analysis_failure_hides_cause(client, auth_headers, make_resume, install_analysis_service) -> None:
    resume = make_resume()
    cause = UnparsableResponseError("model said: secret internals", raw_text="{")
    install_analysis_service(error=AnalysisFailed(cause, stage="Scoring"))

    resp = client.get(f"/api/analysis/resume/{resume.id}", headers=auth_headers())
    body = resp.get_json()

    assert resp.status_code == 502
    assert body == {"error": "Failed to analyze resume. Please try again later."}


def test_analysis_failure_detail_when_exposed(app, client, auth_headers, make_resume, install_analysis_service) -> None:
    app.config["EXPOSE_ERROR_DETAILS"] = True
    resume = make_resume()
    install_analysis_service(error=AnalysisFailed(UnparsableResponseError("bad json", raw_text="{"), stage="Scoring"))

    body = client.get(f"/api/analysis/resume/{resume.id}", headers=auth_headers()).get_json()

    assert "bad json" in body["detail"]


def test_extraction_errors_map_to_client_statuses(client, auth_headers, make_resume, install_analysis_service) -> None:
    resume = make_resume()

    install_analysis_service(error=UnsupportedFileType("Unsupported file type: image/png"))
    assert client.get(f"/api/analysis/resume/{resume.id}", headers=auth_headers()).status_code == 415

    install_analysis_service(error=ExtractionFailed("Failed to extract text from PDF."))
    resp = client.get(f"/api/analysis/resume/{resume.id}", headers=auth_headers())
    assert resp.status_code == 422
    assert resp.get_json()["success"] is False


def test_storage_error_is_bad_gateway(client, auth_headers, make_resume, install_analysis_service) -> None:
    resume = make_resume()
    install_analysis_service(error=StorageError("NoSuchKey"))

    resp = client.get(f"/api/analysis/resume/{resume.id}", headers=auth_headers())

    assert resp.status_code == 502


def test_unexpected_error_is_internal(client, auth_headers, make_resume, install_analysis_service) -> None:
    resume = make_resume()
    install_analysis_service(error=RuntimeError("boom"))

    resp = client.get(f"/api/analysis/resume/{resume.id}", headers=auth_headers())

    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Internal server error"}


def test_analysis_requires_auth(client, make_resume) -> None:
    resume = make_resume()
    assert client.get(f"/api/analysis/resume/{resume.id}").status_code == 401
