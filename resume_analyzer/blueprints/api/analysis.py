from flask import jsonify, g

from resume_analyzer.models import Resume
from resume_analyzer.jwt_auth import require_jwt
from resume_analyzer.blueprints.api import api_bp, error_response, get_analysis_service
from resume_analyzer.services.analysis import AnalysisFailed, analysis_to_transport_payload
from resume_analyzer.services.resume_management import (
    ExtractionFailed,
    ResumeParsingError,
    StorageError,
    UnsupportedFileType,
)
import logging

logger = logging.getLogger(__name__)


@api_bp.route("/analysis/resume/<int:resume_id>", methods=["GET"])
@require_jwt()
def analyze_resume(resume_id):
    """Return the resume's analysis, computing and storing it on first request"""
    resume = Resume.get_owned(resume_id, g.user_sub)
    if not resume:
        return jsonify({"success": False, "error": "Resume not found"}), 404

    try:
        service = get_analysis_service()
    except ValueError as e:
        logger.error(f"Analysis service unavailable: {e}")
        return error_response("Analysis service is not configured", 503, e)

    try:
        result = service.get_or_create_analysis(resume)
    except UnsupportedFileType as e:
        return jsonify({"success": False, "error": str(e)}), 415
    except ExtractionFailed as e:
        return jsonify({"success": False, "error": str(e)}), 422
    except ResumeParsingError as e:
        return jsonify({"success": False, "error": str(e)}), 400
    except StorageError as e:
        logger.error(f"Could not fetch resume {resume_id} from storage: {e}")
        return error_response("Failed to retrieve resume file", 502, e)
    except AnalysisFailed as e:
        logger.error(
            "Analysis failed for resume %s in stage %s: %r", resume_id, e.stage, e.cause
        )
        return error_response("Failed to analyze resume. Please try again later.", 502, e)
    except Exception as e:
        logger.exception("Unexpected error analyzing resume %s", resume_id)
        return error_response("Internal server error", 500, e)

    return jsonify({"success": True, "data": analysis_to_transport_payload(result)})
