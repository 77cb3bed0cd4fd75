from __future__ import annotations

import logging
from flask import Blueprint, jsonify, current_app, g

from resume_analyzer.jwt_auth import require_jwt

logger = logging.getLogger(__name__)

# Create the blueprint
api_bp = Blueprint("api", __name__, url_prefix="/api")

# Keys under ``app.extensions``; tests put fakes there before the first request
STORAGE_EXTENSION = "resume_storage"
PIPELINE_EXTENSION = "resume_pipeline"
ANALYSIS_EXTENSION = "resume_analysis_service"


def get_storage_service():
    """The app's ``ResumeStorageService``, created on first use."""
    from resume_analyzer.services.resume_management import ResumeStorageService

    ext = current_app.extensions
    if STORAGE_EXTENSION not in ext:
        ext[STORAGE_EXTENSION] = ResumeStorageService(
            bucket=current_app.config.get("S3_BUCKET_NAME"),
            region=current_app.config.get("AWS_REGION"),
        )
    return ext[STORAGE_EXTENSION]


def get_resume_pipeline():
    from resume_analyzer.services.resume_management import ResumePipeline

    ext = current_app.extensions
    if PIPELINE_EXTENSION not in ext:
        ext[PIPELINE_EXTENSION] = ResumePipeline(storage=get_storage_service())
    return ext[PIPELINE_EXTENSION]


def get_analysis_service():
    """The app's ``ResumeAnalysisService``; raises ValueError if the LLM is not configured."""
    from resume_analyzer.services.analysis import build_default_service

    ext = current_app.extensions
    if ANALYSIS_EXTENSION not in ext:
        ext[ANALYSIS_EXTENSION] = build_default_service(
            current_app.config, storage=get_storage_service()
        )
    return ext[ANALYSIS_EXTENSION]


def error_response(message: str, status: int, exc: BaseException = None):
    """JSON error body; the exception text is added only when details are exposed."""
    body = {"error": message}
    if exc is not None and current_app.config.get("EXPOSE_ERROR_DETAILS"):
        body["detail"] = str(exc)
    return jsonify(body), status


# Health check / ping endpoint
@api_bp.route("/ping-protected", methods=["GET"])
@require_jwt()
def ping_protected():
    """Protected endpoint for testing authentication"""
    logger.debug(f"JWT payload: {g.jwt_payload}")
    return jsonify({"ok": True, "message": "pong", "user": g.user_sub})


# Import API routes to register them on blueprint after blueprint creation
from .resumes import *
from .analysis import *
from .health import *
