from flask import jsonify, current_app

from resume_analyzer.blueprints.api import api_bp, get_storage_service
from resume_analyzer.services.analysis import config as analysis_config


@api_bp.route("/health", methods=["GET"])
def health():
    """Report which integrations are configured; never exposes secret values"""
    cfg = current_app.config
    return jsonify(
        {
            "status": "ok",
            "config": {
                "jwtSecret": bool(cfg.get("JWT_SECRET")),
                "s3Bucket": bool(cfg.get("S3_BUCKET_NAME")),
                "llmProvider": analysis_config.llm.provider,
                "llmApiKey": bool(analysis_config.llm.api_key),
            },
        }
    )


@api_bp.route("/upload/health", methods=["GET"])
def upload_health():
    """S3 connectivity check"""
    report = get_storage_service().check_connectivity()
    if current_app.config.get("EXPOSE_ERROR_DETAILS") is not True:
        report.pop("error", None)
    return jsonify(report), 200 if report.get("ok") else 503
