from flask import request, jsonify, g
from sqlalchemy.exc import SQLAlchemyError

from resume_analyzer.models import db, Resume
from resume_analyzer.jwt_auth import require_jwt
from resume_analyzer.blueprints.api import (
    api_bp,
    error_response,
    get_resume_pipeline,
    get_storage_service,
)
from resume_analyzer.services.resume_management import (
    ResumeParsingError,
    StorageError,
    UnsupportedFileType,
    ExtractionFailed,
)
from resume_analyzer.services.resume_management.ingest import SUPPORTED_CONTENT_TYPES
import logging

logger = logging.getLogger(__name__)


@api_bp.route("/upload/upload-url", methods=["POST"])
@require_jwt()
def create_upload_url():
    """Presigned PUT URL for a direct browser-to-S3 upload"""
    data = request.get_json(silent=True) or {}
    file_name = data.get("fileName")
    content_type = data.get("contentType")
    if not file_name or not content_type:
        return jsonify({"error": "fileName and contentType are required"}), 400
    if content_type not in SUPPORTED_CONTENT_TYPES:
        return (
            jsonify({"error": f"Unsupported file type: {content_type}. Please upload a PDF, DOCX or TXT file."}),
            415,
        )

    storage = get_storage_service()
    key = storage.build_key(g.user_sub, file_name)
    try:
        upload_url = storage.generate_upload_url(key, content_type)
    except StorageError as e:
        logger.error(f"Upload URL generation failed: {e}")
        return error_response("Failed to generate upload URL", 502, e)

    return jsonify({"uploadUrl": upload_url, "key": key})


@api_bp.route("/upload/notify-upload", methods=["POST"])
@require_jwt()
def notify_upload():
    """Record a completed presigned upload"""
    data = request.get_json(silent=True) or {}
    key = data.get("key")
    if not key:
        return jsonify({"error": "key is required"}), 400

    try:
        resume = get_resume_pipeline().register_presigned_upload(
            g.user_sub,
            key,
            data.get("fileName"),
            data.get("fileSize"),
            data.get("fileType"),
        )
    except PermissionError:
        return jsonify({"error": "Object key does not belong to the current user"}), 403
    except StorageError as e:
        logger.error(f"Saving upload failed: {e}")
        return error_response("Failed to save upload", 500, e)

    return jsonify({"message": "Upload recorded", "resume": resume.to_dict()}), 201


@api_bp.route("/resume/upload", methods=["POST"])
@require_jwt()
def upload_resume():
    """Upload through the backend: extract text, store in S3, create the row"""
    if "resume_file" not in request.files:
        return jsonify({"error": "No file provided"}), 400

    file = request.files["resume_file"]
    if file.filename == "":
        return jsonify({"error": "No file selected"}), 400

    # Avoid pre-reading the stream here; the pipeline reads it once
    try:
        result = get_resume_pipeline().process_uploaded_file(file, g.user_sub)
    except UnsupportedFileType as e:
        return jsonify({"error": str(e)}), 415
    except ExtractionFailed as e:
        return jsonify({"error": str(e)}), 422
    except ResumeParsingError as e:
        return jsonify({"error": str(e)}), 400
    except StorageError as e:
        logger.error(f"Resume upload failed: {e}")
        return error_response("Failed to store resume", 502, e)

    return (
        jsonify(
            {
                "resume_id": result["resume_id"],
                "message": "Resume uploaded successfully",
                "text_length": result["text_length"],
                "s3_key": result["s3_key"],
                "bucket": result["bucket"],
                "resume": result["resume"],
            }
        ),
        201,
    )


@api_bp.route("/files/download/<int:resume_id>", methods=["GET"])
@require_jwt()
def get_download_url(resume_id):
    """Generate a presigned URL for downloading/viewing a resume file"""
    resume = Resume.get_owned(resume_id, g.user_sub)
    if not resume:
        return jsonify({"error": "Resume not found"}), 404

    try:
        result = get_storage_service().generate_download_url(resume)
    except StorageError as e:
        logger.error(f"Download URL generation failed for resume {resume_id}: {e}")
        return error_response("Failed to generate download URL", 502, e)

    return jsonify(
        {
            "downloadUrl": result["download_url"],
            "fileName": result["filename"],
            "fileType": result["content_type"],
            "expiresIn": result["expires_in"],
        }
    )


@api_bp.route("/files", methods=["GET"])
@require_jwt()
def get_user_files():
    """Get all resumes for the current user, newest first"""
    resumes = (
        Resume.query.filter_by(user_id=g.user_sub)
        .order_by(Resume.created_at.desc(), Resume.id.desc())
        .all()
    )
    return jsonify({"files": [resume.to_dict() for resume in resumes]})


@api_bp.route("/resumes/<int:resume_id>", methods=["DELETE"])
@require_jwt()
def delete_resume(resume_id):
    """Delete a resume row and remove its file from S3"""
    resume = Resume.get_owned(resume_id, g.user_sub)
    if not resume:
        return jsonify({"error": "Resume not found or not owned by user"}), 404

    # Store S3 info before deleting from database
    s3_bucket = resume.s3_bucket
    s3_key = resume.s3_key

    try:
        db.session.delete(resume)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Failed to delete resume %s", resume_id)
        return error_response("Failed to delete resume", 500, e)

    if s3_key:
        get_storage_service().delete_object(s3_key, bucket=s3_bucket)

    return jsonify({"message": "Resume deleted successfully"})
