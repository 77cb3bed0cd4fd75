"""
Resume upload pipeline.

This file handles resume intake:
1. Read the upload once and extract text (ingest utilities), which also
   rejects unsupported or unreadable documents before anything is stored
2. Upload the original file to S3 (ResumeStorageService)
3. Create the ``Resume`` row with the parsed text
"""

import logging
from io import BytesIO
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from werkzeug.datastructures import FileStorage

from resume_analyzer.extensions import db
from resume_analyzer.models import Resume

from .ingest import extract_text, prepare_resume_bytes
from .resume_storage_service import ResumeStorageService, StorageError

logger = logging.getLogger(__name__)


class ResumePipeline:
    """Combines file handling, text extraction and storage for new resumes."""

    def __init__(self, storage: Optional[ResumeStorageService] = None):
        self.storage = storage or ResumeStorageService()

    def process_uploaded_file(self, file: FileStorage, user_id: str) -> Dict[str, Any]:
        """
        Process a multipart upload through the complete pipeline.

        Raises ``ResumeParsingError`` (or a subclass) for bad documents and
        ``StorageError`` when S3 or the database write fails.

        Returns:
            Dictionary with the new resume id, S3 location and text length
        """
        file_content, normalized_name, content_type = prepare_resume_bytes(file)
        logger.debug(f"Upload bytes={len(file_content)} name={normalized_name}")

        extracted_text = extract_text(file_content, content_type, normalized_name)
        logger.debug(f"Extracted text length={len(extracted_text)}")

        key = self.storage.build_key(user_id, normalized_name)
        self.storage.upload_file(BytesIO(file_content), key, content_type)

        resume = Resume(
            user_id=user_id,
            s3_bucket=self.storage.s3_bucket,
            s3_key=key,
            original_filename=file.filename or normalized_name,
            file_size=len(file_content),
            content_type=content_type,
            parsed_text=extracted_text,
            status=Resume.STATUS_UPLOADED,
        )
        self._save(resume, key)
        logger.info("Uploaded resume_id=%s for user=%s", resume.id, user_id)

        return {
            "success": True,
            "resume_id": resume.id,
            "text_length": len(extracted_text),
            "s3_key": key,
            "bucket": self.storage.s3_bucket,
            "resume": resume.to_dict(),
        }

    def register_presigned_upload(
        self,
        user_id: str,
        key: str,
        filename: str,
        size: Optional[int],
        content_type: Optional[str],
    ) -> Resume:
        """Record a file the browser already PUT to a presigned URL.

        Text is extracted lazily at analysis time, so ``parsed_text`` stays
        empty here.
        """
        if not key or not key.startswith(f"{user_id}/"):
            raise PermissionError("Object key does not belong to the current user")

        resume = Resume(
            user_id=user_id,
            s3_bucket=self.storage.s3_bucket,
            s3_key=key,
            original_filename=filename or key.rsplit("/", 1)[-1],
            file_size=size,
            content_type=content_type or "application/octet-stream",
            status=Resume.STATUS_UPLOADED,
        )
        self._save(resume, key=None)
        logger.info("Registered presigned upload resume_id=%s key=%s", resume.id, key)
        return resume

    def _save(self, resume: Resume, key: Optional[str]) -> None:
        try:
            db.session.add(resume)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to save resume row: {e}")
            if key:
                # Do not leave an orphaned object behind
                self.storage.delete_object(key)
            raise StorageError(f"Failed to save resume: {e}") from e
