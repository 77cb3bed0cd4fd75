"""
Resume file storage on S3.
Handles object keys, uploads, presigned URLs, downloads and deletes.
Database rows are managed by ``ResumePipeline``; this class only talks to S3.
"""

import os
import re
import time
import logging
from typing import Any, BinaryIO, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

UPLOAD_URL_EXPIRES_S = 300
DOWNLOAD_URL_EXPIRES_S = 3600


class StorageError(Exception):
    """Raised when an S3 operation fails."""


class ResumeStorageService:
    """Service class for handling resume file storage and S3 operations."""

    def __init__(
        self,
        s3_client: Any = None,
        bucket: Optional[str] = None,
        region: Optional[str] = None,
    ):
        self.s3_bucket = bucket or os.getenv("S3_BUCKET_NAME", "resume-analyzer-bucket")
        self.aws_region = region or os.getenv("AWS_REGION", "us-east-1")
        self.s3_client = s3_client or boto3.client(
            "s3",
            aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
            region_name=self.aws_region,
        )

    @staticmethod
    def build_key(user_id: str, filename: str, *, now_ms: Optional[int] = None) -> str:
        """Object key ``<user>/<epoch millis>-<sanitized filename>``."""
        clean = re.sub(r"[^A-Za-z0-9.\-]", "_", filename or "resume") or "resume"
        stamp = now_ms if now_ms is not None else int(time.time() * 1000)
        return f"{user_id}/{stamp}-{clean}"

    def upload_file(self, fileobj: BinaryIO, key: str, content_type: str) -> str:
        """Upload a file object under ``key`` and return the key."""
        try:
            self.s3_client.upload_fileobj(
                fileobj,
                self.s3_bucket,
                key,
                ExtraArgs={"ContentType": content_type or "application/octet-stream"},
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to upload s3://{self.s3_bucket}/{key}: {e}")
            raise StorageError(f"Failed to upload to S3: {e}") from e
        logger.info(f"Uploaded file to S3: s3://{self.s3_bucket}/{key}")
        return key

    def generate_upload_url(self, key: str, content_type: str) -> str:
        """Presigned PUT URL the browser can upload to directly (5 minutes)."""
        try:
            return self.s3_client.generate_presigned_url(
                "put_object",
                Params={
                    "Bucket": self.s3_bucket,
                    "Key": key,
                    "ContentType": content_type,
                },
                ExpiresIn=UPLOAD_URL_EXPIRES_S,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to generate upload URL: {e}") from e

    def generate_download_url(self, resume) -> dict:
        """
        Generate a presigned URL for downloading/viewing a resume file.

        Args:
            resume: Resume model instance

        Returns:
            dict: download_url, filename, file_size, content_type and expires_in
        """
        if not resume.s3_key:
            raise StorageError("Resume file not found in S3")
        try:
            presigned_url = self.s3_client.generate_presigned_url(
                "get_object",
                Params={
                    "Bucket": resume.s3_bucket or self.s3_bucket,
                    "Key": resume.s3_key,
                },
                ExpiresIn=DOWNLOAD_URL_EXPIRES_S,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to generate download URL: {e}") from e

        return {
            "download_url": presigned_url,
            "filename": resume.original_filename,
            "file_size": resume.file_size,
            "content_type": resume.content_type,
            "expires_in": DOWNLOAD_URL_EXPIRES_S,
        }

    def download_bytes(self, key: str, bucket: Optional[str] = None) -> bytes:
        """Fetch the whole object body for text extraction."""
        try:
            response = self.s3_client.get_object(Bucket=bucket or self.s3_bucket, Key=key)
            return response["Body"].read()
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to download s3://{bucket or self.s3_bucket}/{key}: {e}")
            raise StorageError(f"Failed to download file from S3: {e}") from e

    def delete_object(self, key: str, bucket: Optional[str] = None) -> bool:
        """
        Delete a resume file from S3.

        Returns:
            bool: True if successful, False otherwise
        """
        if not key:
            return False
        target = bucket or self.s3_bucket
        try:
            self.s3_client.delete_object(Bucket=target, Key=key)
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"Failed to delete file from S3: {e}")
            return False
        logger.info(f"Deleted file from S3: s3://{target}/{key}")
        return True

    def check_connectivity(self) -> dict:
        """HEAD the bucket; used by the upload health endpoint."""
        try:
            self.s3_client.head_bucket(Bucket=self.s3_bucket)
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"S3 connectivity check failed: {e}")
            return {"ok": False, "bucket": self.s3_bucket, "error": str(e)}
        return {"ok": True, "bucket": self.s3_bucket, "region": self.aws_region}
