"""
Resume management services package.

This package contains services for handling resume-specific operations:
- File storage and S3 operations
- Upload pipeline
- Text extraction
"""

from .resume_storage_service import ResumeStorageService, StorageError
from .resume_pipeline import ResumePipeline
from .ingest import (
    extract_text,
    prepare_resume_bytes,
    ResumeParsingError,
    UnsupportedFileType,
    ExtractionFailed,
)
from .helpers import get_resume_text

__all__ = [
    # Storage services
    "ResumeStorageService",
    "StorageError",
    # Pipeline services
    "ResumePipeline",
    # Text extraction
    "extract_text",
    "prepare_resume_bytes",
    "ResumeParsingError",
    "UnsupportedFileType",
    "ExtractionFailed",
    "get_resume_text",
]
