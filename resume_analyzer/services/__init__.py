"""
Services package for the resume analyzer.

This package contains all business logic services organized by domain:
- resume_management: Resume intake (storage, upload pipeline, text extraction)
- analysis: LLM-backed resume analysis pipeline
"""

# Resume management services
from .resume_management import (
    ResumeStorageService,
    StorageError,
    ResumePipeline,
    extract_text,
    ResumeParsingError,
    UnsupportedFileType,
    ExtractionFailed,
)

__all__ = [
    "ResumeStorageService",
    "StorageError",
    "ResumePipeline",
    "extract_text",
    "ResumeParsingError",
    "UnsupportedFileType",
    "ExtractionFailed",
]
