from __future__ import annotations

import io
from typing import Dict, List

import pytest
from werkzeug.datastructures import FileStorage

from resume_analyzer.extensions import db
from resume_analyzer.models import Resume, UserProfile
from resume_analyzer.services.resume_management import (
    ResumePipeline,
    UnsupportedFileType,
)

RESUME_TEXT = b"Jane Doe\nSenior backend engineer with 8 years of Python and Go."


class RecordingStorage:
    s3_bucket = "resumes"

    def __init__(self):
        self.uploads: Dict[str, bytes] = {}
        self.deleted: List[str] = []

    @staticmethod
    def build_key(user_id: str, filename: str) -> str:
        return f"{user_id}/1700000000000-{filename}"

    def upload_file(self, fileobj, key, content_type):
        self.uploads[key] = fileobj.read()
        return key

    def delete_object(self, key, bucket=None):
        self.deleted.append(key)
        return True


@pytest.fixture
def user(app):
    profile = UserProfile(id="user-1", email="jane@example.com")
    db.session.add(profile)
    db.session.commit()
    return profile


def _upload(data: bytes, filename: str, content_type: str) -> FileStorage:
    return FileStorage(stream=io.BytesIO(data), filename=filename, content_type=content_type)


def test_uploaded_file_is_stored_with_parsed_text(user) -> None:
    storage = RecordingStorage()
    result = ResumePipeline(storage=storage).process_uploaded_file(
        _upload(RESUME_TEXT, "cv.txt", "text/plain"), user.id
    )

    assert result["success"] is True
    assert result["s3_key"] == "user-1/1700000000000-cv.txt"
    assert storage.uploads[result["s3_key"]] == RESUME_TEXT

    row = db.session.get(Resume, result["resume_id"])
    assert row.user_id == "user-1"
    assert row.status == Resume.STATUS_UPLOADED
    assert row.parsed_text.startswith("Jane Doe")
    assert row.file_size == len(RESUME_TEXT)
    assert row.content_type == "text/plain"


def test_unsupported_upload_never_reaches_storage(user) -> None:
    storage = RecordingStorage()
    with pytest.raises(UnsupportedFileType):
        ResumePipeline(storage=storage).process_uploaded_file(
            _upload(b"\x89PNG\r\n\x1a\n\x00\x00", "photo.png", "image/png"), user.id
        )
    assert storage.uploads == {}
    assert Resume.query.count() == 0


def test_register_presigned_upload(user) -> None:
    resume = ResumePipeline(storage=RecordingStorage()).register_presigned_upload(
        "user-1", "user-1/1700000000000-cv.pdf", "cv.pdf", 2048, "application/pdf"
    )

    assert resume.id is not None
    assert resume.parsed_text is None
    assert resume.s3_bucket == "resumes"
    assert resume.to_dict()["fileName"] == "cv.pdf"


def test_register_rejects_foreign_key(user) -> None:
    with pytest.raises(PermissionError):
        ResumePipeline(storage=RecordingStorage()).register_presigned_upload(
            "user-1", "someone-else/1-cv.pdf", "cv.pdf", 1, "application/pdf"
        )
