from __future__ import annotations

import time
from typing import Dict, List, Optional

import jwt
import pytest

from resume_analyzer.app import create_app
from resume_analyzer.blueprints.api import ANALYSIS_EXTENSION, STORAGE_EXTENSION
from resume_analyzer.extensions import db
from resume_analyzer.models import Resume, UserProfile

JWT_SECRET = "test-secret"


class FakeStorage:
    """Stands in for ``ResumeStorageService``; objects live in a dict."""

    s3_bucket = "resumes"

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.deleted: List[str] = []
        self.healthy = True

    @staticmethod
    def build_key(user_id: str, filename: str) -> str:
        return f"{user_id}/1700000000000-{filename}"

    def upload_file(self, fileobj, key, content_type):
        self.objects[key] = fileobj.read()
        return key

    def generate_upload_url(self, key, content_type):
        return f"https://s3.test/resumes/{key}?X-Amz-Expires=300"

    def generate_download_url(self, resume):
        return {
            "download_url": f"https://s3.test/resumes/{resume.s3_key}?X-Amz-Expires=3600",
            "filename": resume.original_filename,
            "file_size": resume.file_size,
            "content_type": resume.content_type,
            "expires_in": 3600,
        }

    def download_bytes(self, key, bucket=None):
        return self.objects[key]

    def delete_object(self, key, bucket=None):
        self.deleted.append(key)
        self.objects.pop(key, None)
        return True

    def check_connectivity(self):
        if self.healthy:
            return {"ok": True, "bucket": self.s3_bucket}
        return {"ok": False, "bucket": self.s3_bucket, "error": "AccessDenied"}


class StubAnalysisService:
    """Returns a preset result or raises a preset error."""

    def __init__(self, result=None, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.requested: List[int] = []

    def get_or_create_analysis(self, resume):
        self.requested.append(resume.id)
        if self.error is not None:
            raise self.error
        return self.result


def make_token(user_id: str = "user-1", secret: str = JWT_SECRET, **claims) -> str:
    payload = {"id": user_id, "exp": int(time.time()) + 3600}
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def auth_headers():
    def _headers(user_id: str = "user-1", secret: str = JWT_SECRET, **claims) -> dict:
        return {"Authorization": f"Bearer {make_token(user_id, secret, **claims)}"}

    return _headers


@pytest.fixture
def app():
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "JWT_SECRET": JWT_SECRET,
            "S3_BUCKET_NAME": "resumes",
            "EXPOSE_ERROR_DETAILS": False,
        }
    )
    with app.app_context():
        db.create_all()
        db.session.add(UserProfile(id="user-1", email="jane@example.com", name="Jane"))
        db.session.add(UserProfile(id="user-2", email="sam@example.com", name="Sam"))
        db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def storage(app):
    fake = FakeStorage()
    app.extensions[STORAGE_EXTENSION] = fake
    return fake


@pytest.fixture
def client(app, storage):
    return app.test_client()


@pytest.fixture
def install_analysis_service(app):
    def _install(result=None, error: Optional[Exception] = None) -> StubAnalysisService:
        service = StubAnalysisService(result=result, error=error)
        app.extensions[ANALYSIS_EXTENSION] = service
        return service

    return _install


@pytest.fixture
def make_resume(app, storage):
    def _make(user_id: str = "user-1", filename: str = "cv.txt", data: bytes = b"resume text", **fields):
        key = f"{user_id}/1700000000000-{filename}"
        storage.objects[key] = data
        resume = Resume(
            user_id=user_id,
            s3_bucket="resumes",
            s3_key=key,
            original_filename=filename,
            file_size=len(data),
            content_type=fields.pop("content_type", "text/plain"),
            **fields,
        )
        db.session.add(resume)
        db.session.commit()
        return resume

    return _make

