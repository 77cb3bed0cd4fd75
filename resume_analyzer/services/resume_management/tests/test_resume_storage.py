from __future__ import annotations

import io
from types import SimpleNamespace
from typing import Dict, List

import pytest
from botocore.exceptions import ClientError

from resume_analyzer.services.resume_management.resume_storage_service import (
    DOWNLOAD_URL_EXPIRES_S,
    UPLOAD_URL_EXPIRES_S,
    ResumeStorageService,
    StorageError,
)


def _client_error(operation: str, code: str = "AccessDenied") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "denied"}}, operation)


class FakeS3Client:
    """In-memory stand-in for the boto3 S3 client methods the service uses."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.objects: Dict[str, bytes] = {}
        self.presigned: List[dict] = []

    def _maybe_fail(self, operation: str) -> None:
        if self.fail:
            raise _client_error(operation)

    def upload_fileobj(self, fileobj, bucket, key, ExtraArgs=None):
        self._maybe_fail("PutObject")
        self.objects[f"{bucket}/{key}"] = fileobj.read()

    def generate_presigned_url(self, method, Params=None, ExpiresIn=None):
        self._maybe_fail(method)
        self.presigned.append({"method": method, "params": Params, "expires": ExpiresIn})
        return f"https://s3.test/{Params['Bucket']}/{Params['Key']}?method={method}"

    def get_object(self, Bucket, Key):
        self._maybe_fail("GetObject")
        if f"{Bucket}/{Key}" not in self.objects:
            raise _client_error("GetObject", code="NoSuchKey")
        return {"Body": io.BytesIO(self.objects[f"{Bucket}/{Key}"])}

    def delete_object(self, Bucket, Key):
        self._maybe_fail("DeleteObject")
        self.objects.pop(f"{Bucket}/{Key}", None)

    def head_bucket(self, Bucket):
        self._maybe_fail("HeadBucket")
        return {}


def _service(fail: bool = False) -> ResumeStorageService:
    return ResumeStorageService(s3_client=FakeS3Client(fail=fail), bucket="resumes", region="us-east-1")


def test_build_key_sanitizes_filename() -> None:
    key = ResumeStorageService.build_key("user-1", "My CV (2024)!.pdf", now_ms=1700000000000)
    assert key == "user-1/1700000000000-My_CV__2024__.pdf"


def test_upload_download_delete_cycle() -> None:
    service = _service()
    key = service.upload_file(io.BytesIO(b"resume"), "user-1/1-cv.txt", "text/plain")

    assert service.download_bytes(key) == b"resume"
    assert service.delete_object(key) is True
    with pytest.raises(StorageError):
        service.download_bytes(key)


def test_presigned_urls_use_expected_expiry() -> None:
    service = _service()
    upload_url = service.generate_upload_url("user-1/1-cv.pdf", "application/pdf")
    resume = SimpleNamespace(
        s3_bucket=None,
        s3_key="user-1/1-cv.pdf",
        original_filename="cv.pdf",
        file_size=10,
        content_type="application/pdf",
    )
    download = service.generate_download_url(resume)

    put, get = service.s3_client.presigned
    assert "put_object" in upload_url
    assert put["expires"] == UPLOAD_URL_EXPIRES_S == 300
    assert put["params"]["ContentType"] == "application/pdf"
    assert get["expires"] == DOWNLOAD_URL_EXPIRES_S == 3600
    assert get["params"]["Bucket"] == "resumes"
    assert download["filename"] == "cv.pdf"
    assert download["expires_in"] == 3600


def test_client_errors_become_storage_errors() -> None:
    service = _service(fail=True)
    with pytest.raises(StorageError):
        service.upload_file(io.BytesIO(b"x"), "k", "text/plain")
    with pytest.raises(StorageError):
        service.generate_upload_url("k", "text/plain")
    assert service.delete_object("k") is False


def test_download_url_requires_key() -> None:
    resume = SimpleNamespace(s3_bucket="resumes", s3_key=None)
    with pytest.raises(StorageError):
        _service().generate_download_url(resume)


def test_connectivity_report() -> None:
    assert _service().check_connectivity()["ok"] is True
    report = _service(fail=True).check_connectivity()
    assert report["ok"] is False
    assert report["bucket"] == "resumes"
