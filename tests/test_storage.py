import boto3
import httpx
import pytest
from botocore.stub import Stubber

from app.core.config import Settings
from app.core.exceptions import CollaboratorError, UploadError
from app.core.storage import ObjectStorage, validate_upload


@pytest.fixture
def storage_settings():
    return Settings(
        STORAGE_BUCKET="exam-assets",
        STORAGE_PUBLIC_BASE_URL="https://cdn.example.com/",
        MAX_UPLOAD_SIZE_MB=1,
    )


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="test",
        aws_secret_access_key="test",
    )


def test_upload_returns_public_url_and_key(storage_settings, s3_client):
    storage = ObjectStorage(storage_settings, client=s3_client)

    with Stubber(s3_client) as stubber:
        stubber.add_response("put_object", {})
        asset = storage.upload(b"receipt", "Receipt.PNG", "exam_enrollments_payments", content_type="image/png")
        stubber.assert_no_pending_responses()

    assert asset.id.startswith("exam_enrollments_payments/")
    assert asset.id.endswith(".png")
    assert asset.url == f"https://cdn.example.com/{asset.id}"


def test_upload_failure(storage_settings, s3_client):
    storage = ObjectStorage(storage_settings, client=s3_client)

    with Stubber(s3_client) as stubber:
        stubber.add_client_error("put_object", service_error_code="AccessDenied", http_status_code=403)
        with pytest.raises(CollaboratorError):
            storage.upload(b"receipt", "receipt.png", "payments")


def test_delete_of_missing_key_is_acknowledged(storage_settings, s3_client):
    storage = ObjectStorage(storage_settings, client=s3_client)

    with Stubber(s3_client) as stubber:
        stubber.add_client_error("delete_object", service_error_code="NoSuchKey", http_status_code=404)
        storage.delete("payments/missing.png")


def test_delete_failure(storage_settings, s3_client):
    storage = ObjectStorage(storage_settings, client=s3_client)

    with Stubber(s3_client) as stubber:
        stubber.add_client_error("delete_object", service_error_code="InternalError", http_status_code=500)
        with pytest.raises(CollaboratorError):
            storage.delete("payments/receipt.png")


def test_fetch(storage_settings, monkeypatch):
    url = "https://cdn.example.com/certificates/bg.png"

    def fake_get(requested_url, **kwargs):
        return httpx.Response(200, content=b"image-bytes", request=httpx.Request("GET", requested_url))

    monkeypatch.setattr(httpx, "get", fake_get)

    assert ObjectStorage(storage_settings).fetch(url) == b"image-bytes"


@pytest.mark.parametrize("status_code", [404, 503])
def test_fetch_failure(storage_settings, monkeypatch, status_code):
    def fake_get(requested_url, **kwargs):
        return httpx.Response(status_code, request=httpx.Request("GET", requested_url))

    monkeypatch.setattr(httpx, "get", fake_get)

    with pytest.raises(CollaboratorError):
        ObjectStorage(storage_settings).fetch("https://cdn.example.com/missing.png")


def test_fetch_network_error(storage_settings, monkeypatch):
    def fake_get(requested_url, **kwargs):
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(httpx, "get", fake_get)

    with pytest.raises(CollaboratorError):
        ObjectStorage(storage_settings).fetch("https://cdn.example.com/bg.png")


def test_validate_upload(storage_settings):
    allowed = [".png", ".pdf"]

    validate_upload(storage_settings, "proof.PNG", b"x", allowed)

    with pytest.raises(UploadError):
        validate_upload(storage_settings, None, b"x", allowed)
    with pytest.raises(UploadError):
        validate_upload(storage_settings, "proof.exe", b"x", allowed)
    with pytest.raises(UploadError):
        validate_upload(storage_settings, "proof.png", b"x" * (1024 * 1024 + 1), allowed)
