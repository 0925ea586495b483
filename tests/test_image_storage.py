import dataclasses
import io
import re

import boto3
import pytest
from moto import mock_aws
from PIL import Image

from civic_api.errors import StorageError, ValidationError
from civic_api.image_storage import (
    LocalImageStorage,
    S3ImageStorage,
    build_image_storage,
    build_object_key,
    validate_image,
)

BUCKET = "test-complaint-bucket"


def _jpeg_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (16, 16), (10, 120, 200)).save(buf, format="JPEG")
    return buf.getvalue()


@pytest.fixture
def s3_settings(settings, monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    return dataclasses.replace(
        settings,
        storage_provider="s3",
        s3_bucket=BUCKET,
        s3_region="us-east-1",
        s3_endpoint=None,
        s3_access_key_id="testing",
        s3_secret_access_key="testing",
        s3_public_base_url=None,
    )


def test_validate_image_accepts_real_image():
    validate_image(_jpeg_bytes(), "photo.jpg", "image/jpeg", max_bytes=1024 * 1024)


@pytest.mark.parametrize(
    "data,content_type,max_bytes",
    [
        (b"", "image/jpeg", 1024),
        (b"x" * 2048, "image/jpeg", 1024),
        (b"GIF89a....", "application/pdf", 1024 * 1024),
        (b"definitely not a png", "image/png", 1024 * 1024),
    ],
)
def test_validate_image_rejects(data, content_type, max_bytes):
    with pytest.raises(ValidationError):
        validate_image(data, "upload", content_type, max_bytes=max_bytes)


def test_object_key_format():
    key = build_object_key("Pothole.JPG", "image/jpeg")
    assert re.fullmatch(r"complaints/\d+-[0-9a-f]{32}\.jpg", key)
    assert build_object_key("", "image/png").endswith(".png")


def test_local_storage_writes_file(tmp_path):
    storage = LocalImageStorage(tmp_path / "uploads")

    url = storage.upload(b"image-bytes", "a.png", "image/png")

    assert url.startswith("/storage/complaints/")
    assert (tmp_path / "uploads" / url[len("/storage/"):]).read_bytes() == b"image-bytes"


def test_s3_upload_round_trip(s3_settings):
    with mock_aws():
        s3 = boto3.client("s3", region_name="us-east-1")
        s3.create_bucket(Bucket=BUCKET)
        storage = S3ImageStorage(s3_settings)

        url = storage.upload(_jpeg_bytes(), "pothole.jpg", "image/jpeg")

        assert url.startswith(f"https://{BUCKET}.s3.us-east-1.amazonaws.com/complaints/")
        key = url.split(".amazonaws.com/", 1)[1]
        obj = s3.get_object(Bucket=BUCKET, Key=key)
        assert obj["ContentType"] == "image/jpeg"
        assert obj["Body"].read() == _jpeg_bytes()


def test_s3_public_base_url(s3_settings):
    settings = dataclasses.replace(s3_settings, s3_public_base_url="https://cdn.example.com/")
    with mock_aws():
        boto3.client("s3", region_name="us-east-1").create_bucket(Bucket=BUCKET)
        url = S3ImageStorage(settings).upload(b"data", "x.gif", "image/gif")
    assert re.fullmatch(r"https://cdn\.example\.com/complaints/\d+-[0-9a-f]{32}\.gif", url)


def test_s3_upload_failure_raises_storage_error(s3_settings):
    with mock_aws():
        storage = S3ImageStorage(s3_settings)
        with pytest.raises(StorageError):
            storage.upload(b"data", "x.jpg", "image/jpeg")


def test_build_image_storage_creates_missing_bucket(s3_settings):
    with mock_aws():
        storage = build_image_storage(s3_settings)
        assert isinstance(storage, S3ImageStorage)
        s3 = boto3.client("s3", region_name="us-east-1")
        s3.head_bucket(Bucket=BUCKET)


def test_build_image_storage_local(settings):
    assert isinstance(build_image_storage(settings), LocalImageStorage)


def test_local_storage_delete(tmp_path):
    storage = LocalImageStorage(tmp_path)
    url = storage.upload(b"image-bytes", "a.png", "image/png")

    storage.delete(url)

    assert not list((tmp_path / "complaints").glob("*"))
    with pytest.raises(StorageError):
        storage.delete("https://elsewhere.example/a.png")


def test_s3_delete(s3_settings):
    with mock_aws():
        s3 = boto3.client("s3", region_name="us-east-1")
        s3.create_bucket(Bucket=BUCKET)
        storage = S3ImageStorage(s3_settings)
        url = storage.upload(_jpeg_bytes(), "pothole.jpg", "image/jpeg")

        storage.delete(url)

        assert s3.list_objects_v2(Bucket=BUCKET).get("KeyCount") == 0
