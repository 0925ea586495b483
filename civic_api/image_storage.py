"""
Image validation and object storage for complaint photos.

`S3ImageStorage` talks to AWS S3 (or any S3-compatible endpoint such as
MinIO) through boto3; `LocalImageStorage` writes to disk for development and
is served back through the `/storage` static mount. Both return the URL that
ends up in `Complaint.image_url`. Upload failures raise `StorageError` and are
fatal to complaint creation.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Protocol
import io
import logging
import mimetypes
import time
import uuid

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image, UnidentifiedImageError

from .config import Settings
from .errors import StorageError, ValidationError

logger = logging.getLogger("civic_api.image_storage")

ALLOWED_MIME_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}


def validate_image(data: bytes, filename: str, content_type: Optional[str], max_bytes: int) -> None:
    """Reject oversized, non-image or undecodable uploads."""
    if not data:
        raise ValidationError("Uploaded image is empty")
    if len(data) > max_bytes:
        raise ValidationError(f"Image exceeds {max_bytes / (1024 * 1024):.1f} MB limit")
    if (content_type or "").lower() not in ALLOWED_MIME_TYPES:
        raise ValidationError(
            "Invalid file type. Only JPEG, PNG, GIF, and WebP are allowed."
        )
    try:
        Image.open(io.BytesIO(data)).verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
        logger.warning("Rejected undecodable image %s: %s", filename, exc)
        raise ValidationError("Invalid image file") from exc


def guess_extension(content_type: str) -> str:
    mapped = mimetypes.guess_extension(content_type) or ".jpg"
    return mapped.lstrip(".")


def build_object_key(filename: str, content_type: str) -> str:
    """Unique key `complaints/<epoch-ms>-<uuid>.<ext>`; the caller's filename only supplies the extension."""
    suffix = Path(filename or "").suffix.lstrip(".").lower()
    extension = suffix or guess_extension(content_type)
    return f"complaints/{int(time.time() * 1000)}-{uuid.uuid4().hex}.{extension}"


class ImageStorage(Protocol):
    def upload(self, data: bytes, filename: str, content_type: str) -> str:
        ...

    def delete(self, url: str) -> None:
        ...


class S3ImageStorage:
    """Wrapper over boto3 that uploads public complaint images."""

    def __init__(self, settings: Settings, client=None) -> None:
        if client is None:
            session_kwargs = {}
            if settings.s3_access_key_id and settings.s3_secret_access_key:
                session_kwargs.update(
                    aws_access_key_id=settings.s3_access_key_id,
                    aws_secret_access_key=settings.s3_secret_access_key,
                )
            session = boto3.session.Session(**session_kwargs)

            client_kwargs = {
                "service_name": "s3",
                "region_name": settings.s3_region,
                "config": Config(signature_version="s3v4"),
            }
            if settings.s3_endpoint:
                client_kwargs["endpoint_url"] = settings.s3_endpoint
            if settings.s3_use_ssl is False:
                client_kwargs["use_ssl"] = False
            client = session.client(**client_kwargs)

        self._client = client
        self._bucket = settings.s3_bucket
        self._region = settings.s3_region
        self._endpoint = settings.s3_endpoint
        self._public_base_url = settings.s3_public_base_url

    def public_url(self, key: str) -> str:
        if self._public_base_url:
            return f"{self._public_base_url.rstrip('/')}/{key}"
        if self._endpoint:
            return f"{self._endpoint.rstrip('/')}/{self._bucket}/{key}"
        return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{key}"

    def upload(self, data: bytes, filename: str, content_type: str) -> str:
        key = build_object_key(filename, content_type)
        try:
            self._client.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"put_object failed for {key}: {exc}") from exc
        logger.info("Uploaded complaint image to s3://%s/%s", self._bucket, key)
        return self.public_url(key)

    def delete(self, url: str) -> None:
        prefix = self.public_url("")
        if not url.startswith(prefix):
            raise StorageError(f"{url} is not stored in bucket {self._bucket}")
        key = url[len(prefix):]
        try:
            self._client.delete_object(Bucket=self._bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"delete_object failed for {key}: {exc}") from exc
        logger.info("Deleted complaint image s3://%s/%s", self._bucket, key)

    def ensure_bucket(self) -> None:
        """Best-effort check that bucket exists (useful for local MinIO)."""
        try:
            self._client.head_bucket(Bucket=self._bucket)
        except ClientError as exc:
            error_code = exc.response.get("Error", {}).get("Code")
            if error_code not in {"404", "NoSuchBucket"}:
                raise
            logger.info("Bucket %s missing; attempting to create for dev/local use", self._bucket)
            params = {"Bucket": self._bucket}
            if self._region and self._region != "us-east-1":
                params["CreateBucketConfiguration"] = {"LocationConstraint": self._region}
            self._client.create_bucket(**params)


class LocalImageStorage:
    """Filesystem storage for development; files are served under /storage."""

    url_prefix = "/storage"

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def upload(self, data: bytes, filename: str, content_type: str) -> str:
        key = build_object_key(filename, content_type)
        path = self.root / key
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Failed to write {path}: {exc}") from exc
        logger.info("Stored complaint image locally: %s", path)
        return f"{self.url_prefix}/{key}"

    def delete(self, url: str) -> None:
        prefix = f"{self.url_prefix}/"
        if not url.startswith(prefix):
            raise StorageError(f"{url} is not a local image URL")
        path = self.root / url[len(prefix):]
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to delete {path}: {exc}") from exc


def build_image_storage(settings: Settings) -> ImageStorage:
    if settings.storage_provider == "s3":
        storage = S3ImageStorage(settings)
        try:
            storage.ensure_bucket()
        except (ClientError, BotoCoreError) as exc:
            logger.error("Could not verify bucket %s: %s", settings.s3_bucket, exc)
        logger.info("Image storage initialized (provider=s3, bucket=%s)", settings.s3_bucket)
        return storage
    logger.info("Image storage initialized (provider=local, path=%s)", settings.local_storage_path)
    return LocalImageStorage(settings.local_storage_path)


__all__ = [
    "ALLOWED_MIME_TYPES",
    "ImageStorage",
    "LocalImageStorage",
    "S3ImageStorage",
    "build_image_storage",
    "build_object_key",
    "guess_extension",
    "validate_image",
]
