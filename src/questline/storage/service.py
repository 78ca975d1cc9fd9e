"""
Blob storage with provider abstraction.

Supports a local directory (default) and Google Cloud Storage.
Provider is selected via configuration. The progression core only ever
sees the public URL returned by ``upload``.
"""

from __future__ import annotations

import asyncio
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path, PurePath
from urllib.parse import urlsplit

import httpx
import structlog
from starlette.datastructures import UploadFile

from questline.config import get_settings
from questline.errors import InvalidArgument, Unavailable

logger = structlog.get_logger()

GCS_UPLOAD_URL = "https://storage.googleapis.com/upload/storage/v1/b/{bucket}/o"
GCS_PUBLIC_URL = "https://storage.googleapis.com/{bucket}/{name}"


def build_object_name(filename: str) -> str:
    """Random object name keeping the original file extension."""
    suffix = PurePath(filename).suffix.lower()
    return f"{uuid.uuid4().hex}{suffix}"


class BaseBlobStorage(ABC):
    """Abstract base class for blob storage providers."""

    @abstractmethod
    async def upload(self, data: bytes, filename: str, content_type: str) -> str:
        """Store a blob and return its public URL."""
        ...


class LocalBlobStorage(BaseBlobStorage):
    """Write blobs to a directory served under a public base URL."""

    def __init__(self, directory: str, public_base_url: str) -> None:
        self.directory = Path(directory)
        self.public_base_url = public_base_url.rstrip("/")

    async def upload(self, data: bytes, filename: str, content_type: str) -> str:
        name = build_object_name(filename)
        await asyncio.to_thread(self._write, name, data)
        logger.info("blob_stored", provider="local", name=name, size=len(data), content_type=content_type)
        return f"{self.public_base_url}/{name}"

    def _write(self, name: str, data: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        (self.directory / name).write_bytes(data)


class GCSBlobStorage(BaseBlobStorage):
    """Upload blobs through the Cloud Storage JSON API (media upload)."""

    def __init__(
        self,
        bucket: str,
        access_token: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.bucket = bucket
        self.access_token = access_token
        self.timeout = timeout
        self.transport = transport

    async def upload(self, data: bytes, filename: str, content_type: str) -> str:
        name = build_object_name(filename)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    GCS_UPLOAD_URL.format(bucket=self.bucket),
                    params={"uploadType": "media", "name": name},
                    headers={
                        "Authorization": f"Bearer {self.access_token}",
                        "Content-Type": content_type,
                    },
                    content=data,
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("blob_upload_failed", provider="gcs", bucket=self.bucket, error=str(exc))
            msg = "Blob storage upload failed"
            raise Unavailable(msg) from exc

        logger.info("blob_stored", provider="gcs", bucket=self.bucket, name=name, size=len(data))
        return GCS_PUBLIC_URL.format(bucket=self.bucket, name=name)


def get_blob_storage() -> BaseBlobStorage:
    """Build the configured storage provider (FastAPI dependency)."""
    settings = get_settings()
    provider = settings.storage_provider.lower()

    if provider == "gcs":
        return GCSBlobStorage(
            bucket=settings.storage_bucket,
            access_token=settings.gcs_access_token,
            timeout=settings.store_timeout_seconds,
        )
    if provider == "local":
        return LocalBlobStorage(settings.storage_local_dir, settings.storage_public_base_url)
    msg = f"Unknown storage provider: {settings.storage_provider}"
    raise ValueError(msg)


@dataclass(frozen=True)
class StoredImage:
    url: str
    content_type: str
    size: int


async def store_image(storage: BaseBlobStorage, file: UploadFile) -> StoredImage:
    """Validate an uploaded image and hand it to the storage provider.

    Raises:
        InvalidArgument: If the content is not image/*, is empty, or exceeds upload_max_bytes.
    """
    content_type = file.content_type or ""
    if not content_type.startswith("image/"):
        msg = "Only image uploads are accepted"
        raise InvalidArgument(msg)

    max_bytes = get_settings().upload_max_bytes
    data = await file.read(max_bytes + 1)
    if not data:
        msg = "Uploaded file is empty"
        raise InvalidArgument(msg)
    if len(data) > max_bytes:
        msg = f"Uploaded file exceeds {max_bytes} bytes"
        raise InvalidArgument(msg)

    url = await storage.upload(data, file.filename or "upload", content_type)
    return StoredImage(url=url, content_type=content_type, size=len(data))


def local_mount_path() -> str | None:
    """URL path the local provider's files are served under, or None when not serving locally."""
    settings = get_settings()
    if settings.storage_provider.lower() != "local":
        return None
    path = urlsplit(settings.storage_public_base_url).path.rstrip("/")
    return path or None
