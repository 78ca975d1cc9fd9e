"""Blob storage provider tests."""

import threading
from pathlib import Path

import httpx
import pytest

from questline.config import get_settings
from questline.errors import Unavailable
from questline.storage.service import (
    GCSBlobStorage,
    LocalBlobStorage,
    build_object_name,
    get_blob_storage,
)


def test_object_name_keeps_extension():
    name = build_object_name("Avatar.PNG")
    assert name.endswith(".png")
    assert len(name) == 32 + len(".png")


def test_object_names_are_unique():
    assert build_object_name("a.jpg") != build_object_name("a.jpg")


class TestLocalBlobStorage:
    async def test_upload_writes_file_and_returns_url(self, tmp_path):
        storage = LocalBlobStorage(str(tmp_path / "blobs"), "http://cdn.local/media/")

        url = await storage.upload(b"\x89PNG", "me.png", "image/png")

        assert url.startswith("http://cdn.local/media/")
        name = url.rsplit("/", 1)[1]
        assert (tmp_path / "blobs" / name).read_bytes() == b"\x89PNG"

    async def test_write_runs_off_the_event_loop(self, tmp_path, monkeypatch):
        storage = LocalBlobStorage(str(tmp_path), "http://cdn.local/media")
        write = storage._write
        threads = []

        def recording_write(name: str, data: bytes) -> None:
            threads.append(threading.get_ident())
            write(name, data)

        monkeypatch.setattr(storage, "_write", recording_write)
        await storage.upload(b"GIF89a", "a.gif", "image/gif")

        assert threads and threads[0] != threading.get_ident()


class TestGCSBlobStorage:
    async def test_upload_posts_media(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"name": request.url.params["name"]})

        storage = GCSBlobStorage("bucket-1", "token-xyz", transport=httpx.MockTransport(handler))
        url = await storage.upload(b"jpegdata", "photo.jpg", "image/jpeg")

        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/upload/storage/v1/b/bucket-1/o"
        assert request.url.params["uploadType"] == "media"
        assert request.headers["authorization"] == "Bearer token-xyz"
        assert request.headers["content-type"] == "image/jpeg"
        assert request.content == b"jpegdata"
        assert url == f"https://storage.googleapis.com/bucket-1/{request.url.params['name']}"

    async def test_http_error_becomes_unavailable(self):
        storage = GCSBlobStorage(
            "bucket-1",
            "token-xyz",
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        )
        with pytest.raises(Unavailable):
            await storage.upload(b"data", "photo.jpg", "image/jpeg")

    async def test_transport_error_becomes_unavailable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        storage = GCSBlobStorage("bucket-1", "token-xyz", transport=httpx.MockTransport(handler))
        with pytest.raises(Unavailable):
            await storage.upload(b"data", "photo.jpg", "image/jpeg")


class TestProviderSelection:
    def test_local_by_default(self):
        storage = get_blob_storage()
        assert isinstance(storage, LocalBlobStorage)
        assert storage.directory == Path(get_settings().storage_local_dir)

    def test_gcs(self, monkeypatch):
        monkeypatch.setenv("QL_STORAGE_PROVIDER", "gcs")
        monkeypatch.setenv("QL_STORAGE_BUCKET", "avatars")
        get_settings.cache_clear()

        storage = get_blob_storage()
        assert isinstance(storage, GCSBlobStorage)
        assert storage.bucket == "avatars"

    def test_unknown_provider(self, monkeypatch):
        monkeypatch.setenv("QL_STORAGE_PROVIDER", "ftp")
        get_settings.cache_clear()

        with pytest.raises(ValueError, match="ftp"):
            get_blob_storage()
