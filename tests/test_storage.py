from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from botocore.exceptions import ClientError

from pdf_to_image.config import StorageConfig
from pdf_to_image.errors import StorageError
from pdf_to_image.models import ConversionResult, ImageFormat
from pdf_to_image.storage import (
    LocalDiskProvider,
    S3Provider,
    StorageJanitor,
    create_storage_provider,
    publish_result,
)


class FakeS3Client:
    def __init__(self) -> None:
        self.objects: dict[str, dict] = {}
        self.uploads: list[tuple[str, str, str, dict]] = []

    def upload_file(self, filename, bucket, key, ExtraArgs=None):
        self.uploads.append((filename, bucket, key, ExtraArgs or {}))
        self.objects[key] = {"Key": key, "LastModified": datetime.now(timezone.utc)}

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        return f"https://signed.example/{Params['Bucket']}/{Params['Key']}?ttl={ExpiresIn}"

    def delete_object(self, Bucket, Key):
        if Key == "forbidden":
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "DeleteObject")
        self.objects.pop(Key, None)

    def get_paginator(self, name):
        client = self

        class Paginator:
            def paginate(self, Bucket, Prefix):
                contents = [item for key, item in sorted(client.objects.items()) if key.startswith(Prefix)]
                yield {"Contents": contents[:1]}
                yield {"Contents": contents[1:]}

        return Paginator()


def make_result(directory: Path, pages=(1, 2)) -> ConversionResult:
    directory.mkdir(parents=True, exist_ok=True)
    files = []
    for page in pages:
        name = f"doc_page_{page:03d}.jpg"
        (directory / name).write_bytes(b"jpeg-bytes")
        files.append(name)
    return ConversionResult(directory, tuple(pages), tuple(files), ImageFormat.JPEG)


def test_local_provider_round_trip(tmp_path):
    provider = LocalDiskProvider(tmp_path / "objects")
    source = tmp_path / "page.jpg"
    source.write_bytes(b"data")
    key = provider.put_file(source, "output/run-1/page.jpg", "image/jpeg")
    assert key == "output/run-1/page.jpg"
    assert provider.resolve_local_path(key).read_bytes() == b"data"
    assert provider.get_url(key) == "/files/output/run-1/page.jpg"
    assert [item.key for item in provider.list_objects("output/")] == [key]
    assert provider.list_objects("uploads/") == []
    provider.delete(key)
    assert not (tmp_path / "objects" / "output").exists()
    provider.delete(key)


def test_local_provider_rejects_traversal(tmp_path):
    provider = LocalDiskProvider(tmp_path / "objects")
    with pytest.raises(StorageError):
        provider.resolve_local_path("../escape.jpg")


def test_publish_result_local(tmp_path):
    provider = LocalDiskProvider(tmp_path / "objects")
    result = make_result(tmp_path / "out")
    stored = publish_result(provider, result, "conversion-1")
    assert [item.key for item in stored] == [
        "output/conversion-1/doc_page_001.jpg",
        "output/conversion-1/doc_page_002.jpg",
    ]
    assert stored[0].url == "/files/output/conversion-1/doc_page_001.jpg"


def test_s3_provider_signs_urls(tmp_path):
    client = FakeS3Client()
    provider = S3Provider("bucket", client=client)
    stored = publish_result(provider, make_result(tmp_path / "out"), "conversion-1", expires_seconds=600)
    assert stored[1].url == "https://signed.example/bucket/output/conversion-1/doc_page_002.jpg?ttl=600"
    filename, bucket, key, extra = client.uploads[0]
    assert bucket == "bucket"
    assert key == "output/conversion-1/doc_page_001.jpg"
    assert extra["ContentType"] == "image/jpeg"
    assert {item.key for item in provider.list_objects("output/")} == set(client.objects)


def test_s3_provider_public_base_url():
    provider = S3Provider("bucket", public_base_url="https://cdn.example/", client=FakeS3Client())
    assert provider.get_url("output/a b.jpg") == "https://cdn.example/output/a%20b.jpg"


def test_s3_errors_become_storage_errors():
    provider = S3Provider("bucket", client=FakeS3Client())
    with pytest.raises(StorageError, match="forbidden"):
        provider.delete("forbidden")


def test_create_storage_provider(tmp_path):
    assert isinstance(create_storage_provider(StorageConfig(local_dir=tmp_path / "o")), LocalDiskProvider)
    with pytest.raises(RuntimeError, match="bucket"):
        create_storage_provider(StorageConfig(backend="s3"))
    with pytest.raises(RuntimeError, match="Unknown storage backend"):
        create_storage_provider(StorageConfig(backend="ftp"))


def test_janitor_deletes_only_stale_objects(tmp_path):
    provider = LocalDiskProvider(tmp_path / "objects")
    source = tmp_path / "page.jpg"
    source.write_bytes(b"data")
    old_key = provider.put_file(source, "output/old/page.jpg", "image/jpeg")
    new_key = provider.put_file(source, "output/new/page.jpg", "image/jpeg")
    keep_key = provider.put_file(source, "other/old/page.jpg", "image/jpeg")
    two_hours_ago = (datetime.now(timezone.utc) - timedelta(hours=2)).timestamp()
    for key in (old_key, keep_key):
        os.utime(provider.resolve_local_path(key), (two_hours_ago, two_hours_ago))

    janitor = StorageJanitor(provider, ("output/",), max_age_minutes=60)
    assert janitor.run_once() == 1
    remaining = {item.key for item in provider.list_objects("")}
    assert remaining == {new_key, keep_key}


def test_janitor_thread_lifecycle(tmp_path):
    janitor = StorageJanitor(LocalDiskProvider(tmp_path / "objects"), ("output/",), 60, interval_s=3600)
    janitor.start()
    janitor.stop(timeout=1)
    disabled = StorageJanitor(LocalDiskProvider(tmp_path / "objects"), ("output/",), 60, interval_s=0)
    disabled.start()
    assert disabled._thread is None


class UnreachableProvider(LocalDiskProvider):
    def list_objects(self, prefix):
        raise StorageError("bucket unreachable")


def test_janitor_sweep_logs_storage_failures(tmp_path, caplog):
    janitor = StorageJanitor(UnreachableProvider(tmp_path / "objects"), ("output/",), 60)
    with caplog.at_level(logging.WARNING, logger="pdf_to_image.storage"):
        assert janitor.sweep() == 0
    assert isinstance(janitor.last_error, StorageError)
    assert "storage cleanup failed: bucket unreachable" in caplog.text
    assert caplog.records[-1].code == "STORAGE_ERROR"


def test_janitor_sweep_clears_last_error(tmp_path):
    janitor = StorageJanitor(LocalDiskProvider(tmp_path / "objects"), ("output/",), 60)
    janitor.last_error = StorageError("earlier failure")
    assert janitor.sweep() == 0
    assert janitor.last_error is None
