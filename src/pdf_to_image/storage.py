"""Pluggable object storage for published page images."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import quote

from botocore.exceptions import BotoCoreError, ClientError

from .config import StorageConfig
from .errors import StorageError
from .models import ConversionResult
from .settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StoredObject:
    key: str
    url: str


@dataclass(frozen=True, slots=True)
class ObjectInfo:
    key: str
    modified_at: datetime


class StorageProvider(Protocol):
    name: str

    def put_file(self, source: Path, key: str, content_type: str) -> str:
        """Persist a local file under ``key`` and return the key."""

    def get_url(self, key: str, expires_seconds: int = 3600) -> str:
        """Return a signed or directly accessible URL for a stored object."""

    def delete(self, key: str) -> None:
        """Remove a stored object; missing objects are ignored."""

    def list_objects(self, prefix: str) -> list[ObjectInfo]:
        """List stored objects whose key starts with ``prefix``."""


class LocalDiskProvider:
    """Stores objects under a local directory and serves them over the API."""

    name = "local"

    def __init__(self, base_dir: Path, url_prefix: str = "/files") -> None:
        base_dir.mkdir(parents=True, exist_ok=True)
        self.base_dir = base_dir
        self._url_prefix = url_prefix.rstrip("/")

    def resolve_local_path(self, key: str) -> Path:
        clean_key = key.strip("/")
        root = self.base_dir.resolve()
        destination = (root / clean_key).resolve()
        if root not in destination.parents:
            raise StorageError(f"Invalid storage key: {key!r}")
        return destination

    def put_file(self, source: Path, key: str, content_type: str) -> str:
        del content_type
        destination = self.resolve_local_path(key)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_bytes(source.read_bytes())
        except OSError as exc:
            raise StorageError(f"Unable to store {key}: {exc}") from exc
        return key

    def get_url(self, key: str, expires_seconds: int = 3600) -> str:
        del expires_seconds
        return f"{self._url_prefix}/{quote(key.strip('/'))}"

    def delete(self, key: str) -> None:
        path = self.resolve_local_path(key)
        path.unlink(missing_ok=True)
        parent = path.parent
        root = self.base_dir.resolve()
        while parent != root and parent.exists() and not any(parent.iterdir()):
            parent.rmdir()
            parent = parent.parent

    def list_objects(self, prefix: str) -> list[ObjectInfo]:
        root = self.base_dir.resolve()
        objects: list[ObjectInfo] = []
        for path in sorted(root.rglob("*")):
            if not path.is_file():
                continue
            key = path.relative_to(root).as_posix()
            if not key.startswith(prefix):
                continue
            modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
            objects.append(ObjectInfo(key=key, modified_at=modified))
        return objects


class S3Provider:
    """S3-compatible object storage provider."""

    name = "s3"

    def __init__(
        self,
        bucket: str,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        endpoint_url: str | None = None,
        region: str | None = None,
        public_base_url: str | None = None,
        client: Any | None = None,
    ) -> None:
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None
        if client is None:
            import boto3

            client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                region_name=region,
                aws_access_key_id=access_key_id,
                aws_secret_access_key=secret_access_key,
            )
        self._client = client

    def put_file(self, source: Path, key: str, content_type: str) -> str:
        try:
            self._client.upload_file(
                str(source),
                self.bucket,
                key,
                ExtraArgs={"ContentType": content_type, "CacheControl": "public, max-age=31536000"},
            )
        except (BotoCoreError, ClientError, OSError) as exc:
            raise StorageError(f"Unable to upload {key} to bucket {self.bucket}: {exc}") from exc
        return key

    def get_url(self, key: str, expires_seconds: int = 3600) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{quote(key)}"
        try:
            return self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expires_seconds,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Unable to sign URL for {key}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Unable to delete {key}: {exc}") from exc

    def list_objects(self, prefix: str) -> list[ObjectInfo]:
        objects: list[ObjectInfo] = []
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for item in page.get("Contents", []):
                    objects.append(ObjectInfo(key=item["Key"], modified_at=item["LastModified"]))
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Unable to list objects under {prefix}: {exc}") from exc
        return objects


def create_storage_provider(config: StorageConfig, settings: Settings | None = None) -> StorageProvider:
    backend = config.backend.lower().strip()
    if backend == "s3":
        if not config.bucket:
            raise RuntimeError("S3 storage backend requires a bucket (storage.bucket or PDF2IMG_S3_BUCKET)")
        return S3Provider(
            bucket=config.bucket,
            access_key_id=settings.s3_access_key_id if settings else None,
            secret_access_key=settings.s3_secret_access_key if settings else None,
            endpoint_url=config.endpoint_url,
            region=config.region,
            public_base_url=config.public_base_url,
        )
    if backend == "local":
        return LocalDiskProvider(config.local_dir)
    raise RuntimeError(f"Unknown storage backend: {config.backend!r}")


def publish_result(
    provider: StorageProvider,
    result: ConversionResult,
    folder: str,
    *,
    prefix: str = "output/",
    expires_seconds: int = 3600,
) -> list[StoredObject]:
    """Upload every page image of ``result`` under ``<prefix><folder>/``."""

    published: list[StoredObject] = []
    for name, path in zip(result.files, result.paths):
        key = provider.put_file(path, f"{prefix}{folder}/{name}", result.image_format.mime_type)
        published.append(StoredObject(key=key, url=provider.get_url(key, expires_seconds)))
    return published


class StorageJanitor:
    """Deletes stored objects older than ``max_age_minutes`` under ``prefixes``."""

    def __init__(
        self,
        provider: StorageProvider,
        prefixes: tuple[str, ...],
        max_age_minutes: int,
        interval_s: int = 3600,
    ) -> None:
        self._provider = provider
        self._prefixes = prefixes
        self._max_age_s = max_age_minutes * 60
        self._interval_s = interval_s
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.last_error: StorageError | None = None

    def run_once(self, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        deleted = 0
        for prefix in self._prefixes:
            for item in self._provider.list_objects(prefix):
                age = (now - item.modified_at).total_seconds()
                if age > self._max_age_s:
                    self._provider.delete(item.key)
                    deleted += 1
        return deleted

    def start(self) -> None:
        if self._thread is not None or self._interval_s <= 0 or self._max_age_s <= 0:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="storage-janitor", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def sweep(self) -> int:
        """Run one cleanup pass, logging a storage failure instead of raising it."""

        try:
            deleted = self.run_once()
        except StorageError as exc:
            self.last_error = exc
            logger.warning("storage cleanup failed: %s", exc, extra={"code": exc.code})
            return 0
        self.last_error = None
        if deleted:
            logger.info("storage cleanup removed objects", extra={"deleted": deleted})
        return deleted

    def _loop(self) -> None:  # pragma: no cover - background thread timing
        while not self._stop.wait(self._interval_s):
            self.sweep()


__all__ = [
    "LocalDiskProvider",
    "ObjectInfo",
    "S3Provider",
    "StorageJanitor",
    "StorageProvider",
    "StoredObject",
    "create_storage_provider",
    "publish_result",
]
