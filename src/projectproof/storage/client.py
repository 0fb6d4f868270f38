from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Protocol

import requests

from projectproof.config import Settings
from projectproof.errors import StorageError
from projectproof.types import MediaFile

logger = logging.getLogger(__name__)


class StorageClient(Protocol):
    def put(self, path: str, media: MediaFile) -> None: ...

    def get_public_address(self, path: str) -> str: ...


def new_storage_path(media: MediaFile) -> str:
    return f"{uuid.uuid4()}.{media.extension}"


class LocalStorageClient:
    """
    Filesystem bucket for development; files are served by the API under /media.
    """

    def __init__(self, base_path: Path, bucket: str, public_base_url: str):
        self.bucket_path = Path(base_path) / bucket
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")

    def put(self, path: str, media: MediaFile) -> None:
        target = self.bucket_path / path
        if target.exists():
            raise StorageError(f"object {path} already exists in {self.bucket}")

        try:
            content = media.read_bytes()
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except (OSError, ValueError) as exc:
            raise StorageError(f"could not store {path}: {exc}") from exc
        logger.info("Stored object bucket=%s path=%s bytes=%s", self.bucket, path, len(content))

    def get_public_address(self, path: str) -> str:
        return f"{self.public_base_url}/{self.bucket}/{path}"


class SupabaseStorageClient:
    def __init__(self, *, base_url: str, service_key: str, bucket: str, timeout_sec: int = 60):
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.bucket = bucket
        self.timeout_sec = timeout_sec

    def put(self, path: str, media: MediaFile) -> None:
        url = f"{self.base_url}/storage/v1/object/{self.bucket}/{path}"
        headers = {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
            "Content-Type": media.content_type or "application/octet-stream",
            "x-upsert": "false",
        }

        try:
            content = media.read_bytes()
            response = requests.post(url, data=content, headers=headers, timeout=self.timeout_sec)
        except (OSError, ValueError) as exc:
            raise StorageError(f"could not read {media.name!r}: {exc}") from exc
        except requests.RequestException as exc:
            raise StorageError(f"supabase upload failed: {exc}") from exc

        if response.status_code not in (200, 201):
            raise StorageError(f"supabase upload failed ({response.status_code}): {response.text}")
        logger.info("Stored object bucket=%s path=%s bytes=%s", self.bucket, path, len(content))

    def get_public_address(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"


def build_storage_client(settings: Settings) -> StorageClient:
    if settings.storage_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY are required for the supabase backend")
        return SupabaseStorageClient(
            base_url=settings.supabase_url,
            service_key=settings.supabase_service_key,
            bucket=settings.storage_bucket,
            timeout_sec=settings.storage_timeout_sec,
        )
    return LocalStorageClient(settings.upload_dir, settings.storage_bucket, settings.public_base_url)
