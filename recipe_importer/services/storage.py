"""Blob storage backends for uploaded sources and recipe images."""

import asyncio
import logging
from pathlib import Path
from typing import Protocol

from supabase import Client, create_client

from recipe_importer.config import Settings

logger = logging.getLogger(__name__)

UPLOADS_BUCKET = "recipe-imports"
IMAGES_BUCKET = "recipe-images"


class StorageError(Exception):
    """Raised when a storage operation fails."""


class BlobStorage(Protocol):
    """Bucket/path addressed blob storage."""

    async def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> None: ...

    async def download(self, bucket: str, path: str) -> bytes: ...

    async def remove(self, bucket: str, paths: list[str]) -> None: ...

    def public_url(self, bucket: str, path: str) -> str: ...


class LocalBlobStorage:
    """Filesystem-backed storage for development."""

    def __init__(self, root: str | Path, public_base_url: str):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def _path(self, bucket: str, path: str) -> Path:
        target = (self.root / bucket / path).resolve()
        if not target.is_relative_to((self.root / bucket).resolve()):
            raise StorageError(f"Path escapes bucket: {path}")
        return target

    async def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> None:
        target = self._path(bucket, path)
        target.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(target.write_bytes, data)

    async def download(self, bucket: str, path: str) -> bytes:
        target = self._path(bucket, path)
        if not target.is_file():
            raise StorageError(f"Object not found: {bucket}/{path}")
        return await asyncio.to_thread(target.read_bytes)

    async def remove(self, bucket: str, paths: list[str]) -> None:
        for path in paths:
            self._path(bucket, path).unlink(missing_ok=True)

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/{bucket}/{path}"


class SupabaseBlobStorage:
    """Supabase Storage backend. The client is synchronous, so calls run in a worker thread."""

    def __init__(self, client: Client):
        self.client = client

    async def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> None:
        try:
            await asyncio.to_thread(
                self.client.storage.from_(bucket).upload,
                path,
                data,
                {"content-type": content_type, "upsert": "true"},
            )
        except Exception as e:
            raise StorageError(f"Upload to {bucket}/{path} failed: {e}") from e

    async def download(self, bucket: str, path: str) -> bytes:
        try:
            return await asyncio.to_thread(self.client.storage.from_(bucket).download, path)
        except Exception as e:
            raise StorageError(f"Download of {bucket}/{path} failed: {e}") from e

    async def remove(self, bucket: str, paths: list[str]) -> None:
        try:
            await asyncio.to_thread(self.client.storage.from_(bucket).remove, paths)
        except Exception as e:
            raise StorageError(f"Removing {len(paths)} object(s) from {bucket} failed: {e}") from e

    def public_url(self, bucket: str, path: str) -> str:
        return self.client.storage.from_(bucket).get_public_url(path)


def create_storage(settings: Settings) -> BlobStorage:
    """Build the storage backend selected by ``settings.storage_backend``."""
    if settings.storage_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_role_key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required for supabase storage")
        return SupabaseBlobStorage(create_client(settings.supabase_url, settings.supabase_service_role_key))
    return LocalBlobStorage(settings.local_storage_root, settings.public_storage_base_url)
