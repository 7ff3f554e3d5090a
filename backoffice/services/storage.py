"""
File storage for uploads and profile pictures.

Two backends: local disk (served under ``/public``) and Supabase Storage
(signed URLs). Local storage is used when ``storage_type`` is "local" or
the Supabase credentials are not configured.
"""

import logging
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from supabase import Client, create_client

from backoffice.core.config import Settings, get_settings
from backoffice.services.errors import InvalidRequestError

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/public/"


@dataclass(frozen=True)
class StoredFile:
    path: str
    filename: str
    content_type: str
    size: int
    url: str


class StorageBackend(Protocol):
    def save(self, path: str, data: bytes, content_type: str) -> None: ...

    def delete(self, path: str) -> None: ...

    def url(self, path: str, expires_in: int) -> str: ...


class LocalStorageBackend:
    """Files on local disk below ``upload_dir``."""

    def __init__(self, upload_dir: str | Path):
        self.upload_dir = Path(upload_dir)
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        root = self.upload_dir.resolve()
        full = (root / path).resolve()
        if root not in full.parents:
            raise InvalidRequestError(f"Path escapes the upload directory: {path}")
        return full

    def save(self, path: str, data: bytes, content_type: str) -> None:
        full = self._resolve(path)
        full.parent.mkdir(parents=True, exist_ok=True)
        full.write_bytes(data)

    def delete(self, path: str) -> None:
        full = self._resolve(path)
        if full.exists():
            full.unlink()

    def url(self, path: str, expires_in: int) -> str:
        return PUBLIC_PREFIX + path.replace("\\", "/")


class SupabaseStorageBackend:
    """Files in a Supabase Storage bucket."""

    def __init__(self, client: Client, bucket: str):
        self.client = client
        self.bucket = bucket

    def save(self, path: str, data: bytes, content_type: str) -> None:
        self.client.storage.from_(self.bucket).upload(
            path=path,
            file=data,
            file_options={"content-type": content_type, "upsert": "true"},
        )

    def delete(self, path: str) -> None:
        self.client.storage.from_(self.bucket).remove([path])

    def url(self, path: str, expires_in: int) -> str:
        response = self.client.storage.from_(self.bucket).create_signed_url(path, expires_in)
        return response.get("signedURL") or response.get("signedUrl") or ""


def _safe_filename(filename: str) -> str:
    name = Path(filename or "file").name
    return re.sub(r"[^0-9A-Za-z._-]+", "_", name) or "file"


class StorageService:
    """Service for storing uploaded files."""

    def __init__(self, backend: StorageBackend, signed_url_ttl: int = 3600):
        self.backend = backend
        self.signed_url_ttl = signed_url_ttl

    def upload_file(
        self,
        data: bytes,
        filename: str,
        content_type: str = "application/octet-stream",
        folder: str = "uploads",
    ) -> StoredFile:
        """
        Store a file under a unique name.

        Args:
            data: The file content as bytes
            filename: The client-side file name
            content_type: The MIME type of the file
            folder: The folder the file is placed in

        Returns:
            The stored file, with its storage path and a URL to fetch it
        """
        name = f"{uuid.uuid4()}-{_safe_filename(filename)}"
        path = f"{folder}/{name}" if folder else name
        self.backend.save(path, data, content_type)
        logger.info(f"Stored {len(data)} bytes at {path}")
        return StoredFile(
            path=path,
            filename=name,
            content_type=content_type,
            size=len(data),
            url=self.generate_signed_url(path),
        )

    def delete_file(self, path: str) -> bool:
        """Delete a stored file. Returns False when the deletion failed."""
        if not path:
            return False
        try:
            self.backend.delete(path)
            return True
        except Exception as e:
            logger.error(f"Error deleting file {path}: {e}")
            return False

    def generate_signed_url(self, path: str, expires_in: Optional[int] = None) -> str:
        """A URL for reading the file, valid for ``expires_in`` seconds."""
        if not path:
            return ""
        return self.backend.url(path, expires_in or self.signed_url_ttl)

    @staticmethod
    def path_from_url(url: str) -> str:
        """Recover the storage path from a URL returned by ``upload_file``."""
        if PUBLIC_PREFIX in url:
            return url.split(PUBLIC_PREFIX, 1)[1]
        match = re.search(r"/object/(?:sign|public)/[^/]+/([^?]+)", url)
        return match.group(1) if match else url


def create_storage_service(settings: Settings | None = None) -> StorageService:
    settings = settings or get_settings()
    use_supabase = (
        settings.storage_type == "supabase"
        and settings.supabase_url
        and settings.supabase_secret_key
    )
    if use_supabase:
        client = create_client(settings.supabase_url, settings.supabase_secret_key)
        backend = SupabaseStorageBackend(client, settings.supabase_bucket)
    else:
        backend = LocalStorageBackend(settings.upload_dir)
    logger.info(f"Storage backend: {type(backend).__name__}")
    return StorageService(backend, signed_url_ttl=settings.signed_url_ttl)


# Singleton instance
_storage_service: Optional[StorageService] = None


def get_storage_service() -> StorageService:
    """Get or create the storage service singleton."""
    global _storage_service
    if _storage_service is None:
        _storage_service = create_storage_service()
    return _storage_service
