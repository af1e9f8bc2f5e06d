"""
Uploaded binary assets (icons, screenshots, inline images).

Assets go to the blob store in hosted mode and to ``uploads_dir`` (served as
``/uploads/...``) in local mode. Records only keep the resulting URL.
"""

from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from appgallery.config import RuntimeMode
from appgallery.ids import generate_upload_filename
from appgallery.storage import BlobStore

logger = logging.getLogger(__name__)

LOCAL_URL_PREFIX = "/uploads/"


class AssetLocation(str, Enum):
    BLOB = "blob"
    LOCAL = "local"
    EXTERNAL = "external"


class DeleteOutcome(str, Enum):
    DELETED = "deleted"
    NOT_FOUND = "not_found"
    EXTERNAL = "external"
    FAILED = "failed"


@dataclass
class UploadResult:
    url: str
    file_name: str
    size: int
    location: AssetLocation


class AssetStore:
    """Stores and deletes uploaded files for the current runtime mode."""

    def __init__(
        self,
        mode: RuntimeMode,
        *,
        uploads_dir: str | Path,
        blob_store: Optional[BlobStore] = None,
    ):
        self.mode = mode
        self.uploads_dir = Path(uploads_dir)
        self.blob_store = blob_store

    def save(
        self,
        data: bytes,
        original_filename: str,
        *,
        prefix: str = "",
        content_type: Optional[str] = None,
        force_blob: bool = False,
    ) -> UploadResult:
        file_name = generate_upload_filename(original_filename, prefix)
        if force_blob or self.mode is RuntimeMode.HOSTED:
            return self._save_blob(data, file_name, content_type)
        return self._save_local(data, file_name)

    def save_as(
        self, data: bytes, pathname: str, *, content_type: Optional[str] = None
    ) -> UploadResult:
        """Store under a caller-chosen pathname (gallery images use their item id)."""
        if self.mode is RuntimeMode.HOSTED:
            return self._save_blob(data, pathname, content_type)
        return self._save_local(data, Path(pathname).name)

    def _save_blob(
        self, data: bytes, file_name: str, content_type: Optional[str]
    ) -> UploadResult:
        if self.blob_store is None:
            raise RuntimeError("No blob store configured for uploads")
        content_type = (
            content_type
            or mimetypes.guess_type(file_name)[0]
            or "application/octet-stream"
        )
        blob = self.blob_store.put(file_name, data, content_type=content_type)
        logger.info("Uploaded %s to blob storage (%d bytes)", file_name, len(data))
        return UploadResult(
            url=blob.url, file_name=file_name, size=len(data), location=AssetLocation.BLOB
        )

    def _save_local(self, data: bytes, file_name: str) -> UploadResult:
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        root = self.uploads_dir.resolve()
        path = (root / file_name).resolve()
        if path.parent != root:
            raise ValueError(f"upload name escapes the uploads directory: {file_name}")
        path.write_bytes(data)
        logger.info("Saved upload %s locally (%d bytes)", file_name, len(data))
        return UploadResult(
            url=f"{LOCAL_URL_PREFIX}{file_name}",
            file_name=file_name,
            size=len(data),
            location=AssetLocation.LOCAL,
        )

    def classify(self, url: str) -> AssetLocation:
        if self.blob_store is not None and self.blob_store.owns_url(url):
            return AssetLocation.BLOB
        if url.startswith(LOCAL_URL_PREFIX):
            return AssetLocation.LOCAL
        return AssetLocation.EXTERNAL

    def delete(self, url: str) -> DeleteOutcome:
        location = self.classify(url)
        if location is AssetLocation.BLOB:
            try:
                self.blob_store.delete(url)
            except Exception as exc:
                logger.error("Blob delete of %s failed: %s", url, exc)
                return DeleteOutcome.FAILED
            return DeleteOutcome.DELETED

        if location is AssetLocation.LOCAL:
            # Only the last path component is honoured to keep deletes
            # inside uploads_dir.
            file_name = Path(url[len(LOCAL_URL_PREFIX) :]).name
            path = self.uploads_dir / file_name
            if not file_name or not path.is_file():
                return DeleteOutcome.NOT_FOUND
            path.unlink()
            return DeleteOutcome.DELETED

        logger.info("Not deleting external asset %s", url)
        return DeleteOutcome.EXTERNAL
