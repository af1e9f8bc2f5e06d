"""
Blob storage abstraction for S3-compatible object stores and in-memory testing.

Resources and uploaded assets are stored as objects addressed by a pathname
(the key) and exposed through a public URL. Writes under the same key may be
listed more than once by eventually-consistent stores, so every listed object
carries its upload timestamp and readers pick the latest one.
"""

from __future__ import annotations

import os
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Protocol
from urllib.parse import quote, unquote

import boto3
from botocore.config import Config


@dataclass(frozen=True)
class BlobObject:
    pathname: str
    url: str
    uploaded_at: datetime
    size: int = 0


class BlobStore(Protocol):
    """Defines the operations the gateway and uploads need from object storage."""

    def put(
        self,
        key: str,
        body: bytes,
        *,
        content_type: str,
        add_random_suffix: bool = False,
    ) -> BlobObject:
        ...

    def list(self, prefix: str, limit: int = 100) -> list[BlobObject]:
        ...

    def get(self, url: str) -> bytes:
        ...

    def delete(self, url: str) -> None:
        ...

    def owns_url(self, url: str) -> bool:
        ...


def _with_random_suffix(key: str) -> str:
    stem, ext = os.path.splitext(key)
    return f"{stem}-{secrets.token_hex(8)}{ext}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _StoredBlob:
    body: bytes
    content_type: str
    uploaded_at: datetime


@dataclass
class InMemoryBlobStore:
    """Blob store double for development without credentials and for tests."""

    base_url: str = "https://blob.example.test"
    clock: Callable[[], datetime] = _utcnow
    stored_objects: dict[str, _StoredBlob] = field(default_factory=dict)

    def _url_for(self, pathname: str) -> str:
        return f"{self.base_url}/{quote(pathname)}"

    def _pathname_for(self, url: str) -> str:
        if not self.owns_url(url):
            raise FileNotFoundError(url)
        return unquote(url[len(self.base_url) + 1 :])

    def put(
        self,
        key: str,
        body: bytes,
        *,
        content_type: str,
        add_random_suffix: bool = False,
    ) -> BlobObject:
        pathname = _with_random_suffix(key) if add_random_suffix else key
        stored = _StoredBlob(
            body=bytes(body), content_type=content_type, uploaded_at=self.clock()
        )
        self.stored_objects[pathname] = stored
        return BlobObject(
            pathname=pathname,
            url=self._url_for(pathname),
            uploaded_at=stored.uploaded_at,
            size=len(stored.body),
        )

    def list(self, prefix: str, limit: int = 100) -> list[BlobObject]:
        matches = sorted(p for p in self.stored_objects if p.startswith(prefix))
        return [
            BlobObject(
                pathname=pathname,
                url=self._url_for(pathname),
                uploaded_at=self.stored_objects[pathname].uploaded_at,
                size=len(self.stored_objects[pathname].body),
            )
            for pathname in matches[:limit]
        ]

    def get(self, url: str) -> bytes:
        stored = self.stored_objects.get(self._pathname_for(url))
        if stored is None:
            raise FileNotFoundError(url)
        return stored.body

    def delete(self, url: str) -> None:
        self.stored_objects.pop(self._pathname_for(url), None)

    def owns_url(self, url: str) -> bool:
        return url.startswith(f"{self.base_url}/")


@dataclass
class S3BlobStore:
    """
    Blob store backed by any S3-compatible service.

    Objects are written without ACLs; public readability of
    ``public_base_url`` is expected to come from the bucket policy.
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    public_base_url: str = ""

    def __post_init__(self):
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
            retries={"max_attempts": 1, "mode": "standard"},
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )
        if not self.public_base_url:
            self.public_base_url = f"{self.endpoint.rstrip('/')}/{self.bucket}"
        self.public_base_url = self.public_base_url.rstrip("/")

    def _url_for(self, key: str) -> str:
        return f"{self.public_base_url}/{quote(key)}"

    def _key_for(self, url: str) -> str:
        if not self.owns_url(url):
            raise ValueError(f"URL is not served by bucket {self.bucket}: {url}")
        return unquote(url[len(self.public_base_url) + 1 :].split("?", 1)[0])

    def put(
        self,
        key: str,
        body: bytes,
        *,
        content_type: str,
        add_random_suffix: bool = False,
    ) -> BlobObject:
        pathname = _with_random_suffix(key) if add_random_suffix else key
        self._client.put_object(
            Bucket=self.bucket,
            Key=pathname,
            Body=body,
            ContentType=content_type,
        )
        return BlobObject(
            pathname=pathname,
            url=self._url_for(pathname),
            uploaded_at=_utcnow(),
            size=len(body),
        )

    def list(self, prefix: str, limit: int = 100) -> list[BlobObject]:
        paginator = self._client.get_paginator("list_objects_v2")
        pages = paginator.paginate(
            Bucket=self.bucket,
            Prefix=prefix,
            PaginationConfig={"MaxItems": limit},
        )
        blobs: list[BlobObject] = []
        for page in pages:
            for entry in page.get("Contents", []):
                blobs.append(
                    BlobObject(
                        pathname=entry["Key"],
                        url=self._url_for(entry["Key"]),
                        uploaded_at=entry["LastModified"],
                        size=entry.get("Size", 0),
                    )
                )
        return blobs

    def get(self, url: str) -> bytes:
        response = self._client.get_object(Bucket=self.bucket, Key=self._key_for(url))
        return response["Body"].read()

    def delete(self, url: str) -> None:
        self._client.delete_object(Bucket=self.bucket, Key=self._key_for(url))

    def owns_url(self, url: str) -> bool:
        return url.startswith(f"{self.public_base_url}/")
