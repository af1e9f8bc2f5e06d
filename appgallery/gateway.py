"""
Resource persistence gateway.

One gateway per resource orchestrates reads and writes across the local
file, the blob store and the process-memory cache. Its public operations
never raise for storage failures: reads degrade to stale or empty values and
writes degrade to the memory cache with a warning.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from appgallery.config import RuntimeMode
from appgallery.local_store import LocalFileStore
from appgallery.memory_cache import MemoryCache
from appgallery.resources import MergePolicy, ResourceSpec, get_resource
from appgallery.storage import BlobStore

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json; charset=utf-8"
DEFAULT_WRITE_ATTEMPTS = 3


class StorageTier(str, Enum):
    LOCAL_FILE = "local"
    BLOB_STORE = "blob"
    MEMORY_CACHE = "memory"


@dataclass
class WriteResult:
    tier: StorageTier
    data: Any
    warning: Optional[str] = None

    @property
    def durable(self) -> bool:
        return self.tier is not StorageTier.MEMORY_CACHE


def serialize(value: Any) -> bytes:
    return json.dumps(value, ensure_ascii=False, indent=2).encode("utf-8")


class ResourceGateway:
    """Reads and writes one resource through the tiers of the runtime mode."""

    def __init__(
        self,
        resource: ResourceSpec,
        mode: RuntimeMode,
        *,
        blob_store: Optional[BlobStore] = None,
        local_store: Optional[LocalFileStore] = None,
        cache: Optional[MemoryCache] = None,
        write_attempts: int = DEFAULT_WRITE_ATTEMPTS,
        list_limit: int = 100,
    ):
        if mode is RuntimeMode.HOSTED and blob_store is None:
            raise ValueError("hosted mode requires a blob store")
        if mode is RuntimeMode.LOCAL and local_store is None:
            raise ValueError("local mode requires a local file store")
        self.resource = resource
        self.mode = mode
        self.blob_store = blob_store
        self.local_store = local_store
        self.cache = cache if cache is not None else MemoryCache()
        self.write_attempts = write_attempts
        self.list_limit = list_limit

    def read(self) -> Any:
        if self.mode is RuntimeMode.LOCAL:
            value = self._read_local()
        else:
            value = self._read_blob()
        if value is not None:
            return value

        cached = self.cache.get()
        if not self.resource.is_empty(cached):
            logger.info("Serving %s from memory cache", self.resource.name)
            return cached
        return self.resource.empty()

    def write(self, value: Any) -> WriteResult:
        """Persist ``value`` according to the resource's merge policy."""
        incoming = self.resource.normalize(value)
        if self.resource.merge_policy is MergePolicy.UNION_MERGE:
            current = self.read()
            incoming = self.resource.union(current, incoming)
        return self._persist(incoming)

    def replace(self, value: Any) -> WriteResult:
        """Persist ``value`` as the whole document, bypassing merging."""
        return self._persist(self.resource.normalize(value))

    def unchanged(self, value: Any) -> WriteResult:
        """Report ``value`` as the outcome of a write that had nothing to persist."""
        tier = (
            StorageTier.LOCAL_FILE
            if self.mode is RuntimeMode.LOCAL
            else StorageTier.BLOB_STORE
        )
        return WriteResult(tier, value)

    def _read_local(self) -> Optional[Any]:
        try:
            return self.resource.normalize(self.local_store.read(self.resource))
        except (OSError, ValueError) as exc:
            logger.warning(
                "Local read of %s failed, falling back: %s", self.resource.name, exc
            )
            return None

    def _read_blob(self) -> Optional[Any]:
        try:
            blobs = self.blob_store.list(self.resource.name, limit=self.list_limit)
            if not blobs:
                return None
            latest = max(blobs, key=lambda blob: blob.uploaded_at)
            value = self.resource.normalize(json.loads(self.blob_store.get(latest.url)))
        except Exception as exc:
            logger.warning(
                "Blob read of %s failed, falling back: %s", self.resource.name, exc
            )
            return None
        self.cache.set(value)
        logger.debug("Loaded %s from blob %s", self.resource.name, latest.pathname)
        return value

    def _persist(self, value: Any) -> WriteResult:
        if self.mode is RuntimeMode.LOCAL:
            return self._persist_local(value)
        return self._persist_blob(value)

    def _persist_local(self, value: Any) -> WriteResult:
        try:
            self.local_store.write(self.resource, value)
        except OSError as exc:
            logger.error("Local save of %s failed: %s", self.resource.name, exc)
            self.cache.set(value)
            return WriteResult(
                StorageTier.MEMORY_CACHE, value, warning="local file save failed"
            )
        self.cache.set(value)
        return WriteResult(StorageTier.LOCAL_FILE, value)

    def _persist_blob(self, value: Any) -> WriteResult:
        body = serialize(value)
        for attempt in range(1, self.write_attempts + 1):
            try:
                self.blob_store.put(
                    self.resource.name, body, content_type=JSON_CONTENT_TYPE
                )
            except Exception as exc:
                logger.warning(
                    "Blob save of %s failed (attempt %d/%d): %s",
                    self.resource.name,
                    attempt,
                    self.write_attempts,
                    exc,
                )
                continue
            self.cache.set(value)
            logger.info("Saved %s to blob (attempt %d)", self.resource.name, attempt)
            return WriteResult(StorageTier.BLOB_STORE, value)

        logger.error(
            "All blob saves of %s failed, keeping it in memory only",
            self.resource.name,
        )
        self.cache.set(value)
        return WriteResult(
            StorageTier.MEMORY_CACHE,
            value,
            warning=f"blob save failed after {self.write_attempts} attempts",
        )


class GatewayRegistry:
    """
    Builds one gateway per resource for the life of a process.

    Each gateway owns its memory cache, so a fresh registry behaves like a
    cold start of the service.
    """

    def __init__(
        self,
        mode: RuntimeMode,
        *,
        blob_store: Optional[BlobStore] = None,
        local_store: Optional[LocalFileStore] = None,
        write_attempts: int = DEFAULT_WRITE_ATTEMPTS,
        list_limit: int = 100,
    ):
        self.mode = mode
        self.blob_store = blob_store
        self.local_store = local_store
        self.write_attempts = write_attempts
        self.list_limit = list_limit
        self._gateways: dict[str, ResourceGateway] = {}
        self._lock = threading.Lock()

    def get(self, resource: ResourceSpec | str) -> ResourceGateway:
        if isinstance(resource, str):
            resource = get_resource(resource)
        with self._lock:
            gateway = self._gateways.get(resource.name)
            if gateway is None:
                gateway = ResourceGateway(
                    resource,
                    self.mode,
                    blob_store=self.blob_store,
                    local_store=self.local_store,
                    write_attempts=self.write_attempts,
                    list_limit=self.list_limit,
                )
                self._gateways[resource.name] = gateway
            return gateway
