"""
Dependency wiring for the FastAPI app.

The runtime mode is resolved once per process and the blob store, gateway
registry and asset store are process singletons, so every request in a
warm process shares the same memory caches.
"""

from __future__ import annotations

import logging

from appgallery.config import RuntimeMode, get_settings, resolve_runtime_mode
from appgallery.gateway import GatewayRegistry
from appgallery.local_store import LocalFileStore
from appgallery.storage import BlobStore, InMemoryBlobStore, S3BlobStore
from appgallery.uploads import AssetStore

logger = logging.getLogger(__name__)

_runtime_mode: RuntimeMode | None = None
_blob_store: BlobStore | None = None
_registry: GatewayRegistry | None = None
_asset_store: AssetStore | None = None


def get_runtime_mode() -> RuntimeMode:
    global _runtime_mode
    if _runtime_mode:
        return _runtime_mode

    _runtime_mode = resolve_runtime_mode(get_settings())
    logger.info("Resources persist in %s mode", _runtime_mode.value)
    return _runtime_mode


def get_blob_store() -> BlobStore:
    global _blob_store
    if _blob_store:
        return _blob_store

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.blob_bucket:
        _blob_store = InMemoryBlobStore()
    else:
        _blob_store = S3BlobStore(
            bucket=settings.blob_bucket,
            region=settings.blob_region or "",
            endpoint=settings.blob_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            public_base_url=settings.blob_public_base_url or "",
        )
    return _blob_store


def get_registry() -> GatewayRegistry:
    """
    Return the process-wide gateway registry.
    """
    global _registry
    if _registry:
        return _registry

    settings = get_settings()
    mode = get_runtime_mode()
    if mode is RuntimeMode.HOSTED:
        _registry = GatewayRegistry(
            mode,
            blob_store=get_blob_store(),
            write_attempts=settings.blob_write_attempts,
            list_limit=settings.blob_list_limit,
        )
    else:
        _registry = GatewayRegistry(mode, local_store=LocalFileStore(settings.data_dir))
    return _registry


def get_asset_store() -> AssetStore:
    global _asset_store
    if _asset_store:
        return _asset_store

    settings = get_settings()
    _asset_store = AssetStore(
        get_runtime_mode(),
        uploads_dir=settings.uploads_dir,
        blob_store=get_blob_store(),
    )
    return _asset_store
