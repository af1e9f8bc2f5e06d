"""
Gallery items, one record list per gallery type.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from appgallery.catalog import find_index, utc_timestamp
from appgallery.contents import split_tags
from appgallery.gateway import GatewayRegistry, ResourceGateway, WriteResult
from appgallery.ids import generate_gallery_item_id
from appgallery.resources import GALLERY_ITEMS
from appgallery.uploads import AssetStore, DeleteOutcome

logger = logging.getLogger(__name__)

LISTED_STATUSES = ("in-review", "published")


@dataclass
class ImageUpload:
    data: bytes
    filename: str
    content_type: Optional[str] = None


def image_folder(gallery_type: str) -> str:
    return "gallery-gallery" if gallery_type == "gallery" else gallery_type


def is_listed(item: dict, gallery_type: str) -> bool:
    if not (item.get("imageUrl") or item.get("title")):
        return False
    if gallery_type == "gallery":
        return bool(item.get("isPublished")) or item.get("status") in LISTED_STATUSES
    return bool(item.get("isPublished"))


class GalleryCatalog:
    def __init__(self, registry: GatewayRegistry, assets: AssetStore):
        self.registry = registry
        self.assets = assets

    def _gateway(self, gallery_type: str) -> ResourceGateway:
        if gallery_type not in GALLERY_ITEMS:
            raise ValueError(f"unknown gallery type: {gallery_type}")
        return self.registry.get(GALLERY_ITEMS[gallery_type])

    def list(self, gallery_type: str) -> list[dict]:
        items = self._gateway(gallery_type).read()
        return [item for item in items if is_listed(item, gallery_type)]

    def upsert(self, gallery_type: str, item: dict) -> tuple[dict, WriteResult]:
        gateway = self._gateway(gallery_type)
        record = {**item, "type": gallery_type}
        items = gateway.read()
        try:
            items[find_index(items, record["id"])] = record
        except LookupError:
            items.append(record)
        return record, gateway.write(items)

    def create(
        self, gallery_type: str, fields: dict, image: Optional[ImageUpload] = None
    ) -> tuple[dict, WriteResult]:
        for field in ("title", "content", "author"):
            if not fields.get(field):
                raise ValueError("title, content and author are required")

        item_id = generate_gallery_item_id(gallery_type)
        image_url = None
        if image is not None:
            extension = os.path.splitext(image.filename)[1]
            uploaded = self.assets.save_as(
                image.data,
                f"{image_folder(gallery_type)}/{item_id}{extension}",
                content_type=image.content_type,
            )
            image_url = uploaded.url

        item = {
            "id": item_id,
            "title": fields["title"],
            "content": fields["content"],
            "author": fields["author"],
            "imageUrl": image_url,
            "publishDate": utc_timestamp(),
            "tags": split_tags(fields.get("tags")),
            "isPublished": bool(fields.get("isPublished")),
            "type": gallery_type,
            "store": fields.get("store") or "google-play",
            "storeUrl": fields.get("storeUrl") or None,
            "appCategory": fields.get("appCategory") or "normal",
        }
        item = {k: v for k, v in item.items() if v is not None}
        return self.upsert(gallery_type, item)

    def update(self, gallery_type: str, item: dict) -> tuple[dict, WriteResult]:
        gateway = self._gateway(gallery_type)
        items = gateway.read()
        index = find_index(items, item["id"])
        record = {**item, "type": gallery_type}
        items[index] = record
        return record, gateway.write(items)

    def delete(self, gallery_type: str, item_id: str) -> tuple[WriteResult, bool]:
        gateway = self._gateway(gallery_type)
        items = gateway.read()
        removed = items.pop(find_index(items, item_id))
        result = gateway.write(items)

        image_deleted = False
        if removed.get("imageUrl"):
            outcome = self.assets.delete(removed["imageUrl"])
            image_deleted = outcome is DeleteOutcome.DELETED
            if not image_deleted:
                logger.info("Image of %s not deleted: %s", item_id, outcome.value)
        return result, image_deleted
