"""
Content collections (app stories, news, memos) stored as record lists.

Ids are drawn from the numeric range reserved for the content type, so a
bare id still tells which kind of content it belongs to.
"""

from __future__ import annotations

from typing import Optional

from appgallery.catalog import find_index, newest_first, utc_timestamp
from appgallery.gateway import ResourceGateway, WriteResult
from appgallery.ids import CONTENT_ID_RANGES, generate_range_id, is_in_content_range

REQUIRED_TEXT_FIELDS = ("title", "author", "content")


def split_tags(tags: Optional[str | list[str]]) -> list[str]:
    if not tags:
        return []
    if isinstance(tags, list):
        return [t.strip() for t in tags if t and t.strip()]
    return [t.strip() for t in tags.split(",") if t.strip()]


class ContentCollection:
    """CRUD over one content resource, optionally pinned to a single type."""

    def __init__(self, gateway: ResourceGateway, *, pinned_type: Optional[str] = None):
        self.gateway = gateway
        self.pinned_type = pinned_type

    def list(
        self, content_type: Optional[str] = None, *, published_only: bool = False
    ) -> list[dict]:
        items = self.gateway.read()
        if content_type:
            items = [item for item in items if item.get("type") == content_type]
        if published_only:
            items = [item for item in items if item.get("isPublished")]
        return newest_first(items, "publishDate")

    def create(self, payload: dict) -> tuple[dict, WriteResult]:
        for field in REQUIRED_TEXT_FIELDS:
            if not (payload.get(field) or "").strip():
                raise ValueError(f"{field} is required")
        content_type = self.pinned_type or payload.get("type")
        if content_type not in CONTENT_ID_RANGES:
            raise ValueError("a valid content type is required")

        items = self.gateway.read()
        item = {
            "id": generate_range_id(
                CONTENT_ID_RANGES[content_type], (i["id"] for i in items)
            ),
            "title": payload["title"].strip(),
            "content": payload["content"].strip(),
            "author": payload["author"].strip(),
            "publishDate": utc_timestamp(),
            "type": content_type,
            "tags": split_tags(payload.get("tags")),
            "isPublished": bool(payload.get("isPublished")),
        }
        if payload.get("imageUrl"):
            item["imageUrl"] = payload["imageUrl"]
        items.append(item)
        return item, self.gateway.write(items)

    def update(self, content_id: str, fields: dict) -> tuple[dict, WriteResult]:
        for field in REQUIRED_TEXT_FIELDS:
            if field in fields and not (fields[field] or "").strip():
                raise ValueError(f"{field} is required")

        items = self.gateway.read()
        index = find_index(items, content_id)
        current = items[index]
        updated = {**current, **fields, "id": content_id}
        for field in REQUIRED_TEXT_FIELDS:
            if field in fields:
                updated[field] = fields[field].strip()
        if "tags" in fields:
            updated["tags"] = split_tags(fields["tags"])
        else:
            updated["tags"] = current.get("tags", [])
        if self.pinned_type:
            updated["type"] = self.pinned_type
        items[index] = updated
        return updated, self.gateway.write(items)

    def delete(self, content_id: str) -> WriteResult:
        items = self.gateway.read()
        del items[find_index(items, content_id)]
        return self.gateway.write(items)

    def by_type(self, content_type: str) -> list[dict]:
        return [
            item
            for item in self.list(content_type)
            if is_in_content_range(item["id"], content_type)
        ]

    def replace_type(
        self, content_type: str, incoming: list[dict]
    ) -> tuple[list[dict], WriteResult]:
        """Swap every item of ``content_type`` for the valid items of ``incoming``."""
        valid = [
            item
            for item in incoming
            if item.get("type") == content_type
            and is_in_content_range(str(item.get("id", "")), content_type)
        ]
        others = [i for i in self.gateway.read() if i.get("type") != content_type]
        return valid, self.gateway.write(others + valid)
