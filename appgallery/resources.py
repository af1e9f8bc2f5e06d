"""
Declarative definitions of the persisted resources.

Each resource is a single JSON document with a fixed shape and a merge
policy. The gateway is generic over these definitions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable


class ResourceShape(str, Enum):
    RECORD_LIST = "record_list"
    ID_LIST = "id_list"
    ID_SETS = "id_sets"


class MergePolicy(str, Enum):
    REPLACE = "replace"
    UNION_MERGE = "union_merge"


ID_SET_KEYS = ("featured", "events")


def _unique(ids: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for item in ids:
        if item not in seen:
            seen.add(item)
            ordered.append(item)
    return ordered


def _normalize_id_list(value: Any, label: str) -> list[str]:
    if not isinstance(value, list):
        raise ValueError(f"{label} must be a list of ids")
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"{label} must contain only string ids")
    return _unique(value)


def _normalize_records(value: Any, label: str) -> list[dict]:
    if not isinstance(value, list):
        raise ValueError(f"{label} must be a list of records")
    for record in value:
        if not isinstance(record, dict):
            raise ValueError(f"{label} must contain only objects")
        if not isinstance(record.get("id"), str) or not record["id"]:
            raise ValueError(f"every record in {label} needs a string id")
    return [dict(record) for record in value]


def _merge_records(current: list[dict], incoming: list[dict]) -> list[dict]:
    merged = list(current)
    index = {record["id"]: i for i, record in enumerate(merged)}
    for record in incoming:
        position = index.get(record["id"])
        if position is None:
            index[record["id"]] = len(merged)
            merged.append(record)
        else:
            merged[position] = record
    return merged


@dataclass(frozen=True)
class ResourceSpec:
    """A named resource persisted as one JSON document."""

    name: str
    shape: ResourceShape
    merge_policy: MergePolicy = MergePolicy.REPLACE

    def empty(self) -> Any:
        if self.shape is ResourceShape.ID_SETS:
            return {key: [] for key in ID_SET_KEYS}
        return []

    def is_empty(self, value: Any) -> bool:
        if value is None:
            return True
        if self.shape is ResourceShape.ID_SETS:
            return not any(value.get(key) for key in ID_SET_KEYS)
        return not value

    def normalize(self, value: Any) -> Any:
        """Validate ``value`` against the shape and return a clean copy."""
        if self.shape is ResourceShape.RECORD_LIST:
            return _normalize_records(value, self.name)
        if self.shape is ResourceShape.ID_LIST:
            return _normalize_id_list(value, self.name)
        if not isinstance(value, dict):
            raise ValueError(f"{self.name} must be an object of id lists")
        return {
            key: _normalize_id_list(value.get(key, []), f"{self.name}.{key}")
            for key in ID_SET_KEYS
        }

    def union(self, current: Any, incoming: Any) -> Any:
        if self.shape is ResourceShape.RECORD_LIST:
            return _merge_records(current, incoming)
        if self.shape is ResourceShape.ID_LIST:
            return _unique([*current, *incoming])
        return {
            key: _unique([*current.get(key, []), *incoming.get(key, [])])
            for key in ID_SET_KEYS
        }


APPS = ResourceSpec("apps.json", ResourceShape.RECORD_LIST)
FEATURED_IDS = ResourceSpec(
    "featured.json", ResourceShape.ID_LIST, MergePolicy.UNION_MERGE
)
EVENT_IDS = ResourceSpec("events.json", ResourceShape.ID_LIST, MergePolicy.UNION_MERGE)
FEATURED_SETS = ResourceSpec(
    "featured-apps.json", ResourceShape.ID_SETS, MergePolicy.UNION_MERGE
)
CONTENTS = ResourceSpec("contents.json", ResourceShape.RECORD_LIST)
MEMOS = ResourceSpec("memo.json", ResourceShape.RECORD_LIST)
MEMOS2 = ResourceSpec("memo2.json", ResourceShape.RECORD_LIST)

GALLERY_TYPES = ("gallery", "featured", "events")
GALLERY_ITEMS = {
    gallery_type: ResourceSpec(f"gallery-{gallery_type}.json", ResourceShape.RECORD_LIST)
    for gallery_type in GALLERY_TYPES
}

ALL_RESOURCES: tuple[ResourceSpec, ...] = (
    APPS,
    FEATURED_IDS,
    EVENT_IDS,
    FEATURED_SETS,
    CONTENTS,
    MEMOS,
    MEMOS2,
    *GALLERY_ITEMS.values(),
)


def get_resource(name: str) -> ResourceSpec:
    for resource in ALL_RESOURCES:
        if resource.name == name:
            return resource
    raise KeyError(name)
