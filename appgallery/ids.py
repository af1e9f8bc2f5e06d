"""
Identifier generation for apps, contents, gallery items and uploaded files.
"""

from __future__ import annotations

import os
import random
import re
import string
import time
from dataclasses import dataclass
from typing import Callable, Iterable

MAX_ID_ATTEMPTS = 100
NUMERIC_ID_PATTERN = re.compile(r"^\d+$")
UNSAFE_PREFIX_CHARS = re.compile(r"[^A-Za-z0-9_-]")
SAFE_EXTENSION = re.compile(r"^\.[A-Za-z0-9]+$")
BASE36_ALPHABET = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class IdRange:
    min: int
    max: int

    @property
    def size(self) -> int:
        return self.max - self.min + 1

    def contains(self, value: int) -> bool:
        return self.min <= value <= self.max

    def as_dict(self) -> dict:
        return {"min": self.min, "max": self.max}


# Legacy flat namespace: the numeric range of a content id encodes its type.
CONTENT_ID_RANGES: dict[str, IdRange] = {
    "appstory": IdRange(1, 9999),
    "news": IdRange(10000, 19999),
    "memo": IdRange(20000, 29999),
    "memo2": IdRange(30000, 39999),
}

# Older numeric gallery app ids were allocated from this range.
APP_ID_RANGES: dict[str, IdRange] = {
    "gallery": IdRange(20000, 29999),
}


def _now_ms() -> int:
    return int(time.time() * 1000)


def random_base36(length: int, rng: random.Random | None = None) -> str:
    rng = rng or random
    return "".join(rng.choice(BASE36_ALPHABET) for _ in range(length))


def generate_range_id(
    id_range: IdRange,
    existing_ids: Iterable[str],
    *,
    rng: random.Random | None = None,
    clock: Callable[[], int] = _now_ms,
) -> str:
    """
    Pick an unused id inside ``id_range``.

    Random candidates are tried up to MAX_ID_ATTEMPTS times. When all of them
    collide the id is derived from the current time instead, which may still
    collide but always terminates.
    """
    rng = rng or random
    taken = set(existing_ids)
    for _ in range(MAX_ID_ATTEMPTS):
        candidate = str(id_range.min + rng.randint(0, id_range.size - 1))
        if candidate not in taken:
            return candidate
    return str(id_range.min + clock() % id_range.size)


def generate_app_id(
    *, rng: random.Random | None = None, clock: Callable[[], int] = _now_ms
) -> str:
    return f"{clock()}_{random_base36(11, rng)}"


def generate_gallery_item_id(
    gallery_type: str,
    *,
    rng: random.Random | None = None,
    clock: Callable[[], int] = _now_ms,
) -> str:
    return f"{gallery_type}-{clock()}-{random_base36(9, rng)}"


def is_valid_app_id(app_id: str, id_range: IdRange = APP_ID_RANGES["gallery"]) -> bool:
    """Numeric ids must sit in the legacy range; any other format is accepted."""
    if NUMERIC_ID_PATTERN.match(app_id):
        return id_range.contains(int(app_id))
    return True


def is_in_content_range(content_id: str, content_type: str) -> bool:
    id_range = CONTENT_ID_RANGES.get(content_type)
    if id_range is None or not NUMERIC_ID_PATTERN.match(content_id):
        return False
    return id_range.contains(int(content_id))


def generate_upload_filename(
    original_filename: str,
    prefix: str = "",
    *,
    rng: random.Random | None = None,
    clock: Callable[[], int] = _now_ms,
) -> str:
    prefix = UNSAFE_PREFIX_CHARS.sub("", prefix)
    extension = os.path.splitext(os.path.basename(original_filename))[1].lower()
    if not SAFE_EXTENSION.match(extension):
        extension = ""
    return f"{prefix}_{clock()}_{random_base36(13, rng)}{extension}"
