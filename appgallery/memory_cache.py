"""
Process-lifetime cache of the last known good value of a resource.

A cache instance is owned by one gateway and lives as long as the process
that built it. It is not shared across horizontally scaled instances.
"""

from __future__ import annotations

import copy
import threading
from typing import Any, Optional


class MemoryCache:
    """Thread-safe holder for a single resource value."""

    def __init__(self):
        self._lock = threading.Lock()
        self._value: Optional[Any] = None

    def get(self) -> Optional[Any]:
        with self._lock:
            return copy.deepcopy(self._value)

    def set(self, value: Any) -> None:
        with self._lock:
            self._value = copy.deepcopy(value)

    def clear(self) -> None:
        with self._lock:
            self._value = None
