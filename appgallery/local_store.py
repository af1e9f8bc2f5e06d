"""
Filesystem-backed JSON documents, one file per resource, for local development.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from appgallery.resources import ResourceSpec


class LocalFileStore:
    """Reads and writes ``<data_dir>/<resource name>``."""

    def __init__(self, data_dir: str | Path):
        self.data_dir = Path(data_dir)

    def path_for(self, resource: ResourceSpec) -> Path:
        return self.data_dir / resource.name

    def exists(self, resource: ResourceSpec) -> bool:
        return self.path_for(resource).exists()

    def ensure(self, resource: ResourceSpec) -> Path:
        path = self.path_for(resource)
        path.parent.mkdir(parents=True, exist_ok=True)
        if not path.exists():
            self.write(resource, resource.empty())
        return path

    def read(self, resource: ResourceSpec) -> Any:
        """Return the raw parsed document, creating an empty one if missing."""
        path = self.ensure(resource)
        text = path.read_text(encoding="utf-8")
        if not text.strip():
            return resource.empty()
        return json.loads(text)

    def write(self, resource: ResourceSpec, value: Any) -> None:
        path = self.path_for(resource)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_text(
            json.dumps(value, ensure_ascii=False, indent=2), encoding="utf-8"
        )
        os.replace(tmp, path)
