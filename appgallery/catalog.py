"""
App catalog operations on top of the resource gateways.

Featured/event membership is stored only in the id-list resources and is
joined onto app records at read time; it is never written into apps.json.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable

from appgallery.gateway import GatewayRegistry, WriteResult
from appgallery.ids import APP_ID_RANGES, is_valid_app_id
from appgallery.resources import APPS, EVENT_IDS, FEATURED_IDS, FEATURED_SETS

logger = logging.getLogger(__name__)

APP_FILTERS = ("all", "latest", "featured", "events", "normal")
ID_LISTS = ("featured", "events")
DERIVED_FLAGS = ("isFeatured", "isEvent")


class RecordNotFound(LookupError):
    """Raised when an operation targets an id the resource does not hold."""


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Any) -> datetime:
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
        else:
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed
    return datetime.min.replace(tzinfo=timezone.utc)


def newest_first(records: Iterable[dict], field: str) -> list[dict]:
    return sorted(records, key=lambda r: parse_timestamp(r.get(field)), reverse=True)


def strip_derived_flags(record: dict) -> dict:
    return {k: v for k, v in record.items() if k not in DERIVED_FLAGS}


def find_index(records: list[dict], record_id: str) -> int:
    for i, record in enumerate(records):
        if record.get("id") == record_id:
            return i
    raise RecordNotFound(record_id)


class AppCatalog:
    """Apps plus the featured/event id lists they are joined with."""

    def __init__(self, registry: GatewayRegistry):
        self.apps = registry.get(APPS)
        self.id_lists = {
            "featured": registry.get(FEATURED_IDS),
            "events": registry.get(EVENT_IDS),
        }

    def list_apps(self) -> list[dict]:
        return self.apps.read()

    def list_with_flags(self, filter_type: str = "all") -> list[dict]:
        featured = set(self.id_lists["featured"].read())
        events = set(self.id_lists["events"].read())
        apps = [
            {**app, "isFeatured": app["id"] in featured, "isEvent": app["id"] in events}
            for app in self.apps.read()
        ]
        if filter_type == "latest":
            return newest_first(apps, "uploadDate")
        if filter_type == "featured":
            return [app for app in apps if app["isFeatured"]]
        if filter_type == "events":
            return [app for app in apps if app["isEvent"]]
        if filter_type == "normal":
            return [app for app in apps if not app["isFeatured"] and not app["isEvent"]]
        return apps

    def save_apps(self, apps: list[dict]) -> WriteResult:
        return self.apps.write([strip_derived_flags(app) for app in apps])

    def update_app(self, app_id: str, fields: dict) -> tuple[dict, WriteResult]:
        apps = self.apps.read()
        index = find_index(apps, app_id)
        updated = strip_derived_flags({**apps[index], **fields, "id": app_id})
        apps[index] = updated
        return updated, self.apps.write(apps)

    def delete_app(self, app_id: str) -> WriteResult:
        apps = self.apps.read()
        del apps[find_index(apps, app_id)]
        return self.apps.write(apps)

    def forget_app(self, app_id: str) -> bool:
        """Drop an app and its memberships; returns whether the record existed."""
        for list_name in ID_LISTS:
            try:
                self.remove_id(list_name, app_id)
            except RecordNotFound:
                pass
        try:
            self.delete_app(app_id)
        except RecordNotFound:
            return False
        return True

    def gallery_apps(self, app_type: str = "gallery") -> list[dict]:
        id_range = APP_ID_RANGES[app_type]
        apps = [
            app
            for app in self.apps.read()
            if app.get("type") == app_type and is_valid_app_id(app["id"], id_range)
        ]
        return newest_first(apps, "uploadDate")

    def replace_gallery_apps(
        self, apps: list[dict], app_type: str = "gallery"
    ) -> tuple[list[dict], WriteResult]:
        id_range = APP_ID_RANGES[app_type]
        valid = [
            {**strip_derived_flags(app), "type": app_type}
            for app in apps
            if is_valid_app_id(app["id"], id_range)
        ]
        others = [app for app in self.apps.read() if app.get("type") != app_type]
        return valid, self.apps.write(others + valid)

    def read_ids(self, list_name: str) -> list[str]:
        return self.id_lists[list_name].read()

    def add_ids(self, list_name: str, ids: list[str]) -> WriteResult:
        return self.id_lists[list_name].write(ids)

    def remove_id(self, list_name: str, app_id: str) -> WriteResult:
        gateway = self.id_lists[list_name]
        current = gateway.read()
        if app_id not in current:
            raise RecordNotFound(app_id)
        return gateway.replace([i for i in current if i != app_id])

    def toggle(self, list_name: str, app_id: str, action: str) -> WriteResult:
        if action == "add":
            return self.add_ids(list_name, [app_id])
        try:
            return self.remove_id(list_name, app_id)
        except RecordNotFound:
            logger.info("%s is not in %s, nothing to remove", app_id, list_name)
            gateway = self.id_lists[list_name]
            return gateway.unchanged(gateway.read())


class FeaturedSets:
    """The legacy single-document ``{featured, events}`` id sets."""

    def __init__(self, registry: GatewayRegistry):
        self.gateway = registry.get(FEATURED_SETS)

    def read(self) -> dict:
        return self.gateway.read()

    def save(self, sets: dict) -> WriteResult:
        return self.gateway.write(sets)

    def toggle(self, list_name: str, app_id: str, action: str) -> WriteResult:
        if action == "add":
            return self.gateway.write({list_name: [app_id]})
        current = self.gateway.read()
        if app_id not in current[list_name]:
            logger.info("%s is not in %s, nothing to remove", app_id, list_name)
            return self.gateway.unchanged(current)
        current[list_name] = [i for i in current[list_name] if i != app_id]
        return self.gateway.replace(current)
