"""
Maintenance commands for persisted resources.

    appgallery-migrate to-blob [--data-dir DIR]
    appgallery-migrate split-featured [--data-dir DIR]
"""

from __future__ import annotations

import argparse
import logging
import shutil
import sys
from typing import Optional

from appgallery.config import RuntimeMode, get_settings
from appgallery.dependencies import get_blob_store
from appgallery.gateway import GatewayRegistry, StorageTier
from appgallery.local_store import LocalFileStore
from appgallery.resources import ALL_RESOURCES, EVENT_IDS, FEATURED_IDS, FEATURED_SETS

logger = logging.getLogger(__name__)


def migrate_to_blob(
    local_store: LocalFileStore, registry: GatewayRegistry
) -> dict[str, StorageTier]:
    """Copy every resource file found locally into the registry's blob tier."""
    if registry.mode is not RuntimeMode.HOSTED:
        raise ValueError("to-blob needs a hosted-mode registry")

    tiers: dict[str, StorageTier] = {}
    for resource in ALL_RESOURCES:
        if not local_store.exists(resource):
            logger.info("Skipping %s, no local file", resource.name)
            continue
        try:
            value = local_store.read(resource)
            result = registry.get(resource).replace(value)
        except (OSError, ValueError) as exc:
            logger.error("Could not migrate %s: %s", resource.name, exc)
            continue
        tiers[resource.name] = result.tier
        if result.durable:
            logger.info("Migrated %s to %s", resource.name, result.tier.value)
        else:
            logger.warning("%s only reached memory: %s", resource.name, result.warning)
    return tiers


def split_featured(local_store: LocalFileStore) -> bool:
    """
    Split the legacy ``featured-apps.json`` pair into the two id-list files.

    The old file is copied to ``featured-apps.json.backup`` and removed.
    Returns False when there is nothing to split.
    """
    old_path = local_store.path_for(FEATURED_SETS)
    if not old_path.exists():
        logger.info("%s not found, nothing to split", old_path)
        return False

    sets = FEATURED_SETS.normalize(local_store.read(FEATURED_SETS))
    local_store.write(FEATURED_IDS, sets["featured"])
    local_store.write(EVENT_IDS, sets["events"])
    logger.info(
        "Wrote %d featured and %d event ids", len(sets["featured"]), len(sets["events"])
    )

    backup_path = old_path.with_name(old_path.name + ".backup")
    shutil.copyfile(old_path, backup_path)
    old_path.unlink()
    logger.info("Backed up %s to %s", old_path.name, backup_path.name)
    return True


def main(argv: Optional[list[str]] = None) -> int:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--data-dir",
        default=None,
        help="Directory holding the local resource files (defaults to DATA_DIR)",
    )
    parser = argparse.ArgumentParser(description="Gallery data maintenance")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser(
        "to-blob", parents=[common], help="Upload local resource files to blob storage"
    )
    subparsers.add_parser(
        "split-featured",
        parents=[common],
        help="Split featured-apps.json into featured.json and events.json",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    settings = get_settings()
    local_store = LocalFileStore(args.data_dir or settings.data_dir)

    if args.command == "split-featured":
        split_featured(local_store)
        return 0

    registry = GatewayRegistry(
        RuntimeMode.HOSTED,
        blob_store=get_blob_store(),
        write_attempts=settings.blob_write_attempts,
        list_limit=settings.blob_list_limit,
    )
    tiers = migrate_to_blob(local_store, registry)
    failed = [name for name, tier in tiers.items() if tier is not StorageTier.BLOB_STORE]
    logger.info("Migrated %d resources, %d failed", len(tiers) - len(failed), len(failed))
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
