"""Skip discoveries whose asset path is already registered."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from .library_db import LibraryDB

log = logger.bind(stage="dedup")


def already_imported(db: LibraryDB, asset_path: str) -> bool:
    """True if an audiobook already exists at exactly this asset path.

    Check-then-act: two concurrent scans of one directory can both see
    False. The unique asset_path column turns the loser's insert into a
    DuplicateAssetError.
    """
    if db.get_audiobook_by_path(asset_path) is None:
        return False
    log.debug(f"Audiobook already exists at {asset_path}, skipping")
    return True
