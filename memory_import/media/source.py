"""
Media source adapter.

A media source is anything that can hand out a permission decision, a
list of named collections, and pages of assets for one collection.
list_collection_assets() turns that into a single, capped asset list.
"""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple

from PIL import Image

from memory_import.config import DEFAULT_MAX_ASSETS, DEFAULT_PAGE_SIZE
from memory_import.errors import CollectionNotFound, PermissionDenied
from memory_import.media.models import Asset, AssetPage, Collection, MediaListing
from memory_import.utils.time import UTC


class MediaSource(Protocol):
    async def request_access(self) -> bool: ...

    async def list_collections(self) -> List[Collection]: ...

    async def list_page(
        self,
        collection: Collection,
        cursor: Optional[str],
        page_size: int,
    ) -> AssetPage: ...


async def find_collection(source: MediaSource, name: str) -> Collection:
    """Case-insensitive exact title match."""
    wanted = name.lower()
    for collection in await source.list_collections():
        if collection.title.lower() == wanted:
            return collection
    raise CollectionNotFound(name)


async def list_collection_assets(
    source: MediaSource,
    collection_name: str,
    page_size: int = DEFAULT_PAGE_SIZE,
    max_assets: int = DEFAULT_MAX_ASSETS,
) -> MediaListing:
    """
    Resolve a collection by name and page through all of its assets.

    Raises:
        PermissionDenied: the source refused access.
        CollectionNotFound: no collection has that title.

    Pagination stops at ``max_assets``. Hitting the cap is not an error:
    it is logged and reported through ``MediaListing.truncated``.
    """
    if not await source.request_access():
        raise PermissionDenied()

    collection = await find_collection(source, collection_name)

    assets: List[Asset] = []
    cursor: Optional[str] = None
    truncated = False

    while True:
        page = await source.list_page(collection, cursor, page_size)
        assets.extend(page.assets)

        if len(assets) >= max_assets:
            truncated = len(assets) > max_assets or page.has_more
            del assets[max_assets:]
            break

        if not page.has_more:
            break
        cursor = page.next_cursor

    if truncated:
        logging.warning(
            "[SOURCE] Collection %r has more than %d items, stopping pagination",
            collection.title,
            max_assets,
        )

    logging.info("[SOURCE] Found %d media items in collection %r", len(assets), collection.title)
    return MediaListing(collection=collection, assets=assets, truncated=truncated)


# ================================
# LOCAL FOLDER SOURCE
# ================================
PHOTO_EXTENSIONS = {".jpg", ".jpeg", ".png", ".heic", ".heif"}
VIDEO_EXTENSIONS = {".mp4", ".mov", ".m4v"}


def _created_at(stat: os.stat_result) -> datetime:
    stamp = getattr(stat, "st_birthtime", None) or stat.st_mtime
    return datetime.fromtimestamp(stamp, UTC)


def _photo_size(path: Path) -> Tuple[int, int]:
    try:
        with Image.open(path) as img:
            return img.size
    except Exception as e:  # noqa: BLE001
        # HEIC without a plugin, truncated files, ...; dimensions are optional
        logging.debug("[SOURCE] Could not read size of %s: %s", path, e)
        return 0, 0


class LocalFolderSource:
    """
    Media source over a directory tree.

    Every immediate subdirectory of ``root`` is a collection. Its photos and
    videos are collected recursively (hidden directories skipped) and sorted
    by creation time. Cursors are string offsets into that sorted list.
    """

    def __init__(self, root: str | os.PathLike) -> None:
        self.root = Path(root)
        self._scanned: Dict[str, List[Asset]] = {}

    async def request_access(self) -> bool:
        return self.root.is_dir() and os.access(self.root, os.R_OK | os.X_OK)

    async def list_collections(self) -> List[Collection]:
        return [
            Collection(id=str(entry), title=entry.name)
            for entry in sorted(self.root.iterdir())
            if entry.is_dir() and not entry.name.startswith(".")
        ]

    async def list_page(
        self,
        collection: Collection,
        cursor: Optional[str],
        page_size: int,
    ) -> AssetPage:
        if collection.id not in self._scanned:
            self._scanned[collection.id] = await asyncio.to_thread(self._scan, Path(collection.id))
        assets = self._scanned[collection.id]

        start = int(cursor) if cursor else 0
        end = start + page_size
        has_more = end < len(assets)
        return AssetPage(
            assets=assets[start:end],
            next_cursor=str(end) if has_more else None,
            has_more=has_more,
        )

    def _scan(self, folder: Path) -> List[Asset]:
        found: List[Asset] = []

        for dirpath, dirnames, filenames in os.walk(folder):
            dirnames[:] = [d for d in dirnames if not d.startswith(".")]
            for name in filenames:
                path = Path(dirpath) / name
                ext = path.suffix.lower()
                if ext in PHOTO_EXTENSIONS:
                    media_type = "photo"
                elif ext in VIDEO_EXTENSIONS:
                    media_type = "video"
                else:
                    continue

                width, height = _photo_size(path) if media_type == "photo" else (0, 0)
                found.append(
                    Asset(
                        id=str(path.relative_to(folder)),
                        uri=path.as_uri(),
                        media_type=media_type,
                        created_at=_created_at(path.stat()),
                        width=width,
                        height=height,
                    )
                )

        found.sort(key=lambda a: (a.created_at, a.id))
        return found
