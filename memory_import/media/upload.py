from __future__ import annotations

import asyncio
import logging
import mimetypes
import secrets
import time
from pathlib import PurePosixPath
from typing import Awaitable, Callable, Optional
from urllib.parse import urlparse

from memory_import.errors import UploadFailure
from memory_import.media.imaging import optimize_image
from memory_import.media.models import Asset, UploadedMedia
from memory_import.media.storage import BlobStorage, load_media_file

# fraction of the current asset's bytes sent, 0.0 - 1.0
UploadProgress = Callable[[float], None]
Loader = Callable[[str], Awaitable[bytes]]

# not every platform mimetypes table knows these
VIDEO_CONTENT_TYPES = {
    ".mp4": "video/mp4",
    ".mov": "video/quicktime",
    ".m4v": "video/x-m4v",
}


def _video_extension(uri: str) -> str:
    suffix = PurePosixPath(urlparse(uri).path).suffix.lower()
    return suffix or ".mp4"


def video_content_type(extension: str) -> str:
    return (
        VIDEO_CONTENT_TYPES.get(extension)
        or mimetypes.guess_type(f"video{extension}")[0]
        or "application/octet-stream"
    )


def storage_path(owner_id: str, extension: str) -> str:
    filename = f"{int(time.time() * 1000)}_{secrets.token_hex(4)}{extension}"
    return f"owners/{owner_id}/memories/{filename}"


class UploadCoordinator:
    """
    Moves one asset at a time into blob storage.

    Photos are shrunk and recompressed first; videos are sent untouched.
    Every failure on the way (read, decode, transfer) comes out as
    UploadFailure for that asset.
    """

    def __init__(
        self,
        storage: BlobStorage,
        owner_id: str,
        loader: Loader = load_media_file,
    ) -> None:
        self.storage = storage
        self.owner_id = owner_id
        self.loader = loader

    async def upload(self, asset: Asset, on_progress: Optional[UploadProgress] = None) -> UploadedMedia:
        try:
            data = await self.loader(asset.uri)

            if asset.media_type == "photo":
                data = await asyncio.to_thread(optimize_image, data)
                extension, content_type = ".jpg", "image/jpeg"
            else:
                extension = _video_extension(asset.uri)
                content_type = video_content_type(extension)

            def report(sent: int, total: int) -> None:
                if on_progress is not None and total:
                    on_progress(sent / total)

            url = await self.storage.upload(
                data,
                storage_path(self.owner_id, extension),
                content_type,
                on_progress=report,
            )
        except UploadFailure:
            raise
        except Exception as e:  # noqa: BLE001
            logging.error("[UPLOAD] %s (%s) failed: %s", asset.id, asset.media_type, e)
            raise UploadFailure(asset.id, str(e) or type(e).__name__, uri=asset.uri) from e

        logging.info("[UPLOAD] %s -> %s", asset.id, url)
        return UploadedMedia(asset_id=asset.id, remote_url=url, media_type=asset.media_type)
