"""
Media storage utilities.

- load_media_file(): read an asset's bytes from wherever its URI points.
- BlobStorage: the durable byte store the importer uploads into.
- SupabaseBlobStorage: BlobStorage over the Supabase Storage REST API.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional, Protocol
from urllib.parse import quote, unquote, urlparse

import requests

# bytes_transferred, total_bytes
ByteProgress = Callable[[int, int], None]

CHUNK_SIZE = 64 * 1024


def _local_path(uri: str) -> Path:
    if uri.startswith("file://"):
        return Path(unquote(urlparse(uri).path))
    return Path(uri)


def _read_media(uri: str) -> bytes:
    if uri.startswith(("http://", "https://")):
        response = requests.get(uri, timeout=60)
        response.raise_for_status()
        return response.content
    return _local_path(uri).read_bytes()


async def load_media_file(uri: str) -> bytes:
    """
    Load raw media bytes for a file path, file:// URI or http(s) URL.

    Raises OSError / requests.RequestException on failure.
    """
    return await asyncio.to_thread(_read_media, uri)


def local_media_path(uri: str) -> str:
    """What to hand to ffmpeg: a filesystem path, or the URL unchanged."""
    if uri.startswith(("http://", "https://")):
        return uri
    return str(_local_path(uri))


class BlobStorage(Protocol):
    async def upload(
        self,
        data: bytes,
        path: str,
        content_type: str,
        on_progress: Optional[ByteProgress] = None,
    ) -> str:
        """Store ``data`` at ``path`` and return its durable URL."""
        ...


class _ProgressReader:
    """
    File-like request body that reports how much has been read.

    requests/http.client send file-like bodies block by block through
    read(); __len__ lets requests set Content-Length up front.
    """

    def __init__(self, data: bytes, callback: Optional[ByteProgress]) -> None:
        self._data = data
        self._offset = 0
        self._callback = callback

    def __len__(self) -> int:
        return len(self._data)

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            size = len(self._data) - self._offset
        size = min(size, CHUNK_SIZE)
        chunk = self._data[self._offset:self._offset + size]
        self._offset += len(chunk)
        if chunk and self._callback is not None:
            self._callback(self._offset, len(self._data))
        return chunk


class SupabaseBlobStorage:
    """
    Upload into a Supabase Storage bucket and return the public object URL.
    The bucket must be public for the returned URL to be readable.
    """

    def __init__(self, url: str, api_key: str, bucket: str, timeout: float = 120) -> None:
        if not url or not api_key:
            raise RuntimeError("SUPABASE_URL / SUPABASE_ANON_KEY are not set")
        self.base_url = url.rstrip("/")
        self.api_key = api_key
        self.bucket = bucket
        self.timeout = timeout

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{quote(path)}"

    def _post(self, data: bytes, path: str, content_type: str, callback: Optional[ByteProgress]) -> str:
        url = f"{self.base_url}/storage/v1/object/{self.bucket}/{quote(path)}"
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": content_type,
            "x-upsert": "false",
        }

        response = requests.post(
            url,
            headers=headers,
            data=_ProgressReader(data, callback),
            timeout=self.timeout,
        )
        if response.status_code not in (200, 201):
            raise RuntimeError(f"Storage upload failed: {response.status_code} {response.text}")

        return self.public_url(path)

    async def upload(
        self,
        data: bytes,
        path: str,
        content_type: str,
        on_progress: Optional[ByteProgress] = None,
    ) -> str:
        callback = None
        if on_progress is not None:
            loop = asyncio.get_running_loop()

            # the body is read on a worker thread; report back on the loop
            def callback(sent: int, total: int) -> None:
                loop.call_soon_threadsafe(on_progress, sent, total)

        url = await asyncio.to_thread(self._post, data, path, content_type, callback)
        logging.info("[STORAGE] Uploaded %d bytes to %s", len(data), path)
        return url
