"""
In-memory stand-ins for the pipeline's collaborators.
"""

import io
from datetime import datetime
from typing import Dict, List, Optional

import pytest
from PIL import Image

from memory_import.media.classifier import ContentClassifier
from memory_import.media.models import Asset, AssetPage, ClassificationResult, Collection
from memory_import.utils.time import UTC


def make_asset(asset_id, when, media_type="photo", uri=None):
    if isinstance(when, str):
        when = datetime.fromisoformat(when)
    if when.tzinfo is None:
        when = UTC.localize(when)
    return Asset(
        id=asset_id,
        uri=uri or f"mem://{asset_id}",
        media_type=media_type,
        created_at=when,
        width=100,
        height=80,
    )


def jpeg_bytes(size=(64, 48), color=(200, 120, 40)) -> bytes:
    out = io.BytesIO()
    Image.new("RGB", size, color).save(out, format="JPEG")
    return out.getvalue()


class FakeSource:
    def __init__(self, collections: Optional[Dict[str, List[Asset]]] = None, granted: bool = True):
        self.collections = collections or {}
        self.granted = granted
        self.page_calls = 0

    async def request_access(self):
        return self.granted

    async def list_collections(self):
        return [Collection(id=name, title=name) for name in self.collections]

    async def list_page(self, collection, cursor, page_size):
        self.page_calls += 1
        assets = self.collections[collection.id]
        start = int(cursor) if cursor else 0
        end = start + page_size
        has_more = end < len(assets)
        return AssetPage(assets=assets[start:end], next_cursor=str(end) if has_more else None, has_more=has_more)


class FakeStorage:
    """Keeps uploads in a dict. Calls whose 0-based index is in ``fail_calls`` raise."""

    def __init__(self, fail_calls=()):
        self.objects: Dict[str, bytes] = {}
        self.fail_calls = set(fail_calls)
        self.calls = 0

    async def upload(self, data, path, content_type, on_progress=None):
        index = self.calls
        self.calls += 1
        if index in self.fail_calls:
            raise ConnectionError("storage unavailable")
        if on_progress:
            on_progress(len(data) // 2, len(data))
            on_progress(len(data), len(data))
        self.objects[path] = data
        return f"https://blobs.example/{path}"


class FakeRecordStore:
    def __init__(self, fail=False):
        self.records = []
        self.fail = fail

    async def create(self, record):
        if self.fail:
            raise ConnectionError("record store unavailable")
        self.records.append(record)
        return f"rec-{len(self.records)}"


class FakeClassifier(ContentClassifier):
    """Answers from a date-key → verdict table instead of calling a service."""

    def __init__(self, verdicts: Dict[str, bool]):
        super().__init__(api_key="test")
        self.verdicts = verdicts
        self.calls: List[Asset] = []

    async def classify(self, asset):
        self.calls.append(asset)
        hit = self.verdicts.get(asset.created_at.strftime("%Y-%m-%d"), False)
        return ClassificationResult(hit, False, "scene" if hit else "Analysis failed", "high" if hit else "low")


async def fake_loader(uri: str) -> bytes:
    """Photos decode as JPEG; anything with 'broken' in the URI fails to read."""
    if "broken" in uri:
        raise OSError(f"cannot read {uri}")
    if uri.lower().endswith((".mp4", ".mov", ".m4v")) or "video" in uri:
        return b"VIDEO" + uri.encode()
    return jpeg_bytes()


@pytest.fixture
def loader():
    return fake_loader
