"""
Tests for collection listing and the local folder source.
"""

import asyncio
import os
import time

import pytest
from PIL import Image

from memory_import.errors import CollectionNotFound, PermissionDenied
from memory_import.media.source import LocalFolderSource, list_collection_assets
from tests.conftest import FakeSource, make_asset


def _many(n):
    return [make_asset(f"a{i}", "2024-05-01T10:00:00") for i in range(n)]


class TestListCollectionAssets:
    def test_pages_until_source_reports_no_more(self):
        source = FakeSource({"Trips": _many(25)})
        listing = asyncio.run(list_collection_assets(source, "Trips", page_size=10))

        assert [a.id for a in listing.assets] == [f"a{i}" for i in range(25)]
        assert source.page_calls == 3
        assert listing.truncated is False

    def test_name_match_is_case_insensitive(self):
        source = FakeSource({"Us Together": _many(2)})
        listing = asyncio.run(list_collection_assets(source, "us together"))
        assert listing.collection.title == "Us Together"
        assert len(listing.assets) == 2

    def test_name_match_is_exact(self):
        source = FakeSource({"Us Together": _many(2)})
        with pytest.raises(CollectionNotFound):
            asyncio.run(list_collection_assets(source, "Us"))

    def test_padded_name_does_not_match_trimmed_title(self):
        source = FakeSource({"Trip": _many(1)})
        with pytest.raises(CollectionNotFound):
            asyncio.run(list_collection_assets(source, "  trip  "))

    def test_title_with_trailing_space_is_found_by_exact_name(self):
        source = FakeSource({"Trip ": _many(1)})
        listing = asyncio.run(list_collection_assets(source, "trip "))
        assert listing.collection.title == "Trip "

    def test_permission_denied(self):
        source = FakeSource({"Trips": _many(1)}, granted=False)
        with pytest.raises(PermissionDenied):
            asyncio.run(list_collection_assets(source, "Trips"))
        assert source.page_calls == 0

    def test_cap_truncates_and_flags(self):
        source = FakeSource({"Huge": _many(57)})
        listing = asyncio.run(list_collection_assets(source, "Huge", page_size=10, max_assets=30))

        assert len(listing.assets) == 30
        assert listing.truncated is True
        assert source.page_calls == 3

    def test_cap_inside_a_page_never_overshoots(self):
        source = FakeSource({"Huge": _many(57)})
        listing = asyncio.run(list_collection_assets(source, "Huge", page_size=20, max_assets=50))
        assert len(listing.assets) == 50
        assert listing.truncated is True

    def test_exactly_cap_sized_collection_is_not_truncated(self):
        source = FakeSource({"Even": _many(30)})
        listing = asyncio.run(list_collection_assets(source, "Even", page_size=10, max_assets=30))
        assert len(listing.assets) == 30
        assert listing.truncated is False

    def test_empty_collection(self):
        source = FakeSource({"Empty": []})
        listing = asyncio.run(list_collection_assets(source, "Empty"))
        assert listing.assets == []


def _touch(path, mtime, content=b"x"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    os.utime(path, (mtime, mtime))


class TestLocalFolderSource:
    def test_subfolders_are_collections(self, tmp_path):
        (tmp_path / "Us Together").mkdir()
        (tmp_path / "Work").mkdir()
        (tmp_path / ".hidden").mkdir()
        (tmp_path / "loose.jpg").write_bytes(b"x")

        titles = [c.title for c in asyncio.run(LocalFolderSource(tmp_path).list_collections())]
        assert titles == ["Us Together", "Work"]

    def test_missing_root_denies_access(self, tmp_path):
        assert asyncio.run(LocalFolderSource(tmp_path / "nope").request_access()) is False
        assert asyncio.run(LocalFolderSource(tmp_path).request_access()) is True

    def test_lists_media_recursively_sorted_by_time(self, tmp_path):
        album = tmp_path / "Trips"
        base = time.time() - 10_000
        album.mkdir()
        Image.new("RGB", (40, 30)).save(album / "x.jpg")
        os.utime(album / "x.jpg", (base + 30, base + 30))
        _touch(album / "day1" / "clip.MOV", base + 10)
        _touch(album / "day1" / "notes.txt", base)
        _touch(album / ".cache" / "thumb.jpg", base)
        _touch(album / "b.png", base + 20)

        source = LocalFolderSource(tmp_path)
        listing = asyncio.run(list_collection_assets(source, "trips", page_size=2))

        ids = [a.id for a in listing.assets]
        assert ids == [os.path.join("day1", "clip.MOV"), "b.png", "x.jpg"]

        by_id = {a.id: a for a in listing.assets}
        assert by_id[os.path.join("day1", "clip.MOV")].media_type == "video"
        assert by_id["x.jpg"].media_type == "photo"
        assert (by_id["x.jpg"].width, by_id["x.jpg"].height) == (40, 30)
        # not a real PNG: size unknown, still listed
        assert (by_id["b.png"].width, by_id["b.png"].height) == (0, 0)
        assert by_id["x.jpg"].uri.startswith("file://")
