"""
Record builder: one memory per imported day.
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime
from typing import Any, List, Optional, Protocol, Sequence

from memory_import.errors import PersistenceFailure
from memory_import.media.models import Group, MemoryRecord, UploadedMedia
from memory_import.services.supabase import insert_record
from memory_import.utils.time import UTC, local_midnight, long_date, utc_now

PROVENANCE_TAG = "batch-import"


class RecordStore(Protocol):
    async def create(self, record: MemoryRecord) -> str: ...


def slugify(name: str) -> str:
    return re.sub(r"\s+", "-", name.strip().lower())


def _count(n: int, noun: str) -> str:
    return f"{n} {noun}" if n == 1 else f"{n} {noun}s"


def describe_counts(photos: int, videos: int) -> str:
    return f"{_count(photos, 'photo')}, {_count(videos, 'video')}"


def build_record(
    group: Group,
    uploaded: Sequence[UploadedMedia],
    owner_id: str,
    created_by: str,
    collection_name: str,
    tz=UTC,
    now: Optional[datetime] = None,
) -> MemoryRecord:
    """
    Assemble the memory for one day from whatever was uploaded.

    The description counts every photo and video taken that day, including
    any whose upload failed; the URL lists hold only what made it.
    """
    photo_urls = [m.remote_url for m in uploaded if m.media_type == "photo"]
    video_urls = [m.remote_url for m in uploaded if m.media_type == "video"]
    date = local_midnight(group.date_key, tz)

    return MemoryRecord(
        owner_group_id=owner_id,
        created_by=created_by,
        title=f"Memory from {long_date(date)}",
        description=describe_counts(len(group.photos), len(group.videos)),
        photo_urls=photo_urls,
        video_urls=video_urls,
        tags=[PROVENANCE_TAG, slugify(collection_name)],
        date=date,
        created_at=now or utc_now(),
    )


async def persist_record(store: RecordStore, group: Group, record: MemoryRecord) -> str:
    """
    Save a record, turning any store error into PersistenceFailure keyed
    by the group's day.
    """
    try:
        return await store.create(record)
    except PersistenceFailure:
        raise
    except Exception as e:  # noqa: BLE001
        raise PersistenceFailure(group.date_key, str(e) or type(e).__name__) from e


class SupabaseRecordStore:
    def __init__(self, table: str, client: Any = None) -> None:
        self.table = table
        self.client = client

    async def create(self, record: MemoryRecord) -> str:
        response, error = await asyncio.to_thread(insert_record, self.table, record.to_dict(), self.client)
        if error:
            raise PersistenceFailure(record.date.strftime("%Y-%m-%d"), error)

        rows: List[dict] = getattr(response, "data", None) or []
        record_id = str(rows[0].get("id", "")) if rows else ""
        logging.info("[RECORDS] Created memory %s (%s)", record_id or "?", record.title)
        return record_id
