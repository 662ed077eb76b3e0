"""
Batch media import pipeline.

    collection → assets → day groups → [classify one sample] →
    upload each asset → one memory per day → BatchResult

Everything runs in one sequential flow. Only the two listing errors
(PermissionDenied, CollectionNotFound) abort a run; every other failure is
recorded against its asset or day and the run carries on.

Not idempotent: running the same import twice uploads everything twice and
creates a second memory for every day.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AsyncIterator, Callable, List, Optional

from memory_import.config import DEFAULT_MAX_ASSETS, DEFAULT_PAGE_SIZE, Settings
from memory_import.errors import PersistenceFailure, UploadFailure
from memory_import.media.classifier import ContentClassifier
from memory_import.media.grouping import partition
from memory_import.media.models import (
    BatchEvent,
    BatchProgress,
    BatchResult,
    CompletionEvent,
    ItemError,
    ItemErrorEvent,
    ProgressEvent,
    UploadedMedia,
)
from memory_import.media.records import RecordStore, build_record, persist_record
from memory_import.media.source import MediaSource, list_collection_assets
from memory_import.media.storage import BlobStorage, load_media_file
from memory_import.media.upload import Loader, UploadCoordinator
from memory_import.utils.time import UTC


class CancelToken:
    """Set from anywhere; the importer looks at it between groups and uploads."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass
class BatchOptions:
    """
    One import run.

    Fields:
        collection_name: Title of the collection to import (case-insensitive).
        owner_id: Who the memories belong to (also the storage prefix).
        classify_enabled: Only import days whose sample passes the classifier.
        created_by: Author recorded on each memory; defaults to owner_id.
        on_progress: Called with a BatchProgress snapshot after each step.
        on_error: Called with (error, item) for every recovered failure; item
            is the asset URI for uploads and the day key for groups.
        on_upload_progress: Called with (asset_id, fraction) during uploads.
        cancel_token: Stop early, keeping what was done so far.
    """

    collection_name: str
    owner_id: str
    classify_enabled: bool = False
    created_by: Optional[str] = None
    on_progress: Optional[Callable[[BatchProgress], None]] = None
    on_error: Optional[Callable[[Exception, str], None]] = None
    on_upload_progress: Optional[Callable[[str, float], None]] = None
    cancel_token: Optional[CancelToken] = None

    @property
    def cancelled(self) -> bool:
        return self.cancel_token is not None and self.cancel_token.cancelled


class BatchImporter:
    def __init__(
        self,
        source: MediaSource,
        storage: BlobStorage,
        record_store: RecordStore,
        classifier: Optional[ContentClassifier] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_assets: int = DEFAULT_MAX_ASSETS,
        tz=UTC,
        loader: Loader = load_media_file,
    ) -> None:
        self.source = source
        self.storage = storage
        self.record_store = record_store
        self.classifier = classifier or ContentClassifier()
        self.page_size = page_size
        self.max_assets = max_assets
        self.tz = tz
        self.loader = loader

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        source: MediaSource,
        storage: BlobStorage,
        record_store: RecordStore,
    ) -> "BatchImporter":
        return cls(
            source=source,
            storage=storage,
            record_store=record_store,
            classifier=ContentClassifier.from_settings(settings),
            page_size=settings.page_size,
            max_assets=settings.max_assets,
            tz=settings.tz,
        )

    # ------------------------------------------------------------------ #
    # Callback surface
    # ------------------------------------------------------------------ #
    async def run(self, options: BatchOptions) -> BatchResult:
        """
        Run an import to the end and return its summary.

        Progress and recovered errors are passed to the callbacks on
        ``options`` as they happen. PermissionDenied / CollectionNotFound
        are raised before any callback fires.
        """
        result: Optional[BatchResult] = None

        async for event in self.stream(options):
            if isinstance(event, ProgressEvent):
                if options.on_progress:
                    options.on_progress(event.progress)
            elif isinstance(event, ItemErrorEvent):
                if options.on_error:
                    options.on_error(event.error, event.item)
            else:
                result = event.result

        if result is None:
            raise RuntimeError("import stream ended without a completion event")
        return result

    # ------------------------------------------------------------------ #
    # Event stream
    # ------------------------------------------------------------------ #
    async def stream(self, options: BatchOptions) -> AsyncIterator[BatchEvent]:
        """
        Run an import, yielding ProgressEvent / ItemErrorEvent as it goes and
        a single CompletionEvent at the end.
        """
        listing = await list_collection_assets(
            self.source,
            options.collection_name,
            page_size=self.page_size,
            max_assets=self.max_assets,
        )
        groups = partition(listing.assets, self.tz)
        uploader = UploadCoordinator(self.storage, options.owner_id, loader=self.loader)
        created_by = options.created_by or options.owner_id

        total = len(groups)
        processed = 0
        created = 0
        errors: List[ItemError] = []
        outcome = "completed"

        def progress(item: str, status: str) -> ProgressEvent:
            return ProgressEvent(
                BatchProgress(
                    total=total,
                    processed=processed,
                    created=created,
                    failed=len(errors),
                    current_item=item,
                    status=status,
                )
            )

        logging.info(
            "[BATCH] %d items in %d day groups from %r",
            len(listing.assets),
            total,
            listing.collection.title,
        )

        for date_key, group in groups.items():
            if options.cancelled:
                outcome = "cancelled"
                break

            yield progress(date_key, f"Processing {len(group.assets)} items from {date_key}...")

            try:
                if options.classify_enabled:
                    verdict = await self.classifier.classify_group(group)
                    if not verdict.include:
                        logging.info("[BATCH] Skipping %s - %s", date_key, verdict.description)
                        processed += 1
                        yield progress(date_key, f"Skipped {date_key}")
                        continue

                uploaded: List[UploadedMedia] = []
                for asset in group.assets:
                    if options.cancelled:
                        outcome = "cancelled"
                        break

                    try:
                        uploaded.append(
                            await uploader.upload(asset, on_progress=self._asset_progress(options, asset.id))
                        )
                    except UploadFailure as e:
                        errors.append(ItemError(item=e.uri, error=e.message))
                        yield ItemErrorEvent(item=e.uri, error=e)

                if not uploaded:
                    status = f"No media uploaded for {date_key}"
                else:
                    record = build_record(
                        group,
                        uploaded,
                        owner_id=options.owner_id,
                        created_by=created_by,
                        collection_name=options.collection_name,
                        tz=self.tz,
                    )
                    try:
                        await persist_record(self.record_store, group, record)
                    except PersistenceFailure as e:
                        logging.error("[BATCH] %s", e)
                        errors.append(ItemError(item=date_key, error=e.message))
                        yield ItemErrorEvent(item=date_key, error=e)
                        status = f"Could not save memory for {date_key}"
                    else:
                        created += 1
                        status = f"Created memory for {date_key}"

            except Exception as e:  # noqa: BLE001
                logging.exception("[BATCH] Error processing %s: %s", date_key, e)
                errors.append(ItemError(item=date_key, error=str(e) or type(e).__name__))
                yield ItemErrorEvent(item=date_key, error=e)
                status = f"Failed to process {date_key}"

            processed += 1
            yield progress(date_key, status)

            if outcome == "cancelled":
                break

        result = BatchResult(
            total_processed=processed,
            memories_created=created,
            errors=errors,
            outcome=outcome,
            truncated=listing.truncated,
        )
        logging.info(
            "[BATCH] %s: %d/%d groups, %d memories created, %d errors",
            outcome,
            processed,
            total,
            created,
            len(errors),
        )
        yield CompletionEvent(result)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    @staticmethod
    def _asset_progress(options: BatchOptions, asset_id: str) -> Optional[Callable[[float], None]]:
        if options.on_upload_progress is None:
            return None
        callback = options.on_upload_progress
        return lambda fraction: callback(asset_id, fraction)
