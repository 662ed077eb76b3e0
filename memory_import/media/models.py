from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

MediaType = Literal["photo", "video"]
Confidence = Literal["high", "medium", "low"]

# Highest first; used when several results are merged into one.
CONFIDENCE_ORDER = ("high", "medium", "low")


@dataclass(frozen=True)
class Asset:
    """
    One photo or video from an external media collection.

    Fields:
        id: Identifier assigned by the media source.
        uri: Where the bytes live (file path, file:// or http(s) URL).
        media_type: "photo" or "video".
        created_at: Capture time. Naive values are read as UTC.
        width / height: Pixel dimensions, 0 when unknown.
    """

    id: str
    uri: str
    media_type: MediaType
    created_at: datetime
    width: int = 0
    height: int = 0


@dataclass(frozen=True)
class Collection:
    id: str
    title: str


@dataclass
class AssetPage:
    assets: List[Asset]
    next_cursor: Optional[str] = None
    has_more: bool = False


@dataclass
class MediaListing:
    """All assets of one collection, plus whether the safety cap cut it short."""

    collection: Collection
    assets: List[Asset]
    truncated: bool = False


@dataclass
class Group:
    date_key: str
    assets: List[Asset] = field(default_factory=list)

    @property
    def photos(self) -> List[Asset]:
        return [a for a in self.assets if a.media_type == "photo"]

    @property
    def videos(self) -> List[Asset]:
        return [a for a in self.assets if a.media_type == "video"]


@dataclass(frozen=True)
class ClassificationResult:
    has_primary_subject: bool
    has_secondary_subject: bool
    description: str
    confidence: Confidence = "low"

    @property
    def include(self) -> bool:
        return self.has_primary_subject or self.has_secondary_subject

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "ClassificationResult":
        """Build from the service's camelCase JSON (already schema-checked)."""
        return cls(
            has_primary_subject=bool(raw["hasPrimarySubject"]),
            has_secondary_subject=bool(raw["hasSecondarySubject"]),
            description=str(raw["description"]),
            confidence=raw["confidence"],
        )


@dataclass(frozen=True)
class UploadedMedia:
    asset_id: str
    remote_url: str
    media_type: MediaType


@dataclass
class MemoryRecord:
    owner_group_id: str
    created_by: str
    title: str
    description: str
    photo_urls: List[str]
    video_urls: List[str]
    tags: List[str]
    date: datetime
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Row payload for the record store (timestamps as ISO strings)."""
        return {
            "owner_group_id": self.owner_group_id,
            "created_by": self.created_by,
            "title": self.title,
            "description": self.description,
            "photo_urls": list(self.photo_urls),
            "video_urls": list(self.video_urls),
            "tags": list(self.tags),
            "date": self.date.isoformat(),
            "created_at": self.created_at.isoformat(),
        }


# ================================
# PROGRESS / RESULT CONTRACT
# ================================
@dataclass(frozen=True)
class BatchProgress:
    total: int
    processed: int = 0
    created: int = 0
    failed: int = 0
    current_item: str = ""
    status: str = ""


@dataclass(frozen=True)
class ItemError:
    item: str
    error: str


Outcome = Literal["completed", "cancelled"]


@dataclass(frozen=True)
class BatchResult:
    total_processed: int
    memories_created: int
    errors: List[ItemError] = field(default_factory=list)
    outcome: Outcome = "completed"
    truncated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_processed": self.total_processed,
            "memories_created": self.memories_created,
            "errors": [{"item": e.item, "error": e.error} for e in self.errors],
            "outcome": self.outcome,
            "truncated": self.truncated,
        }


# ================================
# EVENT STREAM
# ================================
@dataclass(frozen=True)
class ProgressEvent:
    progress: BatchProgress
    kind: Literal["progress"] = "progress"


@dataclass(frozen=True)
class ItemErrorEvent:
    item: str
    error: Exception
    kind: Literal["item_error"] = "item_error"


@dataclass(frozen=True)
class CompletionEvent:
    result: BatchResult
    kind: Literal["completion"] = "completion"


BatchEvent = Union[ProgressEvent, ItemErrorEvent, CompletionEvent]
