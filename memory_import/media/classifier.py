"""
Content classifier: decides whether a day group is worth importing.

One representative asset per group is sent to a vision model, which says
whether the primary subject (people, by default) or the secondary subject
(a golden retriever, by default) is in the picture. Videos are judged on a
few extracted frames.

Classification never raises. Anything that goes wrong (no key, unreadable
image, payload too large, HTTP error, bad JSON) becomes the soft
"Analysis failed" result, which excludes the group.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
import os
from typing import Any, Awaitable, Callable, Dict, List, Optional

from jsonschema import ValidationError, validate
from openai import AsyncOpenAI

from memory_import.config import (
    DEFAULT_CLASSIFY_INTERVAL,
    DEFAULT_PRIMARY_SUBJECT,
    DEFAULT_SECONDARY_SUBJECT,
    DEFAULT_VISION_MODEL,
    Settings,
)
from memory_import.errors import ClassificationFailure
from memory_import.media.imaging import extract_video_frames, prepare_for_analysis
from memory_import.media.models import CONFIDENCE_ORDER, Asset, ClassificationResult, Group
from memory_import.media.storage import load_media_file, local_media_path
from memory_import.utils.throttle import RateLimiter

ANALYSIS_FAILED = "Analysis failed"
NO_API_KEY = "API key not configured"
FAILURE_DESCRIPTIONS = {ANALYSIS_FAILED, NO_API_KEY}

MAX_PAYLOAD_BYTES = 5 * 1024 * 1024
MAX_OUTPUT_TOKENS = 200

SCHEMA_PATH = os.path.join(os.path.dirname(__file__), "schemas", "classification.json")

INSTRUCTION = """Respond ONLY with valid JSON (no markdown):
{{
  "hasPrimarySubject": true/false,
  "hasSecondarySubject": true/false,
  "description": "brief scene description",
  "confidence": "high"/"medium"/"low"
}}

Criteria:
- hasPrimarySubject: true if {primary} can be seen
- hasSecondarySubject: ONLY true if you see {secondary}
- confidence: high=clear/obvious, medium=likely but not certain, low=ambiguous"""


_schema: Optional[Dict[str, Any]] = None


def load_schema() -> Dict[str, Any]:
    global _schema
    if _schema is None:
        with open(SCHEMA_PATH, "r", encoding="utf-8") as f:
            _schema = json.load(f)
    return _schema


def soft_failure(description: str = ANALYSIS_FAILED) -> ClassificationResult:
    return ClassificationResult(
        has_primary_subject=False,
        has_secondary_subject=False,
        description=description,
        confidence="low",
    )


def parse_response(content: Optional[str]) -> ClassificationResult:
    """
    Turn the model's reply into a ClassificationResult.

    Raises:
        ClassificationFailure: empty reply, invalid JSON, or a JSON object
        that doesn't match schemas/classification.json.
    """
    if not content:
        raise ClassificationFailure("Empty response from classifier")

    try:
        raw = json.loads(content)
    except json.JSONDecodeError as e:
        raise ClassificationFailure(f"Invalid JSON from classifier: {e}") from e

    try:
        validate(instance=raw, schema=load_schema())
    except ValidationError as e:
        raise ClassificationFailure(f"Classifier response failed validation: {e.message}") from e

    return ClassificationResult.from_raw(raw)


def merge_frame_results(results: List[ClassificationResult]) -> ClassificationResult:
    """
    Fold per-frame results into one verdict for the whole video:
    a subject counts if any frame shows it, confidence is the best seen,
    and the description is the first real one.
    """
    if not results:
        return soft_failure()

    confidence = "low"
    for level in CONFIDENCE_ORDER:
        if any(r.confidence == level for r in results):
            confidence = level
            break

    descriptions = [r.description for r in results if r.description not in FAILURE_DESCRIPTIONS]

    return ClassificationResult(
        has_primary_subject=any(r.has_primary_subject for r in results),
        has_secondary_subject=any(r.has_secondary_subject for r in results),
        description=f"Video: {descriptions[0]}" if descriptions else "Video analyzed",
        confidence=confidence,
    )


def pick_representative(group: Group) -> Optional[Asset]:
    """First photo of the day if there is one, otherwise the first video."""
    photos = group.photos
    if photos:
        return photos[0]
    videos = group.videos
    return videos[0] if videos else None


class ContentClassifier:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_VISION_MODEL,
        primary_subject: str = DEFAULT_PRIMARY_SUBJECT,
        secondary_subject: str = DEFAULT_SECONDARY_SUBJECT,
        limiter: Optional[RateLimiter] = None,
        client: Optional[AsyncOpenAI] = None,
        loader: Callable[[str], Awaitable[bytes]] = load_media_file,
        frame_extractor: Callable[[str], Awaitable[List[bytes]]] = extract_video_frames,
        max_payload_bytes: int = MAX_PAYLOAD_BYTES,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.instruction = INSTRUCTION.format(primary=primary_subject, secondary=secondary_subject)
        self.limiter = limiter or RateLimiter(DEFAULT_CLASSIFY_INTERVAL)
        self.loader = loader
        self.frame_extractor = frame_extractor
        self.max_payload_bytes = max_payload_bytes
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "ContentClassifier":
        return cls(
            api_key=settings.openai_api_key,
            model=settings.vision_model,
            primary_subject=settings.primary_subject,
            secondary_subject=settings.secondary_subject,
            limiter=RateLimiter(settings.classify_min_interval),
        )

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _get_client(self) -> AsyncOpenAI:
        """Created on first use so an unconfigured classifier can still be built."""
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    # ------------------------------------------------------------------ #
    # Public entry points (never raise)
    # ------------------------------------------------------------------ #
    async def classify(self, asset: Asset) -> ClassificationResult:
        if asset.media_type == "video":
            return await self.classify_video(asset.uri)
        return await self.classify_image(asset.uri)

    async def classify_group(self, group: Group) -> ClassificationResult:
        representative = pick_representative(group)
        if representative is None:
            return soft_failure()
        return await self.classify(representative)

    async def classify_image(self, uri: str) -> ClassificationResult:
        if not self.configured:
            logging.warning("[CLASSIFIER] No API key provided, skipping analysis")
            return soft_failure(NO_API_KEY)

        try:
            data = await self.loader(uri)
        except Exception as e:  # noqa: BLE001
            logging.error("[CLASSIFIER ERROR] Could not read %s: %s", uri, e)
            return soft_failure()

        return await self.classify_bytes(data)

    async def classify_video(self, uri: str) -> ClassificationResult:
        if not self.configured:
            logging.warning("[CLASSIFIER] No API key provided, skipping analysis")
            return soft_failure(NO_API_KEY)

        try:
            frames = await self.frame_extractor(local_media_path(uri))
        except Exception as e:  # noqa: BLE001
            logging.error("[CLASSIFIER ERROR] Video frames for %s: %s", uri, e)
            return soft_failure()

        logging.info("[CLASSIFIER] Analyzing %d frames of %s", len(frames), uri)
        results = [await self.classify_bytes(frame) for frame in frames]
        return merge_frame_results(results)

    async def classify_bytes(self, data: bytes) -> ClassificationResult:
        try:
            return await self._analyze(data)
        except Exception as e:  # noqa: BLE001
            logging.error("[CLASSIFIER ERROR] %s", e)
            return soft_failure()

    # ------------------------------------------------------------------ #
    # Service call
    # ------------------------------------------------------------------ #
    async def _analyze(self, data: bytes) -> ClassificationResult:
        prepared = await asyncio.to_thread(prepare_for_analysis, data)
        if len(prepared) > self.max_payload_bytes:
            raise ClassificationFailure(
                f"Image exceeds {self.max_payload_bytes // (1024 * 1024)}MB limit ({len(prepared)} bytes)"
            )

        image_url = "data:image/jpeg;base64," + base64.b64encode(prepared).decode("ascii")
        client = self._get_client()

        await self.limiter.wait()
        response = await client.chat.completions.create(
            model=self.model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "image_url", "image_url": {"url": image_url}},
                        {"type": "text", "text": self.instruction},
                    ],
                }
            ],
            max_tokens=MAX_OUTPUT_TOKENS,
            temperature=0,
            response_format={"type": "json_object"},
        )

        return parse_response(response.choices[0].message.content)
