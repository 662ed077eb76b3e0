from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

import pytz

# ================================
# DEFAULTS
# ================================
DEFAULT_PAGE_SIZE = 1000
DEFAULT_MAX_ASSETS = 50_000
DEFAULT_CLASSIFY_INTERVAL = 1.0
DEFAULT_VISION_MODEL = "gpt-4o-mini"
DEFAULT_BUCKET = "memories"
DEFAULT_TABLE = "memories"
DEFAULT_PRIMARY_SUBJECT = "people"
DEFAULT_SECONDARY_SUBJECT = "a golden retriever dog"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    return float(raw)


@dataclass
class Settings:
    """
    Runtime configuration for the import pipeline.

    Everything comes from environment variables (see from_env); the
    dataclass defaults are what an unconfigured local run gets.
    """

    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    bucket: str = DEFAULT_BUCKET
    table: str = DEFAULT_TABLE

    openai_api_key: Optional[str] = None
    vision_model: str = DEFAULT_VISION_MODEL
    primary_subject: str = DEFAULT_PRIMARY_SUBJECT
    secondary_subject: str = DEFAULT_SECONDARY_SUBJECT
    classify_min_interval: float = DEFAULT_CLASSIFY_INTERVAL

    page_size: int = DEFAULT_PAGE_SIZE
    max_assets: int = DEFAULT_MAX_ASSETS
    timezone: str = "UTC"
    media_root: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_key=os.getenv("SUPABASE_ANON_KEY"),
            bucket=os.getenv("SUPABASE_BUCKET", DEFAULT_BUCKET),
            table=os.getenv("MEMORIES_TABLE", DEFAULT_TABLE),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            vision_model=os.getenv("VISION_MODEL", DEFAULT_VISION_MODEL),
            primary_subject=os.getenv("PRIMARY_SUBJECT", DEFAULT_PRIMARY_SUBJECT),
            secondary_subject=os.getenv("SECONDARY_SUBJECT", DEFAULT_SECONDARY_SUBJECT),
            classify_min_interval=_env_float("CLASSIFY_MIN_INTERVAL", DEFAULT_CLASSIFY_INTERVAL),
            page_size=_env_int("IMPORT_PAGE_SIZE", DEFAULT_PAGE_SIZE),
            max_assets=_env_int("IMPORT_MAX_ASSETS", DEFAULT_MAX_ASSETS),
            timezone=os.getenv("IMPORT_TIMEZONE", "UTC"),
            media_root=os.getenv("MEDIA_ROOT"),
        )

    @property
    def tz(self) -> pytz.BaseTzInfo:
        return pytz.timezone(self.timezone)
