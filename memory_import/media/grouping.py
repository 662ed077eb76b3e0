"""
Date grouping: same local calendar day = same memory.
"""

from __future__ import annotations

from typing import Dict, Iterable

from memory_import.media.models import Asset, Group
from memory_import.utils.time import UTC, day_key


def partition(assets: Iterable[Asset], tz=UTC) -> Dict[str, Group]:
    """
    Split assets into day groups keyed by YYYY-MM-DD in ``tz``.

    Pure function. Groups come back in the order their first asset was
    seen, and assets keep their input order inside each group.
    """
    grouped: Dict[str, Group] = {}

    for asset in assets:
        key = day_key(asset.created_at, tz)
        group = grouped.get(key)
        if group is None:
            group = grouped[key] = Group(date_key=key)
        group.assets.append(asset)

    return grouped
