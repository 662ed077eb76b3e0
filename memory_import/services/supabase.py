from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional, Tuple

from supabase import Client, create_client

# ================================
# LAZY SUPABASE CLIENT
# ================================
_client: Optional[Client] = None


def get_client() -> Client:
    """
    Create the shared client on first use so importing this module (tests,
    CLI --help) doesn't need credentials.
    """
    global _client
    if _client is None:
        url = os.getenv("SUPABASE_URL")
        key = os.getenv("SUPABASE_ANON_KEY")
        if not url or not key:
            logging.error("SUPABASE_URL / SUPABASE_ANON_KEY are not set; record store is unavailable.")
            raise RuntimeError("SUPABASE_URL / SUPABASE_ANON_KEY are not set")
        _client = create_client(url, key)
    return _client


# ================================
# CORE INSERT
# ================================
def insert_record(table: str, data: Dict[str, Any], client: Optional[Client] = None) -> Tuple[Any, Optional[str]]:
    """
    Insert one row into Supabase.
    Returns:
        (response, error_str)
    """
    try:
        response = (client or get_client()).table(table).insert(data).execute()
        return response, None
    except Exception as e:  # noqa: BLE001
        logging.error("[SUPABASE ERROR %s] %s", table, e)
        return None, str(e)
