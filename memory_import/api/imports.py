from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request

from memory_import.errors import CollectionNotFound, PermissionDenied
from memory_import.media.pipeline import BatchImporter, BatchOptions

api = Blueprint("api", __name__)


def _error(message: str, status: int) -> Any:
    return jsonify({"ok": False, "error": message}), status


@api.route("/", methods=["GET"])
def healthcheck() -> str:
    return "memory import running"


@api.route("/imports", methods=["POST"])
def start_import() -> Any:
    """
    Run one batch import and return its BatchResult.

    Body:
        {"collection_name": str, "owner_id": str,
         "classify": bool (optional), "created_by": str (optional)}

    The request blocks until the import finishes.
    """
    body: Dict[str, Any] = request.get_json(silent=True) or {}

    # collection titles are matched as given, surrounding spaces included
    collection_name = str(body.get("collection_name") or "")
    owner_id = str(body.get("owner_id") or "").strip()
    if not collection_name.strip() or not owner_id:
        return _error("collection_name and owner_id are required", 400)

    classify = body.get("classify", False)
    if not isinstance(classify, bool):
        return _error("classify must be true or false", 400)

    importer: BatchImporter = current_app.config["IMPORTER"]
    options = BatchOptions(
        collection_name=collection_name,
        owner_id=owner_id,
        classify_enabled=classify,
        created_by=body.get("created_by") or None,
        on_error=lambda error, item: logging.warning("[IMPORT] %s: %s", item, error),
    )

    try:
        result = asyncio.run(importer.run(options))
    except PermissionDenied as e:
        return _error(str(e), 403)
    except CollectionNotFound as e:
        return _error(str(e), 404)

    return jsonify({"ok": True, "result": result.to_dict()})
