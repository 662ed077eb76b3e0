import logging
import os
from typing import Optional

from flask import Flask

from memory_import.api.imports import api
from memory_import.config import Settings
from memory_import.media.pipeline import BatchImporter
from memory_import.media.records import SupabaseRecordStore
from memory_import.media.source import LocalFolderSource
from memory_import.media.storage import SupabaseBlobStorage

# ================================
# WIRING
# ================================
def build_importer(settings: Settings, media_root: Optional[str] = None) -> BatchImporter:
    """Importer over a local media folder, Supabase storage and the Supabase memories table."""
    root = media_root or settings.media_root
    if not root:
        raise RuntimeError("MEDIA_ROOT is not set")

    return BatchImporter.from_settings(
        settings,
        source=LocalFolderSource(root),
        storage=SupabaseBlobStorage(settings.supabase_url, settings.supabase_key, settings.bucket),
        record_store=SupabaseRecordStore(settings.table),
    )


def create_app(importer: Optional[BatchImporter] = None) -> Flask:
    app = Flask(__name__)
    app.config["IMPORTER"] = importer or build_importer(Settings.from_env())
    app.register_blueprint(api)
    return app


# ================================
# START
# ================================
if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s:%(message)s")
    port = int(os.environ.get("PORT", 10000))
    create_app().run(host="0.0.0.0", port=port)
