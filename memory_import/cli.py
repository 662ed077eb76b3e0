"""
Import a folder of photos and videos as memories.

Usage:
    memory-import --media-root ~/Pictures/Exports --collection "Us Together" \\
        --owner-id couple123 --user-id user123 [--classify]

Each subfolder of --media-root is a collection; --collection picks one by
name (case-insensitive). One memory is created per calendar day.
Supabase and OpenAI credentials come from the environment.
"""

import argparse
import asyncio
import logging
import sys

from tqdm import tqdm

from memory_import.config import Settings
from memory_import.errors import CollectionNotFound, PermissionDenied
from memory_import.main import build_importer
from memory_import.media.pipeline import BatchOptions


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Batch-import a media collection as memories.")
    parser.add_argument("--collection", required=True, help="Collection (subfolder) name")
    parser.add_argument("--owner-id", required=True, help="Owner the memories belong to")
    parser.add_argument("--user-id", help="Author recorded on each memory (default: owner id)")
    parser.add_argument("--media-root", help="Folder holding the collections (default: $MEDIA_ROOT)")
    parser.add_argument("--classify", action="store_true", help="Only import days that pass the classifier")
    parser.add_argument("--timezone", help="Zone used to split days (default: $IMPORT_TIMEZONE or UTC)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s:%(message)s",
    )

    settings = Settings.from_env()
    if args.timezone:
        settings.timezone = args.timezone
    importer = build_importer(settings, media_root=args.media_root)

    bar = None

    def on_progress(progress):
        nonlocal bar
        if bar is None:
            bar = tqdm(total=progress.total, unit="day")
        bar.n = progress.processed
        bar.set_postfix(created=progress.created, failed=progress.failed)
        bar.set_description(progress.current_item)

    def on_error(error, item):
        tqdm.write(f"Error with {item}: {error}")

    options = BatchOptions(
        collection_name=args.collection,
        owner_id=args.owner_id,
        classify_enabled=args.classify,
        created_by=args.user_id,
        on_progress=on_progress,
        on_error=on_error,
    )

    try:
        result = asyncio.run(importer.run(options))
    except (PermissionDenied, CollectionNotFound) as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        return 1
    finally:
        if bar is not None:
            bar.close()

    print("=" * 50)
    print(f"Import {result.outcome}!")
    print(f"   Days processed:   {result.total_processed}")
    print(f"   Memories created: {result.memories_created}")
    print(f"   Errors:           {len(result.errors)}")
    if result.truncated:
        print(f"   Collection was cut off at {settings.max_assets:,} items")
    print("=" * 50)
    return 0


if __name__ == "__main__":
    sys.exit(main())
