"""Retry deleting blobs whose compensating delete failed.

Usage (e.g. from cron every few minutes):
    python -m app.scripts.sweep_orphaned_blobs --limit=100
"""

import argparse
import asyncio

from app.core.config import load_settings
from app.core.context import build_context
from app.services.blob_cleanup import sweep_orphaned_blobs


async def run(limit: int) -> dict[str, int]:
    context = build_context(load_settings())
    try:
        async with context.database.session_factory() as db:
            return await sweep_orphaned_blobs(db, context.file_store, limit=limit)
    finally:
        await context.close()


def main():
    parser = argparse.ArgumentParser(description="Sweep orphaned blobs left behind by failed uploads")
    parser.add_argument("--limit", type=int, default=50, help="Maximum records to process")
    args = parser.parse_args()

    counts = asyncio.run(run(args.limit))
    print(f"deleted={counts['deleted']} retrying={counts['retrying']} failed={counts['failed']}")


if __name__ == "__main__":
    main()
