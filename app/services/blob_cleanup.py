"""Orphaned blob cleanup queue.

When a DB transaction fails after its file was uploaded, the service deletes
the file inline. If that compensating delete fails too, the blob path is
recorded here and retried later with backoff by ``sweep_orphaned_blobs``.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.orphaned_blob import OrphanedBlob
from app.services.blob_storage import FileStore

logger = logging.getLogger(__name__)

# Retry configuration
MAX_DELETE_ATTEMPTS = 3
RETRY_DELAYS = [1, 5, 30]  # minutes


async def record_orphaned_blob(db: AsyncSession, path: str, reason: str, error: str) -> OrphanedBlob | None:
    """Persist a cleanup record. Never raises: this already runs on a failure path."""
    entry = OrphanedBlob(path=path, reason=reason, attempts=0, last_error=error[:1000], status="pending")
    try:
        db.add(entry)
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error("Could not record orphaned blob %s (%s): %s", path, reason, e)
        return None

    logger.warning("Orphaned blob queued for cleanup: path=%s reason=%s", path, reason)
    return entry


async def get_pending_cleanups(db: AsyncSession, limit: int = 50, now: datetime | None = None) -> list[OrphanedBlob]:
    """Return records whose backoff delay has elapsed."""
    now = now or datetime.utcnow()

    query = select(OrphanedBlob).where(
        and_(
            OrphanedBlob.status.in_(["pending", "retrying"]),
            OrphanedBlob.attempts < MAX_DELETE_ATTEMPTS,
        )
    ).order_by(OrphanedBlob.created_at).limit(limit)

    result = await db.execute(query)
    ready = []
    for entry in result.scalars().all():
        if entry.attempts == 0:
            ready.append(entry)
            continue
        delay_minutes = RETRY_DELAYS[min(entry.attempts - 1, len(RETRY_DELAYS) - 1)]
        if now >= entry.updated_at + timedelta(minutes=delay_minutes):
            ready.append(entry)
    return ready


async def sweep_orphaned_blobs(db: AsyncSession, file_store: FileStore, limit: int = 50) -> dict[str, int]:
    """Retry deleting orphaned blobs. Returns counts by outcome."""
    counts = {"deleted": 0, "retrying": 0, "failed": 0}

    for entry in await get_pending_cleanups(db, limit=limit):
        try:
            await file_store.delete(entry.path)
        except Exception as e:
            entry.attempts += 1
            entry.last_error = str(e)[:1000]
            entry.status = "failed" if entry.attempts >= MAX_DELETE_ATTEMPTS else "retrying"
            counts[entry.status] += 1
            logger.warning("Orphaned blob delete failed: path=%s attempts=%d error=%s", entry.path, entry.attempts, e)
        else:
            entry.attempts += 1
            entry.status = "deleted"
            counts["deleted"] += 1
            logger.info("Orphaned blob deleted: %s", entry.path)
        entry.updated_at = datetime.utcnow()

    await db.commit()
    logger.info("Orphaned blob sweep finished: %s", counts)
    return counts
