"""Fail-fast upload and compensating delete shared by quote and payment proof services."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import InternalError
from app.services.blob_cleanup import record_orphaned_blob
from app.services.blob_storage import FileStore

logger = logging.getLogger(__name__)


async def save_upload(file_store: FileStore, data: bytes, file_name: str) -> str:
    """Store the file before any DB work. A storage failure aborts the operation."""
    try:
        return await file_store.save(data, file_name)
    except Exception as e:
        logger.error("file save failed: %s", e)
        raise InternalError("file upload failed") from e


async def discard_upload(db: AsyncSession, file_store: FileStore, path: str, reason: str) -> None:
    """Best-effort delete of a file whose DB transaction failed."""
    try:
        await file_store.delete(path)
    except Exception as e:
        logger.error("deleting file %s failed after rollback: %s", path, e)
        await record_orphaned_blob(db, path, reason, str(e))
