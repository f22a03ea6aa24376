"""Azure Blob Storage file store for quote images and payment proofs."""

import logging
import re
import uuid
from typing import Protocol

from azure.core.exceptions import AzureError
from azure.storage.blob.aio import BlobServiceClient

logger = logging.getLogger(__name__)


class FileStoreError(Exception):
    """Raised when the underlying object storage fails."""


class FileStore(Protocol):
    async def save(self, data: bytes, name: str) -> str: ...

    async def get(self, path: str) -> bytes: ...

    async def delete(self, path: str) -> None: ...


def _safe_name(name: str) -> str:
    name = name.rsplit("/", 1)[-1].rsplit("\\", 1)[-1]
    return re.sub(r"[^A-Za-z0-9._-]", "_", name) or "upload"


class BlobStorageService:
    """Save/get/delete blobs by name in a single container.

    Returned paths are blob names: ``<uuid>-<sanitized file name>``, so two
    uploads with the same file name never overwrite each other.
    """

    def __init__(self, connection_string: str, container: str, account_name: str = ""):
        self.connection_string = connection_string
        self.container = container
        self.account_name = account_name

    def _client(self) -> BlobServiceClient:
        if not self.connection_string:
            raise FileStoreError("Azure Blob connection string not configured")
        return BlobServiceClient.from_connection_string(self.connection_string)

    async def save(self, data: bytes, name: str) -> str:
        path = f"{uuid.uuid4().hex}-{_safe_name(name)}"
        try:
            async with self._client() as blob_service:
                blob_client = blob_service.get_blob_client(container=self.container, blob=path)
                await blob_client.upload_blob(data, overwrite=True)
        except AzureError as e:
            logger.error("Failed to upload blob %s: %s", path, e)
            raise FileStoreError(str(e)) from e
        logger.info("Blob uploaded: %s/%s (%d bytes)", self.container, path, len(data))
        return path

    async def get(self, path: str) -> bytes:
        try:
            async with self._client() as blob_service:
                blob_client = blob_service.get_blob_client(container=self.container, blob=path)
                downloader = await blob_client.download_blob()
                return await downloader.readall()
        except AzureError as e:
            logger.error("Failed to download blob %s: %s", path, e)
            raise FileStoreError(str(e)) from e

    async def delete(self, path: str) -> None:
        try:
            async with self._client() as blob_service:
                blob_client = blob_service.get_blob_client(container=self.container, blob=path)
                await blob_client.delete_blob()
        except AzureError as e:
            logger.error("Failed to delete blob %s: %s", path, e)
            raise FileStoreError(str(e)) from e
        logger.info("Blob deleted: %s/%s", self.container, path)
