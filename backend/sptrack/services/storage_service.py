"""
Blob storage for uploaded coursework documents.

Two backends behind one interface:
- LocalBlobStore: files under UPLOAD_PATH via aiofiles, served at UPLOAD_URL_PREFIX
- S3BlobStore: boto3 in the default executor, links are presigned GET URLs
"""

import asyncio
import re
import time
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os
import boto3
from botocore.exceptions import BotoCoreError, ClientError

from sptrack.core.config import settings
from sptrack.core.exceptions import StorageError
from sptrack.core.logging_config import logger


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def sanitize_filename(filename: str) -> str:
    """Strip directories and anything outside [A-Za-z0-9._-] from a client filename"""
    name = Path(filename or "").name
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name or "file"


def generate_storage_key(filename: str) -> str:
    """Storage key: <unix-ms>-<sanitized filename>"""
    return f"{int(time.time() * 1000)}-{sanitize_filename(filename)}"


class BlobStore:
    """Interface for blob backends"""

    async def save(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        """
        Store bytes under key.

        Returns:
            Retrievable URI of the stored blob

        Raises:
            StorageError: when the backend rejects the write
        """
        raise NotImplementedError

    async def delete(self, key: str) -> bool:
        """Remove a blob. Returns False instead of raising on failure."""
        raise NotImplementedError


class LocalBlobStore(BlobStore):
    """Files on local disk"""

    def __init__(self, root: Path, url_prefix: str = "/uploads"):
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise StorageError("Invalid storage key", key=key)
        return path

    async def save(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        path = self._path(key)
        try:
            await aiofiles.os.makedirs(path.parent, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(data)
        except OSError as e:
            logger.error(f"Error writing blob {key}: {e}")
            raise StorageError("Failed to store file", key=key)
        logger.info(f"Stored file: {key}")
        return f"{self.url_prefix}/{key}"

    async def delete(self, key: str) -> bool:
        try:
            await aiofiles.os.remove(self._path(key))
        except (OSError, StorageError) as e:
            logger.warning(f"Error deleting blob {key}: {e}")
            return False
        logger.info(f"Deleted file: {key}")
        return True


class S3BlobStore(BlobStore):
    """Objects in an S3 bucket"""

    def __init__(self, bucket_name: str, client=None, url_expiry: int = 3600):
        self.client = client or boto3.client(
            's3',
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
            region_name=settings.AWS_REGION
        )
        self.bucket_name = bucket_name
        self.url_expiry = url_expiry

    def _put(self, key: str, data: bytes, content_type: Optional[str]) -> str:
        extra_args = {}
        if content_type:
            extra_args['ContentType'] = content_type
        self.client.put_object(Bucket=self.bucket_name, Key=key, Body=data, **extra_args)
        return self.client.generate_presigned_url(
            'get_object',
            Params={'Bucket': self.bucket_name, 'Key': key},
            ExpiresIn=self.url_expiry
        )

    def _delete(self, key: str) -> None:
        self.client.delete_object(Bucket=self.bucket_name, Key=key)

    async def save(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        try:
            url = await asyncio.get_event_loop().run_in_executor(
                None, self._put, key, data, content_type
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Error uploading object {key}: {e}")
            raise StorageError("Failed to store file", key=key)
        logger.info(f"Uploaded object: {key}")
        return url

    async def delete(self, key: str) -> bool:
        try:
            await asyncio.get_event_loop().run_in_executor(None, self._delete, key)
        except (BotoCoreError, ClientError) as e:
            logger.warning(f"Error deleting object {key}: {e}")
            return False
        logger.info(f"Deleted object: {key}")
        return True


_blob_store: Optional[BlobStore] = None


def get_blob_store() -> BlobStore:
    """Get or create the configured blob store (FastAPI dependency)"""
    global _blob_store
    if _blob_store is None:
        if settings.STORAGE_MODE == "s3":
            _blob_store = S3BlobStore(settings.S3_BUCKET_NAME, url_expiry=settings.STORAGE_URL_EXPIRY)
        else:
            _blob_store = LocalBlobStore(settings.UPLOAD_DIR, settings.UPLOAD_URL_PREFIX)
    return _blob_store
