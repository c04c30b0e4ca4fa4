"""Object-store access (MinIO).

The MinIO client is blocking, so the async helpers run each call in a
worker thread to keep request handlers responsive.
"""

import asyncio
import logging
from datetime import timedelta
from io import BytesIO

from minio import Minio

from signbox.config import settings

logger = logging.getLogger(__name__)

_minio_client = None


def get_minio_client() -> Minio:
    global _minio_client
    if _minio_client is None:
        _minio_client = Minio(
            settings.minio_endpoint,
            access_key=settings.minio_root_user,
            secret_key=settings.minio_root_password,
            secure=settings.minio_use_ssl,
        )
        if not _minio_client.bucket_exists(settings.minio_bucket):
            _minio_client.make_bucket(settings.minio_bucket)
    return _minio_client


def _put(storage_key: str, content: bytes, content_type: str) -> None:
    get_minio_client().put_object(
        settings.minio_bucket,
        storage_key,
        BytesIO(content),
        length=len(content),
        content_type=content_type,
    )


def _get(storage_key: str) -> bytes:
    response = get_minio_client().get_object(settings.minio_bucket, storage_key)
    try:
        return response.read()
    finally:
        response.close()
        response.release_conn()


async def upload_object(storage_key: str, content: bytes, content_type: str = "application/pdf") -> None:
    await asyncio.to_thread(_put, storage_key, content, content_type)
    logger.info("Stored %s (%d bytes)", storage_key, len(content))


async def download_object(storage_key: str) -> bytes:
    return await asyncio.to_thread(_get, storage_key)


async def remove_object(storage_key: str) -> None:
    await asyncio.to_thread(get_minio_client().remove_object, settings.minio_bucket, storage_key)


def get_download_url(storage_key: str, expires_hours: int | None = None) -> str:
    hours = expires_hours if expires_hours is not None else settings.presigned_url_ttl_hours
    return get_minio_client().presigned_get_object(settings.minio_bucket, storage_key, expires=timedelta(hours=hours))
