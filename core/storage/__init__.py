"""
Blob storage for uploaded photos.

Both backends expose the same two operations: `upload(data, key,
content_type) -> key` and `get_public_url(key) -> str`.
"""

from typing import BinaryIO, Optional, Protocol

from core.storage.local import LocalStorage


class BlobStore(Protocol):
    async def upload(
        self,
        file_data: bytes | BinaryIO,
        key: str,
        content_type: Optional[str] = None,
    ) -> str:
        ...

    def get_public_url(self, key: str) -> str:
        ...


def create_blob_store(settings) -> BlobStore:
    """Build the blob store selected by STORAGE_BACKEND."""
    if settings.storage_backend == "s3":
        # aioboto3 is only imported when S3 is selected
        from core.storage.s3 import S3Storage

        return S3Storage(bucket_name=settings.aws_s3_bucket, region=settings.aws_region)
    return LocalStorage(settings.storage_path, settings.public_base_url)


__all__ = ["BlobStore", "LocalStorage", "create_blob_store"]
