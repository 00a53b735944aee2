"""S3 storage utilities for file operations."""

import logging
from os import environ
from typing import BinaryIO, Optional

import aioboto3

logger = logging.getLogger(__name__)


def _get_credentials(region: Optional[str] = None) -> dict:
    """Lazily load AWS credentials to avoid import-time failures."""
    access_key = environ.get("AWS_ACCESS_KEY_ID")
    secret_key = environ.get("AWS_SECRET_ACCESS_KEY")
    region = region or environ.get("AWS_REGION")

    if not access_key or not secret_key:
        raise ValueError("AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY must be set")
    if not region:
        raise ValueError("AWS_REGION must be set")

    return {
        "aws_access_key_id": access_key,
        "aws_secret_access_key": secret_key,
        "region_name": region,
    }


class S3Storage:
    """S3 storage handler for async operations."""

    def __init__(self, bucket_name: Optional[str] = None, region: Optional[str] = None):
        """
        Initialize S3 storage.

        Args:
            bucket_name: S3 bucket name (uses env var if not provided)
            region: AWS region (uses env var if not provided)
        """
        self.bucket_name = bucket_name or environ.get("AWS_S3_BUCKET")
        if not self.bucket_name:
            raise ValueError("S3 bucket name not provided and AWS_S3_BUCKET not set")

        self.credentials = _get_credentials(region)
        self.region = self.credentials["region_name"]

    async def upload(
        self,
        file_data: bytes | BinaryIO,
        key: str,
        content_type: Optional[str] = None,
    ) -> str:
        """
        Upload file to S3.

        Args:
            file_data: File data (bytes or file-like object)
            key: S3 object key (path)
            content_type: MIME type of the file

        Returns:
            S3 object key
        """
        session = aioboto3.Session(**self.credentials)
        async with session.client("s3") as client:
            upload_args = {
                "Bucket": self.bucket_name,
                "Key": key,
                "Body": file_data if isinstance(file_data, bytes) else file_data.read(),
            }
            if content_type:
                upload_args["ContentType"] = content_type

            await client.put_object(**upload_args)

        logger.info(f"Uploaded file to S3: {self.bucket_name}/{key}")
        return key

    async def delete(self, key: str) -> bool:
        session = aioboto3.Session(**self.credentials)
        async with session.client("s3") as client:
            await client.delete_object(Bucket=self.bucket_name, Key=key)

        logger.info(f"Deleted file from S3: {self.bucket_name}/{key}")
        return True

    def get_public_url(self, key: str) -> str:
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{key.lstrip('/')}"
