"""Local file storage utilities."""

import asyncio
import logging
import shutil
from pathlib import Path
from typing import BinaryIO, Optional

logger = logging.getLogger(__name__)


class LocalStorage:
    """Local file storage handler serving files under a public media URL."""

    def __init__(self, base_path: str = "./storage", public_base_url: str = "http://localhost:8000"):
        """
        Initialize local storage.

        Args:
            base_path: Base directory for file storage
            public_base_url: URL prefix the media mount is served from
        """
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")

    def _resolve(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        if self.base_path.resolve() not in path.parents:
            raise ValueError(f"Storage key escapes base directory: {key}")
        return path

    def save(self, file_data: bytes | BinaryIO, key: str) -> Path:
        """
        Save file to local storage.

        Args:
            file_data: File data (bytes or file-like object)
            key: Relative path of the file, e.g. "admin-faces/u1-123.jpg"

        Returns:
            Path to saved file
        """
        file_path = self._resolve(key)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        if isinstance(file_data, bytes):
            file_path.write_bytes(file_data)
        else:
            with open(file_path, "wb") as f:
                shutil.copyfileobj(file_data, f)

        logger.info(f"Saved file to {file_path}")
        return file_path

    async def upload(
        self,
        file_data: bytes | BinaryIO,
        key: str,
        content_type: Optional[str] = None,
    ) -> str:
        """Blob-store upload; returns the key."""
        await asyncio.to_thread(self.save, file_data, key)
        return key

    def read(self, key: str) -> bytes:
        file_path = self._resolve(key)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")
        return file_path.read_bytes()

    def delete(self, key: str) -> bool:
        """
        Delete file from local storage.

        Returns:
            True if deleted, False if it did not exist
        """
        file_path = self._resolve(key)
        if not file_path.exists():
            return False
        file_path.unlink()
        logger.info(f"Deleted file: {file_path}")
        return True

    def exists(self, key: str) -> bool:
        return self._resolve(key).exists()

    def get_public_url(self, key: str) -> str:
        return f"{self.public_base_url}/media/{key.lstrip('/')}"
