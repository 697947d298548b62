"""
File handling utilities for SafeVision
Handles image validation, storage and removal
"""
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional
import logging
from fastapi import UploadFile

from app.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


@dataclass
class StoredImage:
    path: str
    original_filename: Optional[str]
    mime_type: str
    content: bytes


class ImageStorage:
    """Stores inspection photographs on local disk"""

    def __init__(self, upload_dir: str, max_file_size: int, allowed_extensions: Iterable[str]):
        """Initialize storage and ensure upload directory exists"""
        self.upload_dir = Path(upload_dir)
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        self.max_file_size = max_file_size
        self.allowed_extensions = {ext.lower() for ext in allowed_extensions}
        logger.info(f"Image storage initialized. Upload directory: {self.upload_dir}")

    def _extension(self, filename: Optional[str]) -> str:
        return Path(filename or "").suffix.lower()

    def validate(self, filename: Optional[str], size: int) -> None:
        """
        Validate an uploaded image

        Raises:
            ValidationError if the extension or size is not acceptable
        """
        if self._extension(filename) not in self.allowed_extensions:
            allowed = ", ".join(sorted(self.allowed_extensions))
            raise ValidationError(f"Only image files are allowed ({allowed})")
        if size == 0:
            raise ValidationError("Image file is empty")
        if size > self.max_file_size:
            raise ValidationError(
                f"File too large. Maximum size is {self.max_file_size / (1024 * 1024):g}MB."
            )

    async def save(self, upload: UploadFile) -> StoredImage:
        """
        Validate and persist an uploaded image under a random name

        Args:
            upload: FastAPI UploadFile object

        Returns:
            StoredImage with the saved path and file content
        """
        content = await upload.read()
        self.validate(upload.filename, len(content))

        ext = self._extension(upload.filename)
        file_path = self.upload_dir / f"{uuid.uuid4()}{ext}"
        with open(file_path, "wb") as buffer:
            buffer.write(content)

        logger.info(f"Stored image {upload.filename} as {file_path.name} ({len(content)} bytes)")
        return StoredImage(
            path=str(file_path),
            original_filename=upload.filename,
            mime_type=self.mime_type(file_path),
            content=content,
        )

    def mime_type(self, path) -> str:
        return MIME_TYPES.get(self._extension(str(path)), "image/jpeg")

    def exists(self, path: Optional[str]) -> bool:
        return bool(path) and os.path.isfile(path)

    def delete(self, path: Optional[str]) -> bool:
        """
        Remove a stored image. A missing file is not an error.

        Returns:
            True if a file was removed
        """
        if not path:
            return False
        try:
            Path(path).unlink()
            logger.info(f"Deleted image file: {path}")
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Error deleting image file {path}: {str(e)}")
            return False
