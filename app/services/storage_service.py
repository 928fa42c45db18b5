"""Local-disk storage for uploaded attachments and avatars."""

import logging
import uuid
from pathlib import Path

from fastapi import UploadFile

from app.core.config import settings
from app.exceptions.base import BadRequestError, PayloadTooLargeError

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/uploads"
_CHUNK_SIZE = 1024 * 1024


class StorageService:
    """Stores uploads under randomized filenames and serves them from ``/uploads``."""

    def __init__(self, upload_dir: str | None = None, max_file_size: int | None = None):
        self.upload_dir = Path(upload_dir or settings.upload_dir)
        self.max_file_size = max_file_size or settings.max_file_size

    def ensure_upload_dir(self) -> Path:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        return self.upload_dir

    def resolve(self, public_path: str) -> Path:
        """Map ``/uploads/<filename>`` to the file on disk; directory parts are ignored."""
        return self.upload_dir / Path(public_path).name

    async def save_upload(self, upload: UploadFile, image_only: bool = False) -> dict:
        """
        Persist an uploaded file.

        Returns:
            Dictionary with filename, original_name, mime_type, size and the
            public path of the stored file

        Raises:
            BadRequestError: If no file was sent or an image was required
            PayloadTooLargeError: If the file exceeds the configured size limit
        """
        if upload is None or not upload.filename:
            raise BadRequestError("Please upload a file")

        mime_type = upload.content_type or "application/octet-stream"
        if image_only and not mime_type.startswith("image/"):
            raise BadRequestError("Please upload an image file")

        suffix = Path(upload.filename).suffix.lower()[:16]
        filename = f"{uuid.uuid4().hex}{suffix}"
        destination = self.ensure_upload_dir() / filename

        size = 0
        try:
            with destination.open("wb") as out:
                while True:
                    chunk = await upload.read(_CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.max_file_size:
                        raise PayloadTooLargeError(
                            f"File size cannot exceed {self.max_file_size // (1024 * 1024)}MB"
                        )
                    out.write(chunk)
        except PayloadTooLargeError:
            destination.unlink(missing_ok=True)
            raise

        logger.info(f"📎 Stored upload {upload.filename} as {filename} ({size} bytes)")
        return {
            "filename": filename,
            "original_name": upload.filename,
            "mime_type": mime_type,
            "size": size,
            "path": f"{PUBLIC_PREFIX}/{filename}",
        }

    def delete_file(self, public_path: str) -> bool:
        """Remove a stored file; a missing file is logged and reported as ``False``."""
        target = self.resolve(public_path)
        try:
            target.unlink()
            logger.info(f"🗑️ Deleted file {target}")
            return True
        except FileNotFoundError:
            logger.warning(f"File already gone: {target}")
        except OSError as e:
            logger.error(f"❌ Error deleting file {target}: {str(e)}")
        return False

    def list_files(self) -> list[Path]:
        if not self.upload_dir.exists():
            return []
        return [path for path in self.upload_dir.iterdir() if path.is_file()]
