"""
Storage Service - local filesystem uploads

Files land under settings.UPLOAD_DIR/<folder>/<uuid>.<ext> and are
referenced by the relative URL /uploads/<folder>/<name>, which main.py
serves as static files.
"""

import uuid
from pathlib import Path
from typing import Iterable, Optional

import aiofiles
import aiofiles.os
from fastapi import UploadFile

from app.core.config import settings
from app.core.exceptions import InvalidFileTypeError, StorageError, ValidationError
from app.core.logging_config import logger


URL_PREFIX = "/uploads"
IMAGE_EXTENSIONS = ("png", "jpg", "jpeg", "gif", "webp")
CHUNK_SIZE = 64 * 1024


def file_extension(filename: Optional[str]) -> str:
    """'Report.PDF' -> 'pdf'"""
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


class StorageService:
    """Saves and removes uploaded files on local disk"""

    def __init__(self, root: Optional[Path] = None):
        self._root = Path(root) if root else settings.UPLOAD_DIR

    @property
    def root(self) -> Path:
        return self._root

    def validate(self, filename: Optional[str], size: Optional[int] = None,
                 allowed: Optional[Iterable[str]] = None) -> str:
        """Check extension (and size, when known); returns the extension"""
        allowed = list(allowed) if allowed is not None else settings.ALLOWED_EXTENSIONS
        extension = file_extension(filename)
        if extension not in allowed:
            raise InvalidFileTypeError(extension or "unknown", allowed)
        if size is not None and size > settings.MAX_UPLOAD_SIZE:
            raise ValidationError(
                f"File exceeds maximum upload size of {settings.MAX_UPLOAD_SIZE} bytes",
                field="file",
            )
        return extension

    async def save_upload(self, upload: UploadFile, folder: str,
                          allowed: Optional[Iterable[str]] = None) -> str:
        """Stream an UploadFile to disk, enforcing the size limit while writing"""
        extension = self.validate(upload.filename, allowed=allowed)
        target_dir = self._root / folder
        stored_name = f"{uuid.uuid4().hex}.{extension}"
        target = target_dir / stored_name

        written = 0
        try:
            await aiofiles.os.makedirs(target_dir, exist_ok=True)
            async with aiofiles.open(target, "wb") as f:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > settings.MAX_UPLOAD_SIZE:
                        break
                    await f.write(chunk)
        except OSError as e:
            logger.error(f"[Storage] Failed to write {target}: {e}")
            raise StorageError("Could not store uploaded file")

        if written > settings.MAX_UPLOAD_SIZE:
            await self._remove(target)
            raise ValidationError(
                f"File exceeds maximum upload size of {settings.MAX_UPLOAD_SIZE} bytes",
                field="file",
            )

        url = f"{URL_PREFIX}/{folder}/{stored_name}"
        logger.info(f"[Storage] Stored {upload.filename} as {url} ({written} bytes)")
        return url

    async def save_image(self, upload: UploadFile, folder: str) -> str:
        return await self.save_upload(upload, folder, allowed=IMAGE_EXTENSIONS)

    def path_for(self, url: str) -> Optional[Path]:
        """Map a /uploads/... URL back to a path inside the upload root"""
        if not url or not url.startswith(URL_PREFIX + "/"):
            return None
        relative = url[len(URL_PREFIX) + 1:]
        path = (self._root / relative).resolve()
        if self._root.resolve() not in path.parents:
            return None
        return path

    async def delete(self, url: str) -> bool:
        """Remove a stored file; unknown or foreign URLs are ignored"""
        path = self.path_for(url)
        if path is None:
            return False
        return await self._remove(path)

    async def _remove(self, path: Path) -> bool:
        try:
            await aiofiles.os.remove(path)
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"[Storage] Could not delete {path}: {e}")
            return False


storage_service = StorageService()
