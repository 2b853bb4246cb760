"""
Media uploads: validation, storage and thumbnails.

Images are verified with Pillow (a renamed text file is rejected) and get a
fixed-width thumbnail stored under "thumbnails/<key>". Videos are stored as
is, without dimensions or thumbnail.
"""

from __future__ import annotations

import io
import logging
import os
from pathlib import Path
from typing import BinaryIO, Protocol

from PIL import Image, UnidentifiedImageError

from keepsake.config import Settings
from keepsake.core.errors import ValidationError
from keepsake.core.utils import generate_id
from keepsake.storage.base import ContentStorage, StoredMedia

logger = logging.getLogger(__name__)

THUMBNAIL_PREFIX = "thumbnails"


class Upload(Protocol):
    """The bits of an uploaded file we use (matches Starlette's UploadFile)."""

    filename: str | None
    file: BinaryIO


class MediaStore:
    """Save and delete user media on top of a ContentStorage backend."""

    def __init__(
        self,
        storage: ContentStorage,
        allowed_extensions: set[str],
        video_extensions: set[str],
        max_bytes: int,
        thumbnail_width: int = 300,
    ):
        self.storage = storage
        self.allowed_extensions = allowed_extensions
        self.video_extensions = video_extensions
        self.max_bytes = max_bytes
        self.thumbnail_width = thumbnail_width

    @classmethod
    def from_settings(cls, settings: Settings, storage: ContentStorage) -> MediaStore:
        return cls(
            storage=storage,
            allowed_extensions=settings.allowed_extensions_set,
            video_extensions=settings.video_extensions_set,
            max_bytes=settings.max_upload_bytes,
            thumbnail_width=settings.thumbnail_width,
        )

    # -------------------------------------------------------------------------
    # Save
    # -------------------------------------------------------------------------

    def save_upload(self, upload: Upload | None, subfolder: str, images_only: bool = False) -> StoredMedia:
        """
        Validate and store an uploaded file.

        Raises ValidationError for a missing file, a disallowed extension,
        an oversized file, or an image Pillow can't read.
        """
        if upload is None or not getattr(upload, "filename", None):
            raise ValidationError("No file uploaded")

        extension = Path(upload.filename).suffix.lower().lstrip(".")
        allowed = self.allowed_extensions - (self.video_extensions if images_only else set())
        if extension not in allowed:
            raise ValidationError(f"Invalid file type. Allowed: {', '.join(sorted(allowed))}")

        upload.file.seek(0, os.SEEK_END)
        size = upload.file.tell()
        if size > self.max_bytes:
            raise ValidationError(f"File too large. Maximum size is {_human_size(self.max_bytes)}")
        upload.file.seek(0)
        data = upload.file.read()

        is_video = extension in self.video_extensions
        width = height = None
        if not is_video:
            width, height = self._image_size(data)

        filename = f"{generate_id('vid' if is_video else 'img')}.{extension}"
        key = f"{subfolder}/{filename}" if subfolder else filename
        self.storage.put(key, data)

        thumbnail_path = None if is_video else self._make_thumbnail(data, key)

        return StoredMedia(
            filename=filename,
            original_name=upload.filename,
            file_path=key,
            thumbnail_path=thumbnail_path,
            width=width,
            height=height,
            file_size=len(data),
            media_type="video" if is_video else "image",
        )

    def _image_size(self, data: bytes) -> tuple[int, int]:
        try:
            with Image.open(io.BytesIO(data)) as image:
                image.verify()
            with Image.open(io.BytesIO(data)) as image:
                return image.width, image.height
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as e:
            logger.info(f"Rejected upload that is not a readable image: {e}")
            raise ValidationError("Invalid image file")

    def _make_thumbnail(self, data: bytes, key: str) -> str | None:
        """Scale to `thumbnail_width` keeping aspect ratio. None on failure."""
        try:
            with Image.open(io.BytesIO(data)) as image:
                image_format = image.format
                ratio = self.thumbnail_width / image.width
                size = (self.thumbnail_width, max(1, int(image.height * ratio)))
                thumbnail = image.resize(size)
                if image_format == "JPEG" and thumbnail.mode not in ("RGB", "L"):
                    thumbnail = thumbnail.convert("RGB")

                buffer = io.BytesIO()
                save_kwargs = {"quality": 85} if image_format in ("JPEG", "WEBP") else {}
                thumbnail.save(buffer, format=image_format, **save_kwargs)
        except (Image.DecompressionBombError, OSError, ValueError) as e:
            logger.warning(f"Thumbnail generation failed for {key}: {e}")
            return None

        thumbnail_key = f"{THUMBNAIL_PREFIX}/{key}"
        self.storage.put(thumbnail_key, buffer.getvalue())
        return thumbnail_key

    # -------------------------------------------------------------------------
    # Delete
    # -------------------------------------------------------------------------

    def delete(self, file_path: str) -> None:
        """Remove a stored file and its thumbnail, if any."""
        self.storage.delete(file_path)
        self.storage.delete(f"{THUMBNAIL_PREFIX}/{file_path}")


def _human_size(num_bytes: int) -> str:
    for unit in ("B", "KB", "MB", "GB"):
        if num_bytes < 1024 or unit == "GB":
            return f"{num_bytes:g}{unit}" if unit == "B" else f"{num_bytes:.0f}{unit}"
        num_bytes /= 1024
    return f"{num_bytes}B"
