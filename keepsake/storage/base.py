"""
Storage abstraction layer.

Uploaded media goes through this interface so the filesystem backend can
be swapped (e.g. for S3) without touching the services.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel


# =============================================================================
# Storage Interface
# =============================================================================


class ContentStorage(ABC):
    """
    Storage for binary content (photos, videos, thumbnails, avatars).

    Keys are relative paths like "photos/img_ab12.jpg".
    """

    @abstractmethod
    def put(self, key: str, data: bytes) -> str:
        """Store content, return the key."""
        pass

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Retrieve content by key."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete content. Returns False if it wasn't there."""
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        pass


# =============================================================================
# Upload result
# =============================================================================


class StoredMedia(BaseModel):
    """What the media store reports back after saving an upload."""

    filename: str
    original_name: str | None = None
    file_path: str
    thumbnail_path: str | None = None
    width: int | None = None
    height: int | None = None
    file_size: int
    media_type: str  # "image" or "video"
