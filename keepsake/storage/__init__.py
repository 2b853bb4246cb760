"""
Storage for uploaded media.

- ContentStorage → byte storage keyed by relative path (local filesystem)
- MediaStore     → upload validation + thumbnails on top of it
"""

from keepsake.storage.base import ContentStorage, StoredMedia
from keepsake.storage.local import LocalContentStorage
from keepsake.storage.media import MediaStore

__all__ = [
    "ContentStorage",
    "StoredMedia",
    "LocalContentStorage",
    "MediaStore",
]
