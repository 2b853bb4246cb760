"""
Local filesystem storage.

Everything lives under `upload_dir`, which the API also serves at /uploads.
"""

from __future__ import annotations

from pathlib import Path

from keepsake.storage.base import ContentStorage


class LocalContentStorage(ContentStorage):
    """Store content on local filesystem."""

    def __init__(self, base_path: str = "./uploads"):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _key_to_path(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        if self.base_path.resolve() not in path.parents:
            raise ValueError(f"Key escapes storage root: {key}")
        return path

    def put(self, key: str, data: bytes) -> str:
        path = self._key_to_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return key

    def get(self, key: str) -> bytes:
        path = self._key_to_path(key)
        if not path.exists():
            raise FileNotFoundError(f"Content not found: {key}")
        return path.read_bytes()

    def delete(self, key: str) -> bool:
        path = self._key_to_path(key)
        if path.exists():
            path.unlink()
            return True
        return False

    def exists(self, key: str) -> bool:
        return self._key_to_path(key).exists()
