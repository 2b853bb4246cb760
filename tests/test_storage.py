"""
Tests for local content storage and media uploads.
"""

import io
from dataclasses import dataclass
from typing import BinaryIO

import pytest
from PIL import Image

from keepsake.core.errors import ValidationError
from keepsake.storage.local import LocalContentStorage
from keepsake.storage.media import MediaStore


@dataclass
class FakeUpload:
    filename: str | None
    file: BinaryIO


def jpeg_upload(name: str = "a.jpg", size=(900, 300)) -> FakeUpload:
    buffer = io.BytesIO()
    Image.new("RGB", size, color=(255, 255, 255)).save(buffer, format="JPEG")
    buffer.seek(0)
    return FakeUpload(filename=name, file=buffer)


@pytest.fixture
def storage(tmp_path):
    return LocalContentStorage(str(tmp_path / "store"))


@pytest.fixture
def media(storage):
    return MediaStore(
        storage,
        allowed_extensions={"jpg", "png", "mp4"},
        video_extensions={"mp4"},
        max_bytes=1024 * 1024,
    )


# =============================================================================
# LocalContentStorage Tests
# =============================================================================


class TestLocalContentStorage:
    def test_put_get_delete(self, storage):
        storage.put("photos/x.bin", b"abc")

        assert storage.exists("photos/x.bin")
        assert storage.get("photos/x.bin") == b"abc"
        assert storage.delete("photos/x.bin") is True
        assert not storage.exists("photos/x.bin")
        assert storage.delete("photos/x.bin") is False

    def test_missing_key(self, storage):
        with pytest.raises(FileNotFoundError):
            storage.get("nope")

    def test_key_cannot_escape_root(self, storage):
        with pytest.raises(ValueError):
            storage.put("../outside.txt", b"x")


# =============================================================================
# MediaStore Tests
# =============================================================================


class TestMediaStore:
    def test_image_gets_thumbnail(self, media, storage):
        stored = media.save_upload(jpeg_upload(), "photos")

        assert stored.file_path.startswith("photos/img_")
        assert stored.thumbnail_path == f"thumbnails/{stored.file_path}"
        assert (stored.width, stored.height) == (900, 300)
        with Image.open(io.BytesIO(storage.get(stored.thumbnail_path))) as thumb:
            assert thumb.size == (300, 100)

    def test_video_stored_as_is(self, media, storage):
        stored = media.save_upload(FakeUpload("clip.MP4", io.BytesIO(b"\x00\x00\x00 ftyp")), "photos")

        assert stored.media_type == "video"
        assert stored.thumbnail_path is None
        assert stored.width is None
        assert storage.exists(stored.file_path)

    def test_avatar_rejects_video(self, media):
        with pytest.raises(ValidationError):
            media.save_upload(FakeUpload("clip.mp4", io.BytesIO(b"x")), "avatars", images_only=True)

    def test_too_large(self, storage):
        small = MediaStore(storage, {"jpg"}, set(), max_bytes=10)

        with pytest.raises(ValidationError, match="File too large"):
            small.save_upload(jpeg_upload(), "photos")

    def test_size_checked_before_reading(self, storage):
        class UnreadableBuffer(io.BytesIO):
            def read(self, *args):
                raise AssertionError("oversized upload was read into memory")

        small = MediaStore(storage, {"jpg"}, set(), max_bytes=10)
        upload = FakeUpload("a.jpg", UnreadableBuffer(b"x" * 100))

        with pytest.raises(ValidationError, match="File too large"):
            small.save_upload(upload, "photos")
        assert not list(storage.base_path.rglob("*.jpg"))

    def test_missing_file(self, media):
        with pytest.raises(ValidationError):
            media.save_upload(None, "photos")

    def test_delete_removes_thumbnail(self, media, storage):
        stored = media.save_upload(jpeg_upload(), "photos")

        media.delete(stored.file_path)

        assert not storage.exists(stored.file_path)
        assert not storage.exists(stored.thumbnail_path)
