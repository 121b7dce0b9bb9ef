"""
JPEG header and sanitization tests.
"""

from io import BytesIO
from pathlib import Path
from typing import Callable

import pytest
from PIL import Image

from upload_guard.utils.image import ImageSanitizeError, read_image_size, sanitize_jpeg


pytestmark = pytest.mark.unit


def write(tmp_path: Path, data: bytes, name: str = "candidate.jpg") -> Path:
    path = tmp_path / name
    path.write_bytes(data)
    return path


class TestReadImageSize:
    def test_returns_dimensions(self, tmp_path: Path, jpeg_factory: Callable[..., bytes]) -> None:
        path = write(tmp_path, jpeg_factory((320, 200)))

        assert read_image_size(path) == (320, 200)

    def test_garbage_returns_none(self, tmp_path: Path) -> None:
        path = write(tmp_path, b"\xff\xd8\xff<?php echo 'hi'; ?>")

        assert read_image_size(path) is None

    def test_missing_file_returns_none(self, tmp_path: Path) -> None:
        assert read_image_size(tmp_path / "absent.jpg") is None

    def test_decompression_bomb_returns_none(
        self,
        monkeypatch: pytest.MonkeyPatch,
        tmp_path: Path,
        jpeg_factory: Callable[..., bytes],
    ) -> None:
        path = write(tmp_path, jpeg_factory((100, 100)))
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)

        assert read_image_size(path) is None


class TestSanitizeJpeg:
    def test_downscales_longest_edge(
        self, tmp_path: Path, jpeg_factory: Callable[..., bytes]
    ) -> None:
        path = write(tmp_path, jpeg_factory((1600, 1200)))

        assert sanitize_jpeg(path, 800) == (800, 600)
        with Image.open(path) as img:
            assert img.format == "JPEG"
            assert img.size == (800, 600)

    def test_small_image_keeps_size(
        self, tmp_path: Path, jpeg_factory: Callable[..., bytes]
    ) -> None:
        path = write(tmp_path, jpeg_factory((50, 30)))

        assert sanitize_jpeg(path, 1024) == (50, 30)

    def test_cmyk_converted_to_rgb(self, tmp_path: Path) -> None:
        buf = BytesIO()
        Image.new("CMYK", (40, 40), color=(0, 255, 255, 0)).save(buf, format="JPEG")
        path = write(tmp_path, buf.getvalue())

        sanitize_jpeg(path, 1024)

        with Image.open(path) as img:
            assert img.mode == "RGB"

    def test_grayscale_kept(self, tmp_path: Path) -> None:
        buf = BytesIO()
        Image.new("L", (40, 40), color=128).save(buf, format="JPEG")
        path = write(tmp_path, buf.getvalue())

        sanitize_jpeg(path, 1024)

        with Image.open(path) as img:
            assert img.mode == "L"

    def test_comment_not_carried_over(
        self, tmp_path: Path, jpeg_factory: Callable[..., bytes]
    ) -> None:
        path = write(tmp_path, jpeg_factory((32, 32), comment=b"payload-marker"))

        sanitize_jpeg(path, 1024)

        assert b"payload-marker" not in path.read_bytes()

    def test_garbage_raises(self, tmp_path: Path) -> None:
        path = write(tmp_path, b"not an image at all")

        with pytest.raises(ImageSanitizeError):
            sanitize_jpeg(path, 1024)

    def test_truncated_raises(
        self, tmp_path: Path, noise_jpeg_factory: Callable[[tuple[int, int]], bytes]
    ) -> None:
        data = noise_jpeg_factory((128, 128))
        path = write(tmp_path, data[: len(data) // 2])

        with pytest.raises(ImageSanitizeError):
            sanitize_jpeg(path, 1024)
