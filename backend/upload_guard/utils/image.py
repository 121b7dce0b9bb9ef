"""
JPEG verification and sanitization for Upload Guard.

Two independent passes over an upload that sniffed as a JPEG:

- ``read_image_size`` parses only the header, the cheap way to catch a script
  that merely starts with JPEG magic bytes.
- ``sanitize_jpeg`` fully decodes the pixels, caps the longest edge and
  writes a brand new JPEG over the original file. Only decoded pixel data
  survives, so EXIF/ICC/comment payloads and polyglot trailing bytes are gone.
"""

import logging
import os

from PIL import Image, UnidentifiedImageError


logger = logging.getLogger(__name__)

# Modes Pillow can write as baseline JPEG without conversion
_JPEG_SAFE_MODES = {"RGB", "L"}


class ImageSanitizeError(Exception):
    """Raised when an image cannot be decoded for re-encoding."""


def read_image_size(file_path: str | os.PathLike[str]) -> tuple[int, int] | None:
    """
    Read an image header and return its dimensions.

    Args:
        file_path: Path to the candidate image

    Returns:
        ``(width, height)`` when the header parses to positive dimensions,
        otherwise None. Headers declaring more pixels than Pillow's
        decompression-bomb limit count as unreadable.
    """
    try:
        with Image.open(file_path) as img:
            width, height = img.size
    except (
        UnidentifiedImageError,
        OSError,
        SyntaxError,
        ValueError,
        Image.DecompressionBombError,
    ) as e:
        logger.debug("Image header read failed for %s: %s", file_path, e)
        return None

    if width <= 0 or height <= 0:
        return None
    return width, height


def sanitize_jpeg(
    file_path: str | os.PathLike[str],
    max_dimension: int,
    quality: int = 75,
) -> tuple[int, int]:
    """
    Decode a JPEG, shrink it to fit ``max_dimension`` and re-encode it in place.

    Aspect ratio is preserved and smaller images are never upscaled. The
    output is saved without EXIF, ICC profile or comment segments.

    Args:
        file_path: JPEG to sanitize; overwritten with the re-encoded image
        max_dimension: Longest allowed edge in pixels
        quality: JPEG quality for the re-encode

    Returns:
        Dimensions of the written image.

    Raises:
        ImageSanitizeError: If the source pixels cannot be decoded.
    """
    try:
        with Image.open(file_path) as img:
            img.load()
            decoded = img.convert("RGB") if img.mode not in _JPEG_SAFE_MODES else img.copy()
    except (
        UnidentifiedImageError,
        OSError,
        SyntaxError,
        ValueError,
        Image.DecompressionBombError,
    ) as e:
        raise ImageSanitizeError(f"Cannot decode image {file_path}: {e}") from e

    # copy()/convert() carry over info, and JPEG save re-emits a stored comment
    decoded.info = {}

    original_size = decoded.size
    decoded.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)

    try:
        decoded.save(file_path, format="JPEG", quality=quality)
    except OSError as e:
        raise ImageSanitizeError(f"Cannot write sanitized image {file_path}: {e}") from e

    logger.debug(
        "Re-encoded JPEG %s from %dx%d to %dx%d",
        file_path,
        original_size[0],
        original_size[1],
        decoded.size[0],
        decoded.size[1],
    )
    return decoded.size
