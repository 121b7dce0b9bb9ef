"""
File Validation Utilities Module for Upload Guard

This module holds the fixed tables and the individual checks the upload
pipeline is built from:
- Transport error-code taxonomy and descriptor structure checks
- Genuine-upload verification for temporary file paths
- 10 MiB maximum file size enforcement
- MIME type detection using libmagic (content sniffing, never the client header)
- MIME to extension mapping and the literal extension whitelist
- Collision-resistant storage name generation

Security Constraints:
- The extension of a stored file is derived from sniffed content only
- The client-declared filename never takes part in a trust decision
- Generated names never incorporate client-supplied strings
"""

import os
import secrets
import time

from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Protocol

import magic


# =============================================================================
# CONSTANTS - Size Limits
# =============================================================================

# Bytes in a kilobyte (for size conversions and comparisons)
BYTES_PER_KB: int = 1024

# Maximum allowed file size: 10 MiB
MAX_FILE_SIZE_BYTES: int = 10 * BYTES_PER_KB * BYTES_PER_KB

# Longest edge of a sanitized JPEG
MAX_IMAGE_DIMENSION: int = 1024


# =============================================================================
# CONSTANTS - Allowed Types
# =============================================================================

# MIME types accepted after content sniffing
ALLOWED_MIME_TYPES: frozenset[str] = frozenset(
    {
        "image/jpeg",
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }
)

# Sole source of truth for the stored file's extension
MIME_EXTENSION_MAP: Mapping[str, str] = MappingProxyType(
    {
        "image/jpeg": "jpg",
        "application/pdf": "pdf",
        "application/msword": "doc",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    }
)

# Literal suffix whitelist checked independently of MIME_EXTENSION_MAP; a
# divergence between the two tables rejects the upload.
VALID_FILE_EXTENSIONS: frozenset[str] = frozenset({".jpg", ".pdf", ".doc", ".docx"})

# Extension that switches on image verification and re-encoding
IMAGE_EXTENSION: str = "jpg"


# =============================================================================
# CONSTANTS - Upload Transport Errors
# =============================================================================

# "No error" sentinel reported by the hosting environment
UPLOAD_ERR_OK: int = 0

UPLOAD_ERROR_MESSAGES: Mapping[int, str] = MappingProxyType(
    {
        1: "The uploaded file exceeds the upload max file size",
        2: "The uploaded file exceeds the max file size in form",
        3: "The uploaded file was only partially uploaded",
        4: "No file was uploaded",
        5: "Missing a temporary folder",
        6: "Failed to write file to disk",
        7: "File upload stopped by extension",
    }
)


# =============================================================================
# DESCRIPTOR STRUCTURE
# =============================================================================


def is_scalar_error_code(descriptor: Mapping[str, Any]) -> bool:
    """
    Check that the descriptor carries a single scalar error code.

    Numbers (int or float) and strings are scalars. A missing key, ``None``,
    a boolean or any composite value (list, tuple, dict, set, bytes)
    indicates tampering with the upload transport itself.
    """
    if "error_code" not in descriptor:
        return False
    value = descriptor["error_code"]
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float, str))


def normalize_error_code(value: int | float | str) -> int | None:
    """
    Return the error code as an int.

    Integral floats (``0.0``) and digit strings (``"0"``) are converted; any
    other float or string yields None, which the pipeline reports as an
    unrecognised transport error.
    """
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    text = value.strip()
    if text.lstrip("-").isdigit():
        return int(text)
    return None


def describe_upload_error(code: int | None) -> str:
    """Map a non-zero transport error code to its human-readable cause."""
    if code is None:
        return "Unrecognised upload error code"
    return UPLOAD_ERROR_MESSAGES.get(code, f"Unknown upload error code {code}")


# =============================================================================
# GENUINE UPLOAD VERIFICATION
# =============================================================================


class UploadedFileVerifier(Protocol):
    """Trusted check that a path was produced by the current upload request."""

    def __call__(self, path: Any) -> bool: ...


class TempDirUploadVerifier:
    """
    Confirm a temp path is a regular file inside the upload temp directory.

    Hosting environments write in-flight uploads to a dedicated directory.
    A descriptor naming any path outside it (``/etc/passwd``, a traversal such
    as ``../../app/config.py``, or a symlink planted inside it) is refused.
    """

    def __init__(self, upload_temp_dir: str | os.PathLike[str]) -> None:
        self.upload_temp_dir = Path(upload_temp_dir).resolve()

    def __call__(self, path: Any) -> bool:
        if not isinstance(path, (str, os.PathLike)) or not str(path):
            return False

        candidate = Path(path)
        if candidate.is_symlink() or not candidate.is_file():
            return False

        resolved = candidate.resolve()
        return resolved.parent == self.upload_temp_dir or self.upload_temp_dir in resolved.parents

    def __repr__(self) -> str:
        return f"TempDirUploadVerifier({str(self.upload_temp_dir)!r})"


# =============================================================================
# FILE SIZE VALIDATION
# =============================================================================


def is_valid_declared_size(value: Any) -> bool:
    """Check the declared size is a non-negative integer (booleans excluded)."""
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def validate_file_size(file_size: int, max_size: int | None = None) -> dict[str, Any]:
    """
    Validate file size against the maximum allowed limit.

    Args:
        file_size: Size of file in bytes
        max_size: Optional maximum size in bytes. Defaults to MAX_FILE_SIZE_BYTES (10 MiB)

    Returns:
        Dictionary with validation results:
        - is_valid: True if size is within limit, False otherwise
        - error: Human-readable error message or None if valid
        - file_size: The original file size that was validated
        - max_size: The maximum size that was used for validation

    Example:
        >>> validate_file_size(1024 * 1024)["is_valid"]
        True
        >>> validate_file_size(10_485_761)["is_valid"]
        False
    """
    if max_size is None:
        max_size = MAX_FILE_SIZE_BYTES

    result: dict[str, Any] = {
        "is_valid": True,
        "error": None,
        "file_size": file_size,
        "max_size": max_size,
    }

    if file_size < 0:
        result["is_valid"] = False
        result["error"] = "Invalid file size: cannot be negative"
        return result

    if file_size > max_size:
        result["is_valid"] = False
        result["error"] = (
            f"File size ({format_file_size(file_size)}) exceeds maximum allowed "
            f"({format_file_size(max_size)})"
        )

    return result


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable string.

    Example:
        >>> format_file_size(1536)
        '1.50 KB'
        >>> format_file_size(10485760)
        '10.00 MB'
    """
    if size_bytes < 0:
        return "Invalid size"

    bytes_per_mb = BYTES_PER_KB * BYTES_PER_KB

    if size_bytes < BYTES_PER_KB:
        return f"{size_bytes} B"
    if size_bytes < bytes_per_mb:
        return f"{size_bytes / BYTES_PER_KB:.2f} KB"
    return f"{size_bytes / bytes_per_mb:.2f} MB"


# =============================================================================
# MIME TYPE DETECTION
# =============================================================================


def detect_mime_type(file_path: str | os.PathLike[str]) -> str | None:
    """
    Detect the MIME type of a file from its content using libmagic.

    The whole file is read; the size gate runs first so this is bounded by
    MAX_FILE_SIZE_BYTES. Office Open XML detection needs to see past the
    first zip entry, which is why the content isn't truncated.

    Args:
        file_path: Path to the file to inspect

    Returns:
        Lower-cased MIME type string, or None if the file can't be read or
        libmagic can't classify it.
    """
    try:
        with open(file_path, "rb") as fh:
            content = fh.read()
        detected = magic.from_buffer(content, mime=True)
    except (OSError, magic.MagicException):
        return None

    if not detected:
        return None
    return detected.lower().strip()


def extension_for_mime(mime_type: str | None) -> str | None:
    """Return the storage extension for an allowed MIME type, or None."""
    if mime_type is None or mime_type not in ALLOWED_MIME_TYPES:
        return None
    return MIME_EXTENSION_MAP.get(mime_type)


# =============================================================================
# NAME GENERATION & EXTENSION WHITELIST
# =============================================================================


def generate_upload_name(extension: str) -> str:
    """
    Build a collision-resistant storage name for a validated extension.

    The token is a nanosecond timestamp followed by 128 random bits from the
    ``secrets`` module. No part of it comes from the client.

    Example:
        >>> generate_upload_name("pdf")  # doctest: +SKIP
        '17a0c3e5b2d4f000-9f86d081884c7d659a2feaa0c55ad015.pdf'
    """
    token = f"{time.time_ns():x}-{secrets.token_hex(16)}"
    return f"{token}.{extension}"


def has_valid_extension(filename: str | None) -> bool:
    """
    Check a generated name's final suffix against the literal whitelist.

    Comparison is case-sensitive: generated names always use lower-case
    extensions, so anything else signals a divergence worth rejecting.
    """
    if not filename:
        return False
    dot = filename.rfind(".")
    if dot == -1:
        return False
    return filename[dot:] in VALID_FILE_EXTENSIONS


__all__ = [
    "ALLOWED_MIME_TYPES",
    "IMAGE_EXTENSION",
    "MAX_FILE_SIZE_BYTES",
    "MAX_IMAGE_DIMENSION",
    "MIME_EXTENSION_MAP",
    "TempDirUploadVerifier",
    "UPLOAD_ERROR_MESSAGES",
    "UPLOAD_ERR_OK",
    "UploadedFileVerifier",
    "VALID_FILE_EXTENSIONS",
    "describe_upload_error",
    "detect_mime_type",
    "extension_for_mime",
    "format_file_size",
    "generate_upload_name",
    "has_valid_extension",
    "is_scalar_error_code",
    "is_valid_declared_size",
    "normalize_error_code",
    "validate_file_size",
]
