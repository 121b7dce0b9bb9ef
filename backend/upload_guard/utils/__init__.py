"""
Utilities Package for Upload Guard.

Modules:
--------
file_validator:
    Fixed tables and individual checks used by the pipeline:
    - Transport error taxonomy and descriptor structure checks
    - Genuine-upload verification of temporary paths
    - 10 MiB size ceiling
    - libmagic MIME sniffing and MIME to extension mapping
    - Literal extension whitelist and storage name generation

image:
    Pillow-based JPEG header check and sanitizing re-encode.

logger:
    Structured logging configuration:
    - JSONFormatter for structured log output
    - StandardFormatter for human-readable development logs
    - setup_logging for application-wide configuration
    - add_log_context for per-upload context fields
    - configure_logging to apply Settings at startup
"""

from upload_guard.utils.file_validator import (
    detect_mime_type,
    extension_for_mime,
    generate_upload_name,
    has_valid_extension,
    validate_file_size,
)
from upload_guard.utils.image import read_image_size, sanitize_jpeg
from upload_guard.utils.logger import (
    add_log_context,
    configure_logging,
    get_logger,
    setup_logging,
)


__all__ = [
    "add_log_context",
    "configure_logging",
    "detect_mime_type",
    "extension_for_mime",
    "generate_upload_name",
    "get_logger",
    "has_valid_extension",
    "read_image_size",
    "sanitize_jpeg",
    "setup_logging",
    "validate_file_size",
]
