"""
Upload Guard

Validation pipeline for a single untrusted file upload. An upload is checked
for transport tampering, size, true content type and (for JPEGs) decodability,
then re-encoded if it is an image and moved under a generated name into a
destination directory that lives outside the web root.

Package Structure:
- config: Settings loaded from environment / .env
- models/: descriptor shape, failure taxonomy and result snapshot
- services/: the UploadValidator pipeline
- utils/: file checks, image sanitization and logging helpers

Host applications call ``configure_logging()`` once at startup, then build an
``UploadValidator`` per incoming file.
"""

from upload_guard.models.upload import FailureKind, UploadDescriptor, UploadResult
from upload_guard.services.upload_validator import UploadValidator
from upload_guard.utils.logger import configure_logging


__version__ = "1.0.0"
__app_name__ = "upload-guard"

__all__ = [
    "FailureKind",
    "UploadDescriptor",
    "UploadResult",
    "UploadValidator",
    "configure_logging",
]
