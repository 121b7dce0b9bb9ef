"""
Services module for Upload Guard.

- upload_validator: the ordered, fail-fast validation pipeline for one upload
"""

from upload_guard.services.upload_validator import (
    StageFailure,
    UploadGuardError,
    UploadValidator,
    ValidatorAlreadyUsedError,
)


__all__ = [
    "StageFailure",
    "UploadGuardError",
    "UploadValidator",
    "ValidatorAlreadyUsedError",
]
