"""
Data models for Upload Guard.

- upload: raw descriptor shape, failure taxonomy and result snapshot
"""

from upload_guard.models.upload import FailureKind, UploadDescriptor, UploadResult


__all__ = [
    "FailureKind",
    "UploadDescriptor",
    "UploadResult",
]
