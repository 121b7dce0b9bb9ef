"""
Upload models for Upload Guard.

This module defines the shape of the raw upload descriptor handed over by the
hosting environment, the typed failure taxonomy of the validation pipeline,
and the immutable result snapshot exposed after validation.
"""

from enum import Enum
from typing import Any, TypedDict

from pydantic import BaseModel, ConfigDict, Field


class UploadDescriptor(TypedDict, total=False):
    """
    Raw upload record as supplied by the hosting environment.

    Every value is attacker-controlled. The validator accepts any mapping and
    revalidates each field, so this type documents the expected keys only.
    """

    error_code: Any
    temp_path: Any
    size: Any
    filename: Any


class FailureKind(str, Enum):
    """Reason a validation run was rejected, one member per pipeline gate."""

    MALFORMED_DESCRIPTOR = "malformed_descriptor"
    UPLOAD_TRANSPORT_ERROR = "upload_transport_error"
    NOT_AN_UPLOADED_FILE = "not_an_uploaded_file"
    FILE_TOO_LARGE = "file_too_large"
    DISALLOWED_TYPE = "disallowed_type"
    INVALID_EXTENSION = "invalid_extension"
    NOT_AN_IMAGE = "not_an_image"
    IMAGE_DECODE_FAILED = "image_decode_failed"
    RELOCATION_FAILED = "relocation_failed"


class UploadResult(BaseModel):
    """
    Terminal state of one validation run.

    When ``failed`` is True every transformation output is None and
    ``is_image`` is False.
    """

    model_config = ConfigDict(frozen=True)

    final_path: str | None = Field(default=None, description="Where the stored file now lives")
    file_name: str | None = Field(default=None, description="Generated collision-resistant name")
    mime: str | None = Field(default=None, description="MIME type sniffed from file content")
    extension: str | None = Field(default=None, description="Extension derived from the MIME type")
    is_image: bool = Field(default=False, description="True when the upload was a sanitized JPEG")
    failed: bool = Field(default=False, description="True when any pipeline gate rejected the upload")
    error_message: str | None = Field(default=None, description="Human-readable failure cause")
    failure_kind: FailureKind | None = Field(default=None, description="Typed failure cause")

    @property
    def succeeded(self) -> bool:
        """Check whether the upload was stored."""
        return not self.failed and self.final_path is not None
