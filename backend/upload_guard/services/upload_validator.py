"""
Upload Guard Validation Pipeline

This module provides ``UploadValidator``, a single-use pipeline object built
around one raw upload descriptor. ``validate()`` runs a fixed, ordered chain
of gates and stops at the first one that rejects the upload:

 1. descriptor structure (scalar error code)
 2. transport error code
 3. genuine-upload verification of the temp path
 4. size ceiling (declared and on-disk)
 5. libmagic content sniff
 6. MIME to extension mapping
 7. collision-resistant name generation
 8. literal extension whitelist re-check
 9. JPEG header check
10. JPEG decode, downscale and re-encode
11. move into the destination directory

Each gate returns ``None`` to continue or a ``StageFailure``; nothing is
raised past ``validate()``. On failure every transformation output is reset
before the failure is recorded, so callers never observe a partial success.
"""

import logging
import os
import shutil

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from upload_guard.config import Settings, get_settings
from upload_guard.models.upload import FailureKind, UploadResult
from upload_guard.utils.file_validator import (
    IMAGE_EXTENSION,
    MAX_FILE_SIZE_BYTES,
    MAX_IMAGE_DIMENSION,
    UPLOAD_ERR_OK,
    TempDirUploadVerifier,
    UploadedFileVerifier,
    describe_upload_error,
    detect_mime_type,
    extension_for_mime,
    generate_upload_name,
    has_valid_extension,
    is_scalar_error_code,
    is_valid_declared_size,
    normalize_error_code,
    validate_file_size,
)
from upload_guard.utils.image import ImageSanitizeError, read_image_size, sanitize_jpeg
from upload_guard.utils.logger import add_log_context


# Configure module logger
logger = logging.getLogger(__name__)


class UploadGuardError(Exception):
    """Base exception for misuse of the upload validation API."""


class ValidatorAlreadyUsedError(UploadGuardError, RuntimeError):
    """Raised when ``validate()`` is called a second time on one validator."""


@dataclass(frozen=True, slots=True)
class StageFailure:
    """Outcome of a gate that rejected the upload."""

    kind: FailureKind
    message: str


class UploadValidator:
    """
    Validate one untrusted upload and store a safely renamed copy.

    The instance is single-use: construct it, call ``validate()`` once, then
    read the outcome through the accessors. Accessors return None (and
    ``is_image`` False) for every output when the run failed.

    Attributes:
        descriptor: Raw upload mapping as supplied by the hosting environment
        settings: Application settings (destination, temp dir, JPEG quality)
        verifier: Trusted genuine-upload check for the temp path

    Example:
        ```python
        validator = UploadValidator(
            {"error_code": 0, "temp_path": "/tmp/php8Fa1", "size": 20480, "filename": "cv.pdf"}
        ).validate()

        if validator.get_errors():
            print(validator.get_error_message())
        else:
            print(validator.get_location())
        ```
    """

    def __init__(
        self,
        descriptor: Mapping[str, Any],
        settings: Settings | None = None,
        verifier: UploadedFileVerifier | None = None,
    ) -> None:
        """
        Store the descriptor; no validation happens until ``validate()``.

        Args:
            descriptor: Raw upload record. Expected keys are ``error_code``,
                ``temp_path``, ``size`` and ``filename``; all are untrusted.
            settings: Settings to use. Defaults to ``get_settings()``.
            verifier: Genuine-upload check. Defaults to a
                ``TempDirUploadVerifier`` over ``settings.upload_temp_dir``.
        """
        self.descriptor = descriptor
        self.settings: Settings = settings or get_settings()
        self.verifier: UploadedFileVerifier = verifier or TempDirUploadVerifier(
            self.settings.upload_temp_dir
        )

        self._consumed = False
        self._content_mime: str | None = None
        self._extension: str | None = None
        self._generated_name: str | None = None
        self._is_image = False
        self._final_path: str | None = None
        self._failed = False
        self._failure_message: str | None = None
        self._failure_kind: FailureKind | None = None

    # =========================================================================
    # Pipeline
    # =========================================================================

    def _stages(self) -> tuple[Callable[[], StageFailure | None], ...]:
        return (
            self._check_malformed_descriptor,
            self._check_upload_error,
            self._check_is_uploaded_file,
            self._check_file_size,
            self._check_mime,
            self._make_extension,
            self._generate_name,
            self._check_extension,
            self._check_is_image,
            self._resize_image,
            self._move_upload,
        )

    def validate(self) -> "UploadValidator":
        """
        Run every gate in order, stopping at the first rejection.

        Never raises for a bad upload; inspect ``get_errors()`` afterwards.

        Returns:
            The validator itself, for chained accessor calls.

        Raises:
            ValidatorAlreadyUsedError: If called more than once.
        """
        if self._consumed:
            raise ValidatorAlreadyUsedError("UploadValidator instances are single-use")
        self._consumed = True

        client_filename = None
        if isinstance(self.descriptor, Mapping):
            client_filename = self.descriptor.get("filename")
        log = add_log_context(logger, client_filename=client_filename)

        for stage in self._stages():
            try:
                failure = stage()
            except Exception as error:
                log.exception("Unexpected error in upload stage %s", stage.__name__)
                failure = StageFailure(
                    self._unexpected_failure_kind(stage.__name__),
                    f"Upload validation failed: {error}",
                )

            if failure is not None:
                self._fail(failure)
                log.warning(
                    "Upload rejected: %s",
                    failure.message,
                    extra={"failure_kind": failure.kind, "stage": stage.__name__.lstrip("_")},
                )
                return self

        log.info(
            "Upload stored as %s",
            self._generated_name,
            extra={"mime": self._content_mime, "is_image": self._is_image},
        )
        return self

    # Kept for callers used to the chained ``check_file()`` name
    check_file = validate

    def _fail(self, failure: StageFailure) -> None:
        self._set_defaults()
        self._failed = True
        self._failure_message = failure.message
        self._failure_kind = failure.kind

    def _set_defaults(self) -> None:
        self._generated_name = None
        self._content_mime = None
        self._extension = None
        self._final_path = None
        self._is_image = False

    @staticmethod
    def _unexpected_failure_kind(stage_name: str) -> FailureKind:
        # Map an unexpected crash to the gate that was running
        return {
            "_check_malformed_descriptor": FailureKind.MALFORMED_DESCRIPTOR,
            "_check_upload_error": FailureKind.UPLOAD_TRANSPORT_ERROR,
            "_check_is_uploaded_file": FailureKind.NOT_AN_UPLOADED_FILE,
            "_check_file_size": FailureKind.FILE_TOO_LARGE,
            "_check_mime": FailureKind.DISALLOWED_TYPE,
            "_make_extension": FailureKind.DISALLOWED_TYPE,
            "_generate_name": FailureKind.INVALID_EXTENSION,
            "_check_extension": FailureKind.INVALID_EXTENSION,
            "_check_is_image": FailureKind.NOT_AN_IMAGE,
            "_resize_image": FailureKind.IMAGE_DECODE_FAILED,
        }.get(stage_name, FailureKind.RELOCATION_FAILED)

    # =========================================================================
    # Stages
    # =========================================================================

    def _check_malformed_descriptor(self) -> StageFailure | None:
        if not isinstance(self.descriptor, Mapping) or not is_scalar_error_code(self.descriptor):
            return StageFailure(FailureKind.MALFORMED_DESCRIPTOR, "Upload descriptor corruption attack")
        return None

    def _check_upload_error(self) -> StageFailure | None:
        code = normalize_error_code(self.descriptor["error_code"])
        if code != UPLOAD_ERR_OK:
            return StageFailure(
                FailureKind.UPLOAD_TRANSPORT_ERROR,
                f"Upload Error! {describe_upload_error(code)}",
            )
        return None

    def _check_is_uploaded_file(self) -> StageFailure | None:
        if not self.verifier(self.descriptor.get("temp_path")):
            return StageFailure(FailureKind.NOT_AN_UPLOADED_FILE, "No File Uploaded")
        return None

    def _check_file_size(self) -> StageFailure | None:
        declared = self.descriptor.get("size")
        if not is_valid_declared_size(declared):
            return StageFailure(FailureKind.MALFORMED_DESCRIPTOR, "Upload descriptor corruption attack")

        # The declared size is attacker-controlled, so the bytes on disk are checked too
        actual = os.path.getsize(self.descriptor["temp_path"])
        for source, size in (("declared", declared), ("actual", actual)):
            check = validate_file_size(size, MAX_FILE_SIZE_BYTES)
            if not check["is_valid"]:
                logger.info("Upload over size limit (%s): %s", source, check["error"])
                return StageFailure(FailureKind.FILE_TOO_LARGE, "Exceeded filesize limit")
        return None

    def _check_mime(self) -> StageFailure | None:
        self._content_mime = detect_mime_type(self.descriptor["temp_path"])
        if self._content_mime is None:
            return StageFailure(FailureKind.DISALLOWED_TYPE, "Not Allowed Filetype (mime) Type")
        return None

    def _make_extension(self) -> StageFailure | None:
        extension = extension_for_mime(self._content_mime)
        if extension is None:
            return StageFailure(FailureKind.DISALLOWED_TYPE, "Not Allowed Filetype (mime) Type")
        self._extension = extension
        return None

    def _generate_name(self) -> StageFailure | None:
        self._generated_name = generate_upload_name(self._extension)
        return None

    def _check_extension(self) -> StageFailure | None:
        if not has_valid_extension(self._generated_name):
            return StageFailure(FailureKind.INVALID_EXTENSION, "Not Valid Extension")
        return None

    def _check_is_image(self) -> StageFailure | None:
        if self._extension != IMAGE_EXTENSION:
            return None
        self._is_image = True
        if read_image_size(self.descriptor["temp_path"]) is None:
            return StageFailure(FailureKind.NOT_AN_IMAGE, "Not Image file")
        return None

    def _resize_image(self) -> StageFailure | None:
        if not self._is_image:
            return None
        try:
            sanitize_jpeg(
                self.descriptor["temp_path"],
                MAX_IMAGE_DIMENSION,
                self.settings.jpeg_quality,
            )
        except ImageSanitizeError as e:
            logger.debug("JPEG sanitization failed: %s", e)
            return StageFailure(FailureKind.IMAGE_DECODE_FAILED, "Malformed Image file")
        return None

    def _move_upload(self) -> StageFailure | None:
        destination = Path(self.settings.upload_destination) / self._generated_name
        try:
            shutil.move(os.fspath(self.descriptor["temp_path"]), destination)
        except OSError as e:
            logger.error("Failed to move upload to %s: %s", destination, e)
            return StageFailure(FailureKind.RELOCATION_FAILED, "Failed to move upload to destination")
        self._final_path = str(destination)
        return None

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def final_path(self) -> str | None:
        return self._final_path

    @property
    def generated_name(self) -> str | None:
        return self._generated_name

    @property
    def content_mime(self) -> str | None:
        return self._content_mime

    @property
    def extension(self) -> str | None:
        return self._extension

    @property
    def is_image(self) -> bool:
        return self._is_image

    @property
    def failed(self) -> bool:
        return self._failed

    @property
    def failure_message(self) -> str | None:
        return self._failure_message

    @property
    def failure_kind(self) -> FailureKind | None:
        return self._failure_kind

    def get_location(self) -> str | None:
        """Return the stored file's path."""
        return self._final_path

    def get_file_name(self) -> str | None:
        """Return the generated file name."""
        return self._generated_name

    def get_file_mime(self) -> str | None:
        """Return the MIME type sniffed from content."""
        return self._content_mime

    def get_extension(self) -> str | None:
        return self._extension

    def get_is_file_image(self) -> bool:
        """Return whether the upload was a (re-encoded) JPEG."""
        return self._is_image

    def get_errors(self) -> bool:
        """Return whether validation failed."""
        return self._failed

    def get_error_message(self) -> str | None:
        """Return the human-readable failure cause."""
        return self._failure_message

    def get_failure_kind(self) -> FailureKind | None:
        return self._failure_kind

    def result(self) -> UploadResult:
        """
        Snapshot the terminal state as an immutable ``UploadResult``.

        Raises:
            UploadGuardError: If ``validate()`` has not run yet.
        """
        if not self._consumed:
            raise UploadGuardError("validate() must be called before reading the result")
        return UploadResult(
            final_path=self._final_path,
            file_name=self._generated_name,
            mime=self._content_mime,
            extension=self._extension,
            is_image=self._is_image,
            failed=self._failed,
            error_message=self._failure_message,
            failure_kind=self._failure_kind,
        )

    def __repr__(self) -> str:
        state = "pending" if not self._consumed else ("failed" if self._failed else "stored")
        return f"<UploadValidator {state} name={self._generated_name!r}>"
