"""
Pytest Configuration and Test Fixtures for Upload Guard

This module provides:
- Isolated upload temp and destination directories per test
- Settings pointing the pipeline at those directories
- A factory that writes bytes into the temp directory and returns a descriptor
- Synthetic JPEG, PDF and DOCX payloads
"""

import os
import zipfile
from io import BytesIO
from pathlib import Path
from typing import Any, Callable, Dict

import pytest
from PIL import Image

from upload_guard.config import Settings


# ==============================================================================
# Pytest Configuration
# ==============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """
    Configure pytest with custom markers for test categorization.

    Markers defined:
    - unit: isolated tests of a single helper
    - integration: full pipeline runs touching the filesystem
    """
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")


# ==============================================================================
# Directory & Settings Fixtures
# ==============================================================================


@pytest.fixture
def upload_temp_dir(tmp_path: Path) -> Path:
    """Directory standing in for the hosting environment's upload spool."""
    path = tmp_path / "incoming"
    path.mkdir()
    return path


@pytest.fixture
def upload_destination(tmp_path: Path) -> Path:
    """Private storage directory validated uploads are moved into."""
    path = tmp_path / "store"
    path.mkdir()
    return path


@pytest.fixture
def test_settings(upload_temp_dir: Path, upload_destination: Path) -> Settings:
    """
    Create a Settings instance bound to the per-test directories.

    Returns:
        Settings: Configured Settings instance for testing
    """
    return Settings(
        app_env="testing",
        log_level="debug",
        upload_destination=upload_destination,
        upload_temp_dir=upload_temp_dir,
    )


@pytest.fixture
def make_upload(upload_temp_dir: Path) -> Callable[..., Dict[str, Any]]:
    """
    Factory writing ``content`` into the temp directory and returning a descriptor.

    Keyword overrides replace descriptor fields, so tests can tamper with
    ``error_code``, ``size`` or ``temp_path`` after the file exists.
    """
    counter = {"n": 0}

    def _make(content: bytes, filename: str = "upload.bin", **overrides: Any) -> Dict[str, Any]:
        counter["n"] += 1
        temp_path = upload_temp_dir / f"php{counter['n']:04d}"
        temp_path.write_bytes(content)
        descriptor: Dict[str, Any] = {
            "error_code": 0,
            "temp_path": str(temp_path),
            "size": len(content),
            "filename": filename,
        }
        descriptor.update(overrides)
        return descriptor

    return _make


# ==============================================================================
# Sample Payload Fixtures
# ==============================================================================


def build_jpeg(size: tuple[int, int], color: str = "green", **save_kwargs: Any) -> bytes:
    """Render a solid-colour JPEG of ``size`` and return its bytes."""
    img = Image.new("RGB", size, color=color)
    buf = BytesIO()
    img.save(buf, format="JPEG", quality=85, **save_kwargs)
    return buf.getvalue()


def build_noise_jpeg(size: tuple[int, int]) -> bytes:
    """Render a random-noise JPEG; noise keeps the compressed scan data large."""
    img = Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3))
    buf = BytesIO()
    img.save(buf, format="JPEG", quality=95)
    return buf.getvalue()


@pytest.fixture
def test_image_jpg() -> bytes:
    """Small 100x100 JPEG."""
    return build_jpeg((100, 100))


@pytest.fixture
def test_image_large_jpg() -> bytes:
    """2048x1536 JPEG, larger than the 1024 px cap on both edges."""
    return build_jpeg((2048, 1536), color="blue")


@pytest.fixture
def test_pdf_content() -> bytes:
    """
    Create minimal PDF content for PDF upload testing.

    Returns:
        bytes: Minimal valid PDF file bytes
    """
    return b"""%PDF-1.4
1 0 obj
<< /Type /Catalog /Pages 2 0 R >>
endobj
2 0 obj
<< /Type /Pages /Kids [3 0 R] /Count 1 >>
endobj
3 0 obj
<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] >>
endobj
xref
0 4
0000000000 65535 f
0000000009 00000 n
0000000058 00000 n
0000000115 00000 n
trailer
<< /Size 4 /Root 1 0 R >>
startxref
193
%%EOF"""


@pytest.fixture
def test_docx_content() -> bytes:
    """
    Minimal Word 2007+ document.

    libmagic recognises OOXML by ``[Content_Types].xml`` as the first zip
    member followed by entries under ``word/``, so member order matters.
    """
    buf = BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as docx:
        docx.writestr(
            "[Content_Types].xml",
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
            '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
            '<Default Extension="rels" '
            'ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
            '<Default Extension="xml" ContentType="application/xml"/>'
            '<Override PartName="/word/document.xml" ContentType="application/'
            'vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>'
            "</Types>",
        )
        docx.writestr(
            "_rels/.rels",
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
            '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
            '<Relationship Id="rId1" Type="http://schemas.openxmlformats.org/officeDocument/'
            '2006/relationships/officeDocument" Target="word/document.xml"/>'
            "</Relationships>",
        )
        docx.writestr(
            "word/document.xml",
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
            '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
            "<w:body><w:p><w:r><w:t>Curriculum vitae</w:t></w:r></w:p></w:body>"
            "</w:document>",
        )
    return buf.getvalue()


@pytest.fixture
def test_text_content() -> bytes:
    """Plain text payload."""
    return b"This is a sample text file for testing.\nIt has multiple lines.\n"


@pytest.fixture
def jpeg_factory() -> Callable[..., bytes]:
    """Expose ``build_jpeg`` to tests needing custom sizes or save options."""
    return build_jpeg


@pytest.fixture
def noise_jpeg_factory() -> Callable[[tuple[int, int]], bytes]:
    """Expose ``build_noise_jpeg`` to tests."""
    return build_noise_jpeg
