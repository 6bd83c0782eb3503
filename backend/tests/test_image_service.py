"""
Grocery Vision Backend — Image Service Unit Tests
===================================================

What:  Tests for ImageService validation (presence, extension, size, MIME type).
How:   Byte strings built in the test; the MIME sniffer is stubbed except in
       the libmagic test, which is skipped when python-magic cannot load.

Test Strategy:
    ✅ Allowed extensions (.jpg, .jpeg, .png, .gif, .webp), any case
    ✅ Rejected extensions (.pdf, .exe, none)
    ✅ Empty uploads → 400, oversized uploads → 413
    ✅ Non-image content → 400, sniffer failure → 500
"""

from unittest.mock import patch

import pytest

from grocery_vision.exceptions import (
    ImageProcessingError,
    PayloadTooLargeError,
    ValidationError,
)
from grocery_vision.services.image_service import ImageService

from conftest import StubbedImageService


class TestExtensionValidation:
    def setup_method(self):
        self.service = ImageService()

    @pytest.mark.parametrize(
        "filename", ["photo.jpg", "photo.jpeg", "shelf.png", "anim.gif", "snap.webp"]
    )
    def test_allowed_extensions(self, filename):
        assert self.service.validate_extension(filename).startswith(".")

    def test_extension_is_case_insensitive(self):
        assert self.service.validate_extension("PHOTO.JPG") == ".jpg"
        assert self.service.validate_extension("Fridge.WebP") == ".webp"

    def test_missing_filename_treated_as_jpeg(self):
        assert self.service.validate_extension(None) == ".jpg"
        assert self.service.validate_extension("") == ".jpg"

    @pytest.mark.parametrize("filename", ["document.pdf", "malware.exe", "noextension"])
    def test_rejected_extensions(self, filename):
        with pytest.raises(ValidationError, match="Only image files are allowed!") as exc_info:
            self.service.validate_extension(filename)
        assert exc_info.value.status_code == 400


class TestSizeValidation:
    def setup_method(self):
        self.service = ImageService(max_file_size=1024)

    def test_within_limit(self):
        self.service.validate_size(b"x" * 1000)

    def test_at_limit(self):
        self.service.validate_size(b"x" * 1024)

    def test_over_limit(self):
        with pytest.raises(PayloadTooLargeError) as exc_info:
            self.service.validate_size(b"x" * 1025)
        assert exc_info.value.status_code == 413
        assert exc_info.value.context["actual_size"] == 1025

    def test_ten_megabyte_message(self):
        service = ImageService()
        with pytest.raises(PayloadTooLargeError) as exc_info:
            service.validate_size(b"x", content_length=10 * 1024 * 1024 + 1)
        assert exc_info.value.message == "File too large. Maximum size is 10MB."

    def test_reported_length_checked_first(self):
        with pytest.raises(PayloadTooLargeError):
            self.service.validate_size(b"x", content_length=5000)

    def test_empty_file(self):
        with pytest.raises(ValidationError, match="empty") as exc_info:
            self.service.validate_size(b"")
        assert exc_info.value.status_code == 400

    def test_default_ceiling_is_ten_mebibytes(self):
        assert ImageService().max_file_size == 10 * 1024 * 1024


class TestMimeValidation:
    def test_image_mime_accepted(self, sample_image_bytes):
        service = StubbedImageService(mime_type="image/png")
        assert service.validate_mime_type(sample_image_bytes) == "image/png"

    def test_non_image_rejected(self):
        service = StubbedImageService(mime_type="application/pdf")
        with pytest.raises(ValidationError, match="not supported") as exc_info:
            service.validate_mime_type(b"%PDF-1.4")
        assert exc_info.value.context["detected_mime"] == "application/pdf"

    def test_sniffer_failure_is_processing_error(self):
        service = ImageService()
        with patch.object(service, "sniff_mime_type", side_effect=OSError("libmagic broke")):
            with pytest.raises(ImageProcessingError) as exc_info:
                service.validate_mime_type(b"\xff\xd8")
        assert exc_info.value.status_code == 500

    def test_real_libmagic_detects_png(self):
        pytest.importorskip("magic")
        png = (
            b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
            b"\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
        )
        assert ImageService().validate_mime_type(png) == "image/png"


class TestFullValidation:
    def setup_method(self):
        self.service = StubbedImageService()

    def test_returns_sniffed_mime(self, sample_image_bytes):
        assert self.service.validate("fridge.jpg", sample_image_bytes) == "image/jpeg"

    def test_no_content(self):
        with pytest.raises(ValidationError, match="No image uploaded"):
            self.service.validate("fridge.jpg", None)

    def test_extension_checked_before_size(self):
        with pytest.raises(ValidationError, match="Only image files"):
            self.service.validate("notes.txt", b"")
