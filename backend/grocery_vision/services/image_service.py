"""
Grocery Vision Backend — Image Upload Validation
==================================================

What:  Checks an uploaded image before it is sent to Gemini.
How:   Extension check, size check (Content-Length, then actual bytes),
       then MIME sniffing from magic bytes with python-magic.
Who:   Called by the detection routes for every upload.
When:  Before DetectionService; nothing invalid reaches the oracle.

Validation order (cheapest first):
    1. Presence       → 400 "No image uploaded"
    2. Extension      → 400 (jpg, jpeg, png, gif, webp)
    3. Empty / size   → 400 empty, 413 over MAX_FILE_SIZE
    4. MIME sniffing  → 400 unless the bytes are an image/* type

Uploads are validated in memory only; nothing is written to disk.
"""

import logging
from pathlib import Path
from typing import Optional

from grocery_vision.config import settings
from grocery_vision.exceptions import (
    ImageProcessingError,
    PayloadTooLargeError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}

# Camera captures arrive as blobs; treat a missing filename as a JPEG
DEFAULT_FILENAME = "upload.jpg"


class ImageService:
    """Validates uploaded image bytes and reports their sniffed MIME type."""

    def __init__(self, max_file_size: Optional[int] = None):
        """
        Args:
            max_file_size: Override settings.max_file_size (used in tests).
        """
        self.max_file_size = max_file_size or settings.max_file_size

    def validate_extension(self, filename: Optional[str]) -> str:
        """
        Returns: Normalized extension (lowercase with dot).
        Raises:  ValidationError if the extension is not allowed.
        """
        ext = Path(filename or DEFAULT_FILENAME).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message="Only image files are allowed!",
                field="image",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content: bytes, content_length: Optional[int] = None) -> None:
        """
        Reject empty uploads and uploads above the size ceiling.

        The Content-Length header is checked first, then the actual byte
        count (clients can send a wrong header).

        Raises:
            ValidationError: empty file
            PayloadTooLargeError: larger than max_file_size
        """
        if content_length and content_length > self.max_file_size:
            raise PayloadTooLargeError(max_size=self.max_file_size, actual_size=content_length)

        if not content:
            raise ValidationError(
                message="Uploaded file is empty. Please upload a valid image.",
                field="image",
            )

        if len(content) > self.max_file_size:
            raise PayloadTooLargeError(max_size=self.max_file_size, actual_size=len(content))

    def sniff_mime_type(self, content: bytes) -> str:
        """Detect the content type from the file's magic bytes."""
        import magic

        return magic.from_buffer(content, mime=True)

    def validate_mime_type(self, content: bytes) -> str:
        """
        Returns: Detected MIME type string (e.g., "image/jpeg").
        Raises:
            ValidationError: the bytes are not an image
            ImageProcessingError: the sniffer itself failed
        """
        try:
            mime_type = self.sniff_mime_type(content)
        except Exception as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise ImageProcessingError(context={"error": str(e)}) from e

        if not mime_type or not mime_type.startswith("image/"):
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    "The file must be a valid image."
                ),
                field="image",
                context={"detected_mime": mime_type},
            )
        return mime_type

    def validate(
        self,
        filename: Optional[str],
        content: Optional[bytes],
        content_length: Optional[int] = None,
    ) -> str:
        """
        Full validation pipeline.

        Args:
            filename:       Client-supplied filename (may be None for blobs).
            content:        Raw uploaded bytes; None when no file was sent.
            content_length: Reported upload size, if known.

        Returns:
            The sniffed MIME type, passed on to the oracle.
        """
        if content is None:
            raise ValidationError(message="No image uploaded", field="image")

        self.validate_extension(filename)
        self.validate_size(content, content_length)
        mime_type = self.validate_mime_type(content)

        logger.info(
            "Validated upload %s (%d bytes, %s)",
            filename or DEFAULT_FILENAME,
            len(content),
            mime_type,
        )
        return mime_type


image_service = ImageService()
