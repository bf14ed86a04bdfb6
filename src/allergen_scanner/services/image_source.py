"""Image source normalizer.

Uploads and captured camera frames both end up as one ImagePayload
(base64 + MIME type), so the pipeline never needs to know where an
image came from.
"""

import base64
import logging

import cv2
import numpy as np

from allergen_scanner.core.config import Settings, get_settings
from allergen_scanner.core.exceptions import EmptyFileError, ValidationError
from allergen_scanner.models.scan import ImagePayload, ImageSource

logger = logging.getLogger(__name__)

CAPTURE_MIME_TYPE = "image/jpeg"


class ImageSourceNormalizer:
    """Converts uploads and camera frames into ImagePayloads."""

    def __init__(self, max_upload_bytes: int, jpeg_quality: int = 92) -> None:
        """
        Args:
            max_upload_bytes: Largest accepted upload
            jpeg_quality: JPEG quality (0-100) for captured frames
        """
        self.max_upload_bytes = max_upload_bytes
        self.jpeg_quality = jpeg_quality

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ImageSourceNormalizer":
        if settings is None:
            settings = get_settings()
        return cls(
            max_upload_bytes=settings.max_upload_bytes,
            jpeg_quality=settings.capture_jpeg_quality,
        )

    def from_upload(self, file_bytes: bytes, mime_type: str | None) -> ImagePayload:
        """
        Normalize an uploaded file.

        Raises:
            EmptyFileError: If the file has no content
            ValidationError: If the file isn't an image or is too large
        """
        size = len(file_bytes)
        if size == 0:
            raise EmptyFileError()

        mime_type = (mime_type or "").split(";")[0].strip().lower()
        if not mime_type.startswith("image/"):
            raise ValidationError(
                f"Unsupported file type: {mime_type or 'unknown'}",
                details={"mime_type": mime_type},
            )

        self.check_size(size)

        logger.debug(f"Normalized upload ({mime_type}, {size} bytes)")

        return ImagePayload(
            data_base64=base64.b64encode(file_bytes).decode("utf-8"),
            mime_type=mime_type,
            source=ImageSource.UPLOAD,
        )

    def check_size(self, size: int) -> None:
        """Raise ValidationError if an upload of `size` bytes is over the limit."""
        if size > self.max_upload_bytes:
            raise ValidationError(
                f"Image exceeds maximum size of {self.max_upload_bytes // (1024 * 1024)} MB",
                details={"size": size, "max_size": self.max_upload_bytes},
            )

    def from_capture(self, frame: np.ndarray) -> ImagePayload:
        """Normalize a captured camera frame (BGR array) as a JPEG."""
        ok, encoded = cv2.imencode(
            ".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), self.jpeg_quality]
        )
        if not ok:
            # A frame from the camera manager always encodes; anything else is a bug
            raise ValueError("Failed to JPEG-encode captured frame")

        data = encoded.tobytes()
        logger.debug(f"Normalized capture ({frame.shape[1]}x{frame.shape[0]}, {len(data)} bytes)")

        return ImagePayload(
            data_base64=base64.b64encode(data).decode("utf-8"),
            mime_type=CAPTURE_MIME_TYPE,
            source=ImageSource.CAPTURE,
        )
