"""OpenCV capture backend."""

import logging
import os
import sys
from pathlib import Path
from typing import Any

import cv2
import numpy as np

from allergen_scanner.core.exceptions import CameraError
from allergen_scanner.models.scan import CameraDenialReason

from .base import CameraBackend

logger = logging.getLogger(__name__)


class OpenCVCameraBackend(CameraBackend):
    """
    Camera access through cv2.VideoCapture.

    The device index selects the environment-facing camera on the host.
    """

    def __init__(
        self,
        device_index: int = 0,
        frame_width: int = 1280,
        frame_height: int = 720,
    ) -> None:
        self.device_index = device_index
        self.frame_width = frame_width
        self.frame_height = frame_height

    @property
    def backend_name(self) -> str:
        return f"opencv/{self.device_index}"

    def open_stream(self) -> cv2.VideoCapture:
        if not hasattr(cv2, "VideoCapture"):
            raise CameraError(
                CameraDenialReason.UNSUPPORTED,
                message="This OpenCV build has no video capture support.",
            )

        logger.info(f"Opening camera device {self.device_index}")

        try:
            capture = cv2.VideoCapture(self.device_index)
        except PermissionError as e:
            raise CameraError(CameraDenialReason.NOT_ALLOWED) from e
        except cv2.error as e:
            raise CameraError(CameraDenialReason.OTHER, message=f"Camera error: {e}") from e

        if not capture.isOpened():
            capture.release()
            raise CameraError(self._diagnose_open_failure())

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.frame_width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.frame_height)
        return capture

    def _diagnose_open_failure(self) -> CameraDenialReason:
        """Tell a denied device apart from a missing one where the OS allows it."""
        if sys.platform.startswith("linux"):
            device = Path(f"/dev/video{self.device_index}")
            if not device.exists():
                return CameraDenialReason.NOT_FOUND
            if not os.access(device, os.R_OK | os.W_OK):
                return CameraDenialReason.NOT_ALLOWED
            return CameraDenialReason.OTHER
        # Other platforms report both cases as a closed capture
        return CameraDenialReason.NOT_FOUND

    def read_frame(self, stream: Any) -> np.ndarray:
        ok, frame = stream.read()
        if not ok or frame is None:
            raise CameraError(
                CameraDenialReason.OTHER,
                message="Could not read a frame from the camera.",
            )
        return frame

    def release_stream(self, stream: Any) -> None:
        stream.release()
        logger.info(f"Released camera device {self.device_index}")
