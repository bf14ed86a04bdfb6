"""
Base classes for camera access.

Defines the platform capture interface every backend implements, plus the
session record the resource manager hands out.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from allergen_scanner.models.scan import CameraDenialReason, CameraStatus, PermissionStatus


@dataclass
class CameraSession:
    """An exclusive claim on the camera hardware."""

    session_id: int
    permission: PermissionStatus = PermissionStatus.UNKNOWN
    denial_reason: CameraDenialReason | None = None
    stream: Any = field(default=None, repr=False)  # Backend stream handle
    closed: bool = False

    @property
    def is_live(self) -> bool:
        """Whether the session currently holds the hardware."""
        return self.stream is not None and not self.closed

    def status(self) -> CameraStatus:
        return CameraStatus(
            is_open=self.is_live,
            permission=self.permission,
            denial_reason=self.denial_reason,
        )


class CameraBackend(ABC):
    """
    Abstract platform capture API.

    Methods are blocking; the resource manager moves `open_stream` off the
    event loop since it may wait on a permission prompt.
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the name of this backend."""
        ...

    @abstractmethod
    def open_stream(self) -> Any:
        """
        Open the environment-facing capture device.

        Returns:
            Backend-specific stream handle

        Raises:
            CameraError: With the denial reason when the device can't be opened
        """
        ...

    @abstractmethod
    def read_frame(self, stream: Any) -> np.ndarray:
        """
        Read the current frame from an open stream.

        Returns:
            BGR image array of shape (H, W, 3)

        Raises:
            CameraError: If no frame could be read
        """
        ...

    @abstractmethod
    def release_stream(self, stream: Any) -> None:
        """Release all hardware held by the stream."""
        ...
