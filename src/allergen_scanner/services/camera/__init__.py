"""
Camera Resource Manager - exclusive ownership of the capture device.
"""

from .base import CameraBackend, CameraSession
from .manager import CameraResourceManager
from .opencv_backend import OpenCVCameraBackend

__all__ = [
    "CameraBackend",
    "CameraSession",
    "CameraResourceManager",
    "OpenCVCameraBackend",
]
