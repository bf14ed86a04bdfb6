"""Business logic services."""

from .connectivity import ConnectivityMonitor
from .image_source import ImageSourceNormalizer
from .notifications import Notification, NotificationChannel, Severity
from .pipeline import PipelineOrchestrator, RunTicket
from .recommendations import RecommendationService
from .session import ScannerSession

__all__ = [
    "ConnectivityMonitor",
    "ImageSourceNormalizer",
    "Notification",
    "NotificationChannel",
    "PipelineOrchestrator",
    "RecommendationService",
    "RunTicket",
    "ScannerSession",
    "Severity",
]
