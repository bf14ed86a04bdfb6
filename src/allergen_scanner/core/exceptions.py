"""Custom exception classes for the scanner."""

from typing import Any

from allergen_scanner.models.scan import (
    CameraDenialReason,
    PipelineKind,
    PreconditionFailure,
)


class APIError(Exception):
    """Base exception for user-facing errors."""

    title = "Error"

    def __init__(self, message: str, status_code: int = 400, details: Any = None):
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Validation error."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message=message, status_code=422, details=details)


class EmptyFileError(APIError):
    """An uploaded image had no content."""

    title = "Empty File"

    def __init__(self):
        super().__init__(message="Image is required", status_code=422)


# Title and description shown for each camera failure
_CAMERA_MESSAGES: dict[CameraDenialReason, tuple[str, str]] = {
    CameraDenialReason.NOT_ALLOWED: (
        "Camera Access Denied",
        "Please enable camera permissions in your settings to use this feature.",
    ),
    CameraDenialReason.NOT_FOUND: (
        "No Camera Found",
        "We couldn't find a camera on your device.",
    ),
    CameraDenialReason.UNSUPPORTED: (
        "Camera Not Supported",
        "Camera capture is not supported on this device.",
    ),
    CameraDenialReason.OTHER: (
        "Camera Error",
        "Could not access the camera. Please try again.",
    ),
}

_CAMERA_STATUS_CODES: dict[CameraDenialReason, int] = {
    CameraDenialReason.NOT_ALLOWED: 403,
    CameraDenialReason.NOT_FOUND: 404,
    CameraDenialReason.UNSUPPORTED: 501,
    CameraDenialReason.OTHER: 503,
}


class CameraError(APIError):
    """The camera could not be opened or read."""

    def __init__(self, reason: CameraDenialReason, message: str | None = None):
        title, description = _CAMERA_MESSAGES[reason]
        self.reason = reason
        self.title = title
        super().__init__(
            message=message or description,
            status_code=_CAMERA_STATUS_CODES[reason],
            details={"reason": reason.value},
        )


class CameraCancelledError(CameraError):
    """The camera was released while an open request was still pending."""

    def __init__(self):
        super().__init__(
            CameraDenialReason.OTHER,
            message="Camera request was cancelled before the device became available",
        )


class CameraNotReadyError(APIError):
    """A frame was requested from a camera session that is not granted and open."""

    title = "Camera Not Ready"

    def __init__(self, message: str = "Camera is not open"):
        super().__init__(message=message, status_code=409)


class PipelinePreconditionError(APIError):
    """A pipeline could not start."""

    def __init__(self, failure: PreconditionFailure, kind: PipelineKind):
        self.failure = failure
        self.kind = kind
        if failure == PreconditionFailure.OFFLINE:
            self.title = "You're Offline"
            action = "analyze food" if kind == PipelineKind.ANALYZE_FOOD else "scan labels"
            message = f"An internet connection is required to {action}."
            status_code = 503
        else:
            self.title = "No Image"
            message = "Please select an image first."
            status_code = 409
        super().__init__(
            message=message,
            status_code=status_code,
            details={"failure": failure.value, "kind": kind.value},
        )


class AnalysisFailedError(APIError):
    """A stage-1 or stage-2 remote operation failed."""

    title = "Analysis Failed"

    def __init__(self, kind: PipelineKind, cause: str | None = None):
        self.kind = kind
        if kind == PipelineKind.ANALYZE_FOOD:
            message = "Could not analyze the food item."
        else:
            message = "Could not analyze the product label."
        super().__init__(
            message=message,
            status_code=502,
            details={"kind": kind.value, "cause": cause},
        )


class OfflineError(APIError):
    """A network-only action was attempted while offline."""

    title = "You're Offline"

    def __init__(self, action: str):
        super().__init__(
            message=f"An internet connection is required to {action}.",
            status_code=503,
            details={"action": action},
        )


class ProfileRequiredError(APIError):
    """Recommendations need at least one allergen in the profile."""

    title = "Update Your Profile"

    def __init__(self):
        super().__init__(
            message="Please add at least one allergen to your profile to get recommendations.",
            status_code=422,
        )


class RecommendationError(APIError):
    """Recommendations could not be fetched."""

    def __init__(self, credentials_invalid: bool = False):
        self.credentials_invalid = credentials_invalid
        if credentials_invalid:
            self.title = "Action Required: API Key Error"
            message = (
                "The API key is missing or invalid. "
                "Set INFERENCE_API_KEY in your .env file."
            )
        else:
            message = "Could not fetch recommendations. Please try again later."
        super().__init__(
            message=message,
            status_code=502,
            details={"credentials_invalid": credentials_invalid},
        )
