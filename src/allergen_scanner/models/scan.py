"""Pydantic models for the food scanner session.

Covers the staged image, the two-stage pipeline results, the camera
session status, and the snapshot returned to the presentation layer.
"""

import base64
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Enums
# =============================================================================


class PipelineKind(str, Enum):
    """Which analysis mode (tab) is active."""

    ANALYZE_FOOD = "analyze-food"  # Dish photo -> classification -> allergens
    SCAN_LABEL = "scan-label"  # Ingredient label -> OCR -> allergens


class RiskLevel(str, Enum):
    """UI-facing allergen danger level."""

    SAFE = "SAFE"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    UNKNOWN = "UNKNOWN"


class ImageSource(str, Enum):
    """Where a staged image came from."""

    UPLOAD = "upload"
    CAPTURE = "capture"


class PermissionStatus(str, Enum):
    """Camera permission state."""

    UNKNOWN = "unknown"
    GRANTED = "granted"
    DENIED = "denied"


class CameraDenialReason(str, Enum):
    """Why a camera could not be opened."""

    NOT_ALLOWED = "not-allowed"
    NOT_FOUND = "not-found"
    UNSUPPORTED = "unsupported"
    OTHER = "other"


class PreconditionFailure(str, Enum):
    """Checks that must pass before a pipeline may start."""

    OFFLINE = "offline"
    NO_IMAGE = "no-image"


class RunStatus(str, Enum):
    """Status of a pipeline run."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class SessionPhase(str, Enum):
    """What the session is currently showing."""

    IDLE = "idle"
    IMAGE_STAGED = "image-staged"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# =============================================================================
# Image
# =============================================================================


class ImagePayload(BaseModel):
    """A normalized, encoded still image ready for remote analysis."""

    model_config = ConfigDict(frozen=True)

    data_base64: str = Field(..., description="Base64-encoded image bytes")
    mime_type: str = Field(..., description="MIME type, e.g. image/jpeg")
    source: ImageSource = Field(..., description="Origin of the image")

    @property
    def data_uri(self) -> str:
        """Image as a data: URI."""
        return f"data:{self.mime_type};base64,{self.data_base64}"

    @property
    def raw_bytes(self) -> bytes:
        return base64.b64decode(self.data_base64)

    @property
    def size_bytes(self) -> int:
        # 4 base64 chars per 3 bytes, minus padding
        padding = self.data_base64.count("=", -2)
        return len(self.data_base64) * 3 // 4 - padding


class ImageSummary(BaseModel):
    """Staged image metadata included in session snapshots."""

    mime_type: str
    source: ImageSource
    size_bytes: int


# =============================================================================
# Stage results
# =============================================================================


class FoodDetails(BaseModel):
    """Detailed information about a classified dish."""

    ingredients: list[str] = Field(default_factory=list, description="Ordered ingredient list")
    nutritional_summary: str = Field("", description="Short nutritional summary")
    region: str = Field("", description="Region of origin")
    history: str = Field("", description="Cultural note / history")


class Classification(BaseModel):
    """Stage-1 result of the Analyze-Food pipeline."""

    label: str = Field(..., description="Name of the classified food")
    confidence: float = Field(ge=0.0, le=1.0, description="Confidence score 0-1")
    is_food: bool = Field(..., description="Whether the image shows food")
    food_details: FoodDetails | None = Field(
        None, description="Details when the dish could be analyzed"
    )
    alternative_suggestions: list[str] = Field(
        default_factory=list, description="Other plausible classifications"
    )

    @property
    def warrants_allergen_check(self) -> bool:
        return self.is_food and self.food_details is not None


class ExtractedText(BaseModel):
    """Stage-1 result of the Scan-Label pipeline."""

    text: str = Field("", description="Text read from the label, possibly empty")

    @property
    def warrants_allergen_check(self) -> bool:
        return bool(self.text)


class AllergenCheck(BaseModel):
    """Stage-2 result shared by both pipelines."""

    risk_level: RiskLevel = Field(..., description="Overall allergen risk")
    allergen_detected: bool = Field(..., description="Whether any profile allergen was found")
    detected_allergens: list[str] = Field(
        default_factory=list, description="Profile allergens found in the ingredients"
    )


def derive_risk_level(check: AllergenCheck | None) -> RiskLevel:
    """
    Map an allergen check to the displayed risk level.

    UNKNOWN when no check has completed, including runs where stage 1
    ruled the check out.
    """
    if check is None:
        return RiskLevel.UNKNOWN
    match check.risk_level:
        case RiskLevel.HIGH:
            return RiskLevel.HIGH
        case RiskLevel.MODERATE:
            return RiskLevel.MODERATE
        case RiskLevel.SAFE:
            return RiskLevel.SAFE
        case _:
            return RiskLevel.UNKNOWN


# =============================================================================
# Pipeline run
# =============================================================================


class PipelineRun(BaseModel):
    """Execution record for one invocation of a pipeline."""

    run_id: int = Field(..., description="Session generation this run belongs to")
    kind: PipelineKind
    status: RunStatus = RunStatus.RUNNING
    stage: int | None = Field(1, description="Active stage while running (1 or 2)")

    # Stage 1 (exactly one of these, depending on kind)
    classification: Classification | None = None
    extracted_text: ExtractedText | None = None

    # Stage 2
    allergen_check: AllergenCheck | None = None

    error: str | None = Field(None, description="Terminal error message")


# =============================================================================
# Camera + session snapshot
# =============================================================================


class CameraStatus(BaseModel):
    """Camera session state exposed to the presentation layer."""

    is_open: bool = False
    permission: PermissionStatus = PermissionStatus.UNKNOWN
    denial_reason: CameraDenialReason | None = None


class SessionSnapshot(BaseModel):
    """Everything currently on screen."""

    phase: SessionPhase
    active_kind: PipelineKind
    image: ImageSummary | None = None
    run: PipelineRun | None = None
    risk_level: RiskLevel = RiskLevel.UNKNOWN
    camera: CameraStatus = Field(default_factory=CameraStatus)
    error: str | None = Field(None, description="Inline error banner text")
