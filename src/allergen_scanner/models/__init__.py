"""Pydantic models."""

from .recommendation import (
    AllergyProfile,
    EnrichedRecommendation,
    RecommendationOutput,
    RecommendationQuery,
    RecommendationRequest,
    RecommendationResponse,
    RecommendedFood,
)
from .scan import (
    AllergenCheck,
    CameraDenialReason,
    CameraStatus,
    Classification,
    ExtractedText,
    FoodDetails,
    ImagePayload,
    ImageSource,
    ImageSummary,
    PermissionStatus,
    PipelineKind,
    PipelineRun,
    PreconditionFailure,
    RiskLevel,
    RunStatus,
    SessionPhase,
    SessionSnapshot,
    derive_risk_level,
)

__all__ = [
    # Scan
    "AllergenCheck",
    "CameraDenialReason",
    "CameraStatus",
    "Classification",
    "ExtractedText",
    "FoodDetails",
    "ImagePayload",
    "ImageSource",
    "ImageSummary",
    "PermissionStatus",
    "PipelineKind",
    "PipelineRun",
    "PreconditionFailure",
    "RiskLevel",
    "RunStatus",
    "SessionPhase",
    "SessionSnapshot",
    "derive_risk_level",
    # Recommendations
    "AllergyProfile",
    "EnrichedRecommendation",
    "RecommendationOutput",
    "RecommendationQuery",
    "RecommendationRequest",
    "RecommendationResponse",
    "RecommendedFood",
]
