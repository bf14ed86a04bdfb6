"""Recommendation API routes."""

from fastapi import APIRouter

from allergen_scanner.api.dependencies import RecommendationServiceDep
from allergen_scanner.models.recommendation import RecommendationRequest, RecommendationResponse

router = APIRouter()


@router.post("", response_model=RecommendationResponse)
async def get_recommendations(
    body: RecommendationRequest,
    service: RecommendationServiceDep,
) -> RecommendationResponse:
    """
    Recommend foods that are safe for the given allergy profile.

    Each recommendation carries a generated image, or a placeholder when
    image generation is unavailable.
    """
    return await service.recommend(body.allergens, cuisine=body.cuisine)
