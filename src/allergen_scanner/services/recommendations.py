"""Safe-food recommendations for an allergy profile."""

import asyncio
import logging
from typing import Callable, Sequence

from allergen_scanner.core.exceptions import (
    OfflineError,
    ProfileRequiredError,
    RecommendationError,
)
from allergen_scanner.models.recommendation import (
    AllergyProfile,
    EnrichedRecommendation,
    RecommendationQuery,
    RecommendationResponse,
    RecommendedFood,
)

from .inference import InferenceError, InferenceService
from .notifications import NotificationChannel, Severity

logger = logging.getLogger(__name__)


class RecommendationService:
    """
    Fetches recommendations and attaches a generated image to each.

    Usage:
        service = RecommendationService(inference, monitor.is_online, notifications, placeholder)
        response = await service.recommend(["peanuts"], cuisine="Ghanaian")
    """

    def __init__(
        self,
        inference: InferenceService,
        is_online: Callable[[], bool],
        notifications: NotificationChannel,
        placeholder_image_url: str,
    ) -> None:
        self._inference = inference
        self._is_online = is_online
        self._notifications = notifications
        self._placeholder_image_url = placeholder_image_url

    async def recommend(
        self,
        allergens: Sequence[str],
        cuisine: str = "",
    ) -> RecommendationResponse:
        """
        Get recommendations for a profile.

        Raises:
            OfflineError: If offline (notified)
            ProfileRequiredError: If the profile has no allergens (notified)
            RecommendationError: If the remote call failed (notified); flags
                missing or invalid credentials separately
        """
        if not self._is_online():
            error = OfflineError("get recommendations")
            self._notifications.notify_error(error)
            raise error

        if not allergens:
            error = ProfileRequiredError()
            self._notifications.notify(Severity.INFO, error.title, error.message)
            raise error

        query = RecommendationQuery(
            allergy_profile=AllergyProfile(allergens=list(allergens)),
            cuisine_preference=cuisine.strip() or "any",
        )

        try:
            output = await self._inference.recommend_safe_foods(query)
        except Exception as e:
            logger.exception("Failed to get recommendations")
            credentials_invalid = isinstance(e, InferenceError) and e.is_credential_error
            self._notifications.notify(
                Severity.DESTRUCTIVE,
                "Error",
                "Could not fetch recommendations. Please try again.",
            )
            raise RecommendationError(credentials_invalid=credentials_invalid) from e

        enriched = await asyncio.gather(
            *(self._with_image(food) for food in output.recommendations)
        )

        logger.info(f"Generated {len(enriched)} recommendations")

        return RecommendationResponse(
            recommendations=list(enriched),
            overall_reasoning=output.overall_reasoning,
        )

    async def _with_image(self, food: RecommendedFood) -> EnrichedRecommendation:
        """Attach a generated image, or the placeholder if generation fails."""
        try:
            image_url = await self._inference.generate_food_image(
                f"{food.name}, {food.image_hint}" if food.image_hint else food.name
            )
        except Exception as e:
            logger.warning(f"Failed to generate image for {food.name}: {e}")
            image_url = self._placeholder_image_url
        return EnrichedRecommendation(**food.model_dump(), image_url=image_url)
