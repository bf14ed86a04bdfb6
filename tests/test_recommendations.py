"""Unit tests for the recommendation service."""

import pytest

from allergen_scanner.core.exceptions import (
    OfflineError,
    ProfileRequiredError,
    RecommendationError,
)
from allergen_scanner.models.recommendation import RecommendationOutput, RecommendedFood
from allergen_scanner.services.inference import InferenceError
from allergen_scanner.services.notifications import Severity
from allergen_scanner.services.recommendations import RecommendationService

PLACEHOLDER = "https://placehold.test/600x400.png"


@pytest.fixture
def service(inference, online, notifications) -> RecommendationService:
    inference.recommend_safe_foods.return_value = RecommendationOutput(
        recommendations=[
            RecommendedFood(name="Waakye", description="Rice and beans", reasoning="No peanuts", image_hint="rice beans"),
            RecommendedFood(name="Kenkey", description="Fermented maize", reasoning="No peanuts"),
        ],
        overall_reasoning="Peanut-free West African staples.",
    )
    return RecommendationService(
        inference=inference,
        is_online=lambda: online["value"],
        notifications=notifications,
        placeholder_image_url=PLACEHOLDER,
    )


class TestRecommend:
    """Tests for RecommendationService.recommend."""

    @pytest.mark.asyncio
    async def test_recommendations_get_images(self, service, inference):
        response = await service.recommend(["peanuts"], cuisine="Ghanaian")

        assert [r.name for r in response.recommendations] == ["Waakye", "Kenkey"]
        assert all(r.image_url.startswith("data:image/png") for r in response.recommendations)
        assert response.overall_reasoning == "Peanut-free West African staples."

        query = inference.recommend_safe_foods.await_args.args[0]
        assert query.allergy_profile.allergens == ["peanuts"]
        assert query.cuisine_preference == "Ghanaian"

        prompts = sorted(call.args[0] for call in inference.generate_food_image.await_args_list)
        assert prompts == ["Kenkey", "Waakye, rice beans"]

    @pytest.mark.asyncio
    async def test_blank_cuisine_means_any(self, service, inference):
        await service.recommend(["peanuts"], cuisine="   ")

        query = inference.recommend_safe_foods.await_args.args[0]
        assert query.cuisine_preference == "any"

    @pytest.mark.asyncio
    async def test_failed_image_uses_placeholder(self, service, inference):
        """Test one failed image doesn't fail the whole response."""

        async def generate(prompt):
            if prompt.startswith("Kenkey"):
                raise InferenceError("quota", error_code="NOT_SUPPORTED")
            return "data:image/png;base64,BBBB"

        inference.generate_food_image.side_effect = generate

        response = await service.recommend(["peanuts"])

        images = {r.name: r.image_url for r in response.recommendations}
        assert images == {"Waakye": "data:image/png;base64,BBBB", "Kenkey": PLACEHOLDER}

    @pytest.mark.asyncio
    async def test_offline(self, service, inference, online, notifications):
        online["value"] = False

        with pytest.raises(OfflineError):
            await service.recommend(["peanuts"])

        inference.recommend_safe_foods.assert_not_called()
        [notification] = notifications.drain()
        assert notification.message == "An internet connection is required to get recommendations."

    @pytest.mark.asyncio
    async def test_empty_profile(self, service, inference, notifications):
        with pytest.raises(ProfileRequiredError):
            await service.recommend([])

        inference.recommend_safe_foods.assert_not_called()
        [notification] = notifications.drain()
        assert notification.severity == Severity.INFO
        assert notification.title == "Update Your Profile"

    @pytest.mark.asyncio
    async def test_invalid_credentials_flagged(self, service, inference, notifications):
        inference.recommend_safe_foods.side_effect = InferenceError(
            "rejected", error_code="INVALID_CREDENTIALS"
        )

        with pytest.raises(RecommendationError) as exc_info:
            await service.recommend(["peanuts"])

        assert exc_info.value.credentials_invalid
        assert exc_info.value.title == "Action Required: API Key Error"
        [notification] = notifications.drain()
        assert notification.severity == Severity.DESTRUCTIVE

    @pytest.mark.asyncio
    async def test_other_failure_not_flagged_as_credentials(self, service, inference):
        inference.recommend_safe_foods.side_effect = InferenceError("down", error_code="CONNECTION_ERROR")

        with pytest.raises(RecommendationError) as exc_info:
            await service.recommend(["peanuts"])

        assert not exc_info.value.credentials_invalid
        assert exc_info.value.message == "Could not fetch recommendations. Please try again later."
