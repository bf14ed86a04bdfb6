"""
Base classes for the remote inference service.

Defines the abstract interface that all providers must implement. Results
use the scan and recommendation models so callers never see raw provider
payloads.
"""

from abc import ABC, abstractmethod
from typing import Any, Sequence

from allergen_scanner.models.recommendation import RecommendationOutput, RecommendationQuery
from allergen_scanner.models.scan import (
    AllergenCheck,
    Classification,
    ExtractedText,
    ImagePayload,
)


class InferenceError(Exception):
    """Error during a remote inference call."""

    def __init__(
        self,
        message: str,
        error_code: str = "INFERENCE_ERROR",
        provider: str = "unknown",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.provider = provider
        self.details = details or {}

    @property
    def is_credential_error(self) -> bool:
        return self.error_code == "INVALID_CREDENTIALS"


class InferenceService(ABC):
    """
    Abstract base class for remote inference providers.

    All providers (Ollama, hosted APIs, etc.) must implement this interface.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of this provider."""
        ...

    @abstractmethod
    async def classify_food(self, image: ImagePayload) -> Classification:
        """
        Classify the dish shown in an image.

        Raises:
            InferenceError: If classification fails
        """
        ...

    @abstractmethod
    async def extract_text(self, image: ImagePayload) -> ExtractedText:
        """
        Read the ingredient text printed on a product label.

        Raises:
            InferenceError: If extraction fails
        """
        ...

    @abstractmethod
    async def detect_allergens(
        self,
        ingredients_text: str,
        allergens: Sequence[str],
    ) -> AllergenCheck:
        """
        Check an ingredient list against an allergen profile.

        Args:
            ingredients_text: Ingredients as a single text
            allergens: The user's allergens

        Raises:
            InferenceError: If the check fails
        """
        ...

    @abstractmethod
    async def recommend_safe_foods(self, query: RecommendationQuery) -> RecommendationOutput:
        """
        Suggest foods that are safe for an allergy profile.

        Raises:
            InferenceError: If the request fails
        """
        ...

    async def generate_food_image(self, food_name: str) -> str:
        """
        Generate an illustrative image for a food.

        Returns:
            Image as a data: URI

        Raises:
            InferenceError: If generation fails or the provider can't generate images
        """
        raise InferenceError(
            message=f"{self.provider_name} does not support image generation",
            error_code="NOT_SUPPORTED",
            provider=self.provider_name,
        )

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the provider is available and healthy.

        Returns:
            True if the provider is ready to accept requests
        """
        ...

    async def close(self) -> None:
        """Release provider resources."""
        return None
