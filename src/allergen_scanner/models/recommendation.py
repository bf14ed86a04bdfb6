"""Pydantic models for safe-food recommendations."""

from pydantic import BaseModel, Field


class AllergyProfile(BaseModel):
    """Allergy profile sent to the recommendation operation."""

    allergens: list[str] = Field(default_factory=list)
    dietary_preferences: str = "None specified"


class RecommendationQuery(BaseModel):
    """Input of the remote recommendation operation."""

    allergy_profile: AllergyProfile
    nutrition_goals: str = "General healthy eating"
    cuisine_preference: str = "any"


class RecommendedFood(BaseModel):
    """A single recommended food."""

    name: str
    description: str = ""
    reasoning: str = Field("", description="Why the food fits the profile")
    image_hint: str = Field("", description="One or two keywords for image generation")


class RecommendationOutput(BaseModel):
    """Output of the remote recommendation operation."""

    recommendations: list[RecommendedFood] = Field(default_factory=list)
    overall_reasoning: str = ""


class EnrichedRecommendation(RecommendedFood):
    """Recommended food with an image attached."""

    image_url: str


class RecommendationRequest(BaseModel):
    """Request body for POST /recommendations."""

    allergens: list[str] = Field(default_factory=list, description="Active allergy profile")
    cuisine: str = Field("", description="Preferred cuisine (optional)")


class RecommendationResponse(BaseModel):
    """Response body for POST /recommendations."""

    recommendations: list[EnrichedRecommendation] = Field(default_factory=list)
    overall_reasoning: str = ""
