"""
Ollama provider for remote inference.

Uses an Ollama instance: a vision model (LLaVA) for dish classification and
label OCR, and a text model for allergen checks and recommendations.
"""

import json
import logging
import time
from typing import Any, Sequence

import httpx

from allergen_scanner.models.recommendation import (
    RecommendationOutput,
    RecommendationQuery,
    RecommendedFood,
)
from allergen_scanner.models.scan import (
    AllergenCheck,
    Classification,
    ExtractedText,
    FoodDetails,
    ImagePayload,
    RiskLevel,
)

from .base import InferenceError, InferenceService
from .prompts import (
    CLASSIFY_FOOD_PROMPT,
    DETECT_ALLERGENS_PROMPT,
    EXTRACT_TEXT_PROMPT,
    RECOMMEND_SAFE_FOODS_PROMPT,
)

logger = logging.getLogger(__name__)


def extract_json(text: str) -> str | None:
    """Extract the first JSON object from a text response."""
    text = text.strip()

    start = text.find("{")
    if start == -1:
        return None

    # Find the matching end brace, ignoring braces inside strings
    brace_count = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        char = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            brace_count += 1
        elif char == "}":
            brace_count -= 1
            if brace_count == 0:
                return text[start : i + 1]

    return None


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


class OllamaInference(InferenceService):
    """
    Remote inference using Ollama.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        vision_model: str = "llava:7b",
        text_model: str = "llama3.1:8b",
        timeout: float = 60.0,
        api_key: str = "",
    ):
        """
        Initialize Ollama provider.

        Args:
            base_url: Ollama API base URL
            vision_model: Model used for image operations
            text_model: Model used for text-only operations
            timeout: Request timeout in seconds
            api_key: Optional bearer token (for authenticated proxies)
        """
        self.base_url = base_url.rstrip("/")
        self.vision_model = vision_model
        self.text_model = text_model
        self.timeout = timeout
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else None
        self._client = httpx.AsyncClient(timeout=timeout, headers=headers)

    @property
    def provider_name(self) -> str:
        return f"ollama/{self.vision_model}+{self.text_model}"

    # =========================================================================
    # Operations
    # =========================================================================

    async def classify_food(self, image: ImagePayload) -> Classification:
        data = await self._generate_json(
            self.vision_model,
            CLASSIFY_FOOD_PROMPT,
            images=[image],
            operation="classify_food",
        )
        return self._parse_classification(data)

    async def extract_text(self, image: ImagePayload) -> ExtractedText:
        data = await self._generate_json(
            self.vision_model,
            EXTRACT_TEXT_PROMPT,
            images=[image],
            operation="extract_text",
        )
        text = data.get("text") or ""
        return ExtractedText(text=str(text).strip())

    async def detect_allergens(
        self,
        ingredients_text: str,
        allergens: Sequence[str],
    ) -> AllergenCheck:
        prompt = DETECT_ALLERGENS_PROMPT.format(
            allergens=", ".join(allergens) or "none",
            ingredients=ingredients_text,
        )
        data = await self._generate_json(
            self.text_model, prompt, operation="detect_allergens"
        )
        return self._parse_allergen_check(data, allergens)

    async def recommend_safe_foods(self, query: RecommendationQuery) -> RecommendationOutput:
        prompt = RECOMMEND_SAFE_FOODS_PROMPT.format(
            allergens=", ".join(query.allergy_profile.allergens),
            dietary_preferences=query.allergy_profile.dietary_preferences,
            nutrition_goals=query.nutrition_goals,
            cuisine_preference=query.cuisine_preference,
        )
        data = await self._generate_json(
            self.text_model,
            prompt,
            operation="recommend_safe_foods",
            temperature=0.7,
        )

        recommendations = []
        for item in data.get("recommendations", []) or []:
            if not isinstance(item, dict) or not item.get("name"):
                logger.warning(f"Skipping malformed recommendation: {item!r}")
                continue
            recommendations.append(
                RecommendedFood(
                    name=str(item["name"]),
                    description=str(item.get("description", "")),
                    reasoning=str(item.get("reasoning", "")),
                    image_hint=str(item.get("image_hint", "")),
                )
            )

        return RecommendationOutput(
            recommendations=recommendations,
            overall_reasoning=str(data.get("overall_reasoning", "")),
        )

    async def health_check(self) -> bool:
        """Check if Ollama is available and has the required models."""
        try:
            response = await self._client.get(f"{self.base_url}/api/tags")
            if response.status_code != 200:
                return False

            tags = response.json()
            models = [m.get("name", "") for m in tags.get("models", [])]

            missing = [
                model
                for model in (self.vision_model, self.text_model)
                if not any(model in m or m.startswith(model.split(":")[0]) for m in models)
            ]
            if missing:
                logger.warning(f"Models {missing} not found. Available: {models}")
                return False

            return True

        except Exception as e:
            logger.error(f"Ollama health check failed: {e}")
            return False

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    # =========================================================================
    # Transport
    # =========================================================================

    async def _generate_json(
        self,
        model: str,
        prompt: str,
        *,
        operation: str,
        images: list[ImagePayload] | None = None,
        temperature: float = 0.1,
    ) -> dict[str, Any]:
        """Run a generate request and return the JSON object in the reply."""
        start_time = time.time()

        request_body: dict[str, Any] = {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "format": "json",
            "options": {
                "temperature": temperature,
                "num_predict": 1500,
            },
        }
        if images:
            request_body["images"] = [image.data_base64 for image in images]

        logger.info(f"Sending {operation} request to Ollama ({model})")

        try:
            response = await self._client.post(
                f"{self.base_url}/api/generate",
                json=request_body,
            )
        except httpx.RequestError as e:
            raise InferenceError(
                message=f"Failed to connect to Ollama: {e}",
                error_code="CONNECTION_ERROR",
                provider=self.provider_name,
                details={"operation": operation},
            ) from e

        if response.status_code in (401, 403):
            raise InferenceError(
                message="Ollama rejected the API key",
                error_code="INVALID_CREDENTIALS",
                provider=self.provider_name,
                details={"operation": operation, "status_code": response.status_code},
            )

        if response.status_code != 200:
            raise InferenceError(
                message=f"Ollama API error: {response.status_code}",
                error_code="PROVIDER_ERROR",
                provider=self.provider_name,
                details={
                    "operation": operation,
                    "status_code": response.status_code,
                    "body": response.text,
                },
            )

        raw_response = response.json().get("response", "")
        logger.debug(f"Raw Ollama {operation} response: {raw_response[:500]}...")

        json_str = extract_json(raw_response)
        if not json_str:
            raise InferenceError(
                message=f"No JSON object in {operation} response",
                error_code="PARSE_ERROR",
                provider=self.provider_name,
                details={"raw_response": raw_response[:1000]},
            )

        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise InferenceError(
                message=f"Invalid JSON in {operation} response: {e}",
                error_code="PARSE_ERROR",
                provider=self.provider_name,
                details={"raw_response": raw_response[:1000]},
            ) from e

        processing_time = int((time.time() - start_time) * 1000)
        logger.info(f"Ollama {operation} completed in {processing_time}ms")

        return data

    # =========================================================================
    # Parsing
    # =========================================================================

    def _parse_classification(self, data: dict[str, Any]) -> Classification:
        try:
            confidence = min(1.0, max(0.0, float(data.get("confidence", 0.5))))
        except (TypeError, ValueError):
            confidence = 0.5

        is_food = bool(data.get("is_food", False))

        food_details = None
        details = data.get("food_details")
        if is_food and isinstance(details, dict):
            food_details = FoodDetails(
                ingredients=_str_list(details.get("ingredients")),
                nutritional_summary=str(details.get("nutritional_summary", "")),
                region=str(details.get("region", "")),
                history=str(details.get("history", "")),
            )

        return Classification(
            label=str(data.get("label") or "Unknown"),
            confidence=confidence,
            is_food=is_food,
            food_details=food_details,
            alternative_suggestions=_str_list(data.get("alternative_suggestions")),
        )

    def _parse_allergen_check(
        self, data: dict[str, Any], allergens: Sequence[str]
    ) -> AllergenCheck:
        risk_str = str(data.get("risk_level", "")).strip().upper()
        try:
            risk_level = RiskLevel(risk_str)
        except ValueError:
            logger.warning(f"Unrecognized risk level {risk_str!r}, using UNKNOWN")
            risk_level = RiskLevel.UNKNOWN

        # Only report allergens that are actually in the profile; the flag follows the list
        profile = {a.lower(): a for a in allergens}
        detected = [
            profile[a.lower()]
            for a in _str_list(data.get("detected_allergens"))
            if a.lower() in profile
        ]

        return AllergenCheck(
            risk_level=risk_level,
            allergen_detected=bool(detected),
            detected_allergens=detected,
        )
