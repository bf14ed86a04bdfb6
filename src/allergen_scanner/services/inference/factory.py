"""
Factory for creating inference service instances.

Reads configuration from settings and returns the appropriate provider.
"""

import logging

from allergen_scanner.core.config import InferenceProvider, Settings

from .base import InferenceError, InferenceService
from .ollama_provider import OllamaInference

logger = logging.getLogger(__name__)


# Supported providers
PROVIDERS: dict[InferenceProvider, type[InferenceService]] = {
    InferenceProvider.OLLAMA: OllamaInference,
}


def create_inference_service(settings: Settings) -> InferenceService:
    """
    Build the configured inference service.

    Raises:
        InferenceError: If the provider is not supported
    """
    provider = settings.inference_provider

    logger.info(f"Initializing inference provider: {provider.value}")

    if provider not in PROVIDERS:
        raise InferenceError(
            message=f"Unknown inference provider: {provider.value}",
            error_code="INVALID_PROVIDER",
            provider=provider.value,
            details={"supported_providers": [p.value for p in PROVIDERS]},
        )

    match provider:
        case InferenceProvider.OLLAMA:
            logger.info(
                f"Configuring Ollama provider: {settings.ollama_base_url}, "
                f"vision={settings.ollama_vision_model}, text={settings.ollama_text_model}"
            )
            return OllamaInference(
                base_url=settings.ollama_base_url,
                vision_model=settings.ollama_vision_model,
                text_model=settings.ollama_text_model,
                timeout=settings.ollama_timeout,
                api_key=settings.inference_api_key,
            )

    raise InferenceError(
        message=f"Provider {provider.value} is not yet implemented",
        error_code="NOT_IMPLEMENTED",
        provider=provider.value,
    )

