"""Application configuration using Pydantic Settings."""

from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class InferenceProvider(str, Enum):
    """Supported remote inference providers."""
    OLLAMA = "ollama"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Inference Provider Selection
    inference_provider: InferenceProvider = InferenceProvider.OLLAMA

    # Ollama Configuration
    ollama_base_url: str = "http://localhost:11434"
    ollama_vision_model: str = "llava:7b"  # Classification + label OCR
    ollama_text_model: str = "llama3.1:8b"  # Allergen checks + recommendations
    ollama_timeout: float = 60.0
    inference_api_key: str = ""  # Sent as a bearer token when set

    # Connectivity
    connectivity_probe_path: str = "/api/tags"
    connectivity_probe_timeout: float = 3.0

    # Camera
    camera_device_index: int = 0  # Environment-facing device on the kiosk
    camera_frame_width: int = 1280
    camera_frame_height: int = 720
    capture_jpeg_quality: int = 92

    # Uploads
    max_upload_bytes: int = 10 * 1024 * 1024  # 10 MB

    # Recommendations
    placeholder_image_url: str = "https://placehold.co/600x400.png"

    # Notifications
    notification_backlog: int = 50

    # App
    log_level: str = "INFO"
    app_name: str = "Allergen Scanner API"
    api_version: str = "1.0.0"

    @property
    def is_inference_authenticated(self) -> bool:
        """Check if an API key is configured for the inference endpoint."""
        return bool(self.inference_api_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
