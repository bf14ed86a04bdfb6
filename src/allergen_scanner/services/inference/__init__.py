"""
Inference Service - Facade over the remote classification, OCR,
allergen detection and recommendation operations.
"""

from .base import InferenceError, InferenceService
from .factory import create_inference_service
from .ollama_provider import OllamaInference

__all__ = [
    "InferenceError",
    "InferenceService",
    "OllamaInference",
    "create_inference_service",
]
