"""Pytest configuration and fixtures."""

import base64
import threading
import time
from typing import Any, AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from allergen_scanner.core.config import Settings
from allergen_scanner.main import create_app
from allergen_scanner.models.scan import (
    AllergenCheck,
    Classification,
    ExtractedText,
    FoodDetails,
    RiskLevel,
)
from allergen_scanner.services.camera import CameraBackend, CameraResourceManager
from allergen_scanner.services.connectivity import ConnectivityMonitor
from allergen_scanner.services.image_source import ImageSourceNormalizer
from allergen_scanner.services.inference import InferenceService
from allergen_scanner.services.notifications import NotificationChannel
from allergen_scanner.services.pipeline import PipelineOrchestrator
from allergen_scanner.services.session import ScannerSession


# Sample test image (1x1 red pixel PNG)
TINY_PNG_BASE64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8z8DwHwAFBQIAX8jx0gAAAABJRU5ErkJggg=="
)
TINY_PNG_BYTES = base64.b64decode(TINY_PNG_BASE64)


class FakeCameraBackend(CameraBackend):
    """In-memory camera that records every stream it opens and releases."""

    def __init__(
        self,
        error: Exception | None = None,
        frame: np.ndarray | None = None,
        open_gate: threading.Event | None = None,
        open_delay: float = 0.0,
    ) -> None:
        self.error = error
        self.frame = frame if frame is not None else np.full((48, 64, 3), 127, dtype=np.uint8)
        self.open_gate = open_gate
        self.open_delay = open_delay
        self.max_live = 0
        self.opened: list[Any] = []
        self.released: list[Any] = []

    @property
    def backend_name(self) -> str:
        return "fake"

    @property
    def live_streams(self) -> list[Any]:
        return [s for s in self.opened if not any(s is r for r in self.released)]

    def open_stream(self) -> Any:
        if self.open_gate is not None:
            self.open_gate.wait(timeout=5)
        if self.open_delay:
            time.sleep(self.open_delay)
        if self.error is not None:
            raise self.error
        stream = object()
        self.opened.append(stream)
        self.max_live = max(self.max_live, len(self.live_streams))
        return stream

    def read_frame(self, stream: Any) -> np.ndarray:
        return self.frame.copy()

    def release_stream(self, stream: Any) -> None:
        self.released.append(stream)


def make_classification(is_food: bool = True, ingredients: list[str] | None = None) -> Classification:
    """Build a stage-1 classification."""
    return Classification(
        label="Pancakes" if is_food else "Laptop",
        confidence=0.92,
        is_food=is_food,
        food_details=FoodDetails(
            ingredients=ingredients if ingredients is not None else ["milk", "sugar"],
            nutritional_summary="High in carbohydrates.",
            region="North America",
            history="A breakfast staple.",
        ) if is_food else None,
        alternative_suggestions=["Crepes"] if is_food else [],
    )


HIGH_MILK_CHECK = AllergenCheck(
    risk_level=RiskLevel.HIGH,
    allergen_detected=True,
    detected_allergens=["milk"],
)

SAFE_CHECK = AllergenCheck(
    risk_level=RiskLevel.SAFE,
    allergen_detected=False,
    detected_allergens=[],
)


@pytest.fixture
def camera_backend() -> FakeCameraBackend:
    """Camera backend that always opens."""
    return FakeCameraBackend()


@pytest.fixture
def camera(camera_backend: FakeCameraBackend) -> CameraResourceManager:
    return CameraResourceManager(camera_backend)


@pytest.fixture
def notifications() -> NotificationChannel:
    return NotificationChannel()


@pytest.fixture
def normalizer() -> ImageSourceNormalizer:
    return ImageSourceNormalizer(max_upload_bytes=1024 * 1024)


@pytest.fixture
def session(camera, normalizer, notifications) -> ScannerSession:
    return ScannerSession(camera=camera, normalizer=normalizer, notifications=notifications)


@pytest.fixture
def inference() -> MagicMock:
    """
    Inference service double.

    Defaults to a food classification with milk + sugar and a HIGH milk
    allergen check; tests override return values as needed.
    """
    service = MagicMock(spec=InferenceService)
    service.provider_name = "fake"
    service.classify_food = AsyncMock(return_value=make_classification())
    service.extract_text = AsyncMock(return_value=ExtractedText(text="Wheat flour, milk, salt"))
    service.detect_allergens = AsyncMock(return_value=HIGH_MILK_CHECK)
    service.recommend_safe_foods = AsyncMock()
    service.generate_food_image = AsyncMock(return_value="data:image/png;base64,AAAA")
    service.health_check = AsyncMock(return_value=True)
    service.close = AsyncMock()
    return service


@pytest.fixture
def online() -> dict[str, bool]:
    """Mutable connectivity flag."""
    return {"value": True}


@pytest.fixture
def orchestrator(inference, online, notifications) -> PipelineOrchestrator:
    return PipelineOrchestrator(
        inference=inference,
        is_online=lambda: online["value"],
        notifications=notifications,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        ollama_base_url="http://ollama.test",
        placeholder_image_url="https://placehold.test/600x400.png",
    )


@pytest.fixture
def connectivity() -> ConnectivityMonitor:
    return ConnectivityMonitor(probe_url="http://ollama.test/api/tags", online=True)


@pytest.fixture
def app(settings, inference, camera_backend, connectivity):
    return create_app(
        settings,
        inference=inference,
        camera_backend=camera_backend,
        connectivity=connectivity,
    )


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    Create async test client.

    Usage:
        async def test_endpoint(client: AsyncClient):
            response = await client.get("/scanner")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
