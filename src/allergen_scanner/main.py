"""FastAPI application entry point."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from allergen_scanner.api.routes import notifications, recommendations, scanner
from allergen_scanner.core.config import Settings, get_settings
from allergen_scanner.core.exceptions import APIError
from allergen_scanner.services.camera import (
    CameraBackend,
    CameraResourceManager,
    OpenCVCameraBackend,
)
from allergen_scanner.services.connectivity import ConnectivityMonitor
from allergen_scanner.services.image_source import ImageSourceNormalizer
from allergen_scanner.services.inference import InferenceService, create_inference_service
from allergen_scanner.services.notifications import NotificationChannel
from allergen_scanner.services.pipeline import PipelineOrchestrator
from allergen_scanner.services.recommendations import RecommendationService
from allergen_scanner.services.session import ScannerSession

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Probes connectivity on startup. On shutdown, cancels background runs
    and releases the camera.
    """
    settings: Settings = app.state.settings
    logger.info(f"Starting {settings.app_name} v{settings.api_version}")

    online = await app.state.connectivity.refresh()
    logger.info(f"Inference endpoint {'reachable' if online else 'unreachable'}")

    yield

    logger.info("Shutting down...")
    for task in list(app.state.run_tasks):
        task.cancel()
    await asyncio.gather(*app.state.run_tasks, return_exceptions=True)

    await app.state.scanner_session.teardown()
    await app.state.inference.close()
    logger.info("Camera released, inference client closed")


def create_app(
    settings: Settings | None = None,
    *,
    inference: InferenceService | None = None,
    camera_backend: CameraBackend | None = None,
    connectivity: ConnectivityMonitor | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings (uses default if not provided)
        inference: Inference provider (built from settings if not provided)
        camera_backend: Camera backend (OpenCV if not provided)
        connectivity: Connectivity monitor (probes the inference endpoint if not provided)

    Returns:
        Configured FastAPI instance
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.api_version,
        description="Food photo and ingredient label allergen scanner",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Components
    if inference is None:
        inference = create_inference_service(settings)
    if camera_backend is None:
        camera_backend = OpenCVCameraBackend(
            device_index=settings.camera_device_index,
            frame_width=settings.camera_frame_width,
            frame_height=settings.camera_frame_height,
        )
    if connectivity is None:
        connectivity = ConnectivityMonitor.from_settings(settings)

    notification_channel = NotificationChannel(backlog=settings.notification_backlog)

    app.state.settings = settings
    app.state.inference = inference
    app.state.connectivity = connectivity
    app.state.notifications = notification_channel
    app.state.camera = CameraResourceManager(camera_backend)
    app.state.scanner_session = ScannerSession(
        camera=app.state.camera,
        normalizer=ImageSourceNormalizer.from_settings(settings),
        notifications=notification_channel,
    )
    app.state.orchestrator = PipelineOrchestrator(
        inference=inference,
        is_online=connectivity.is_online,
        notifications=notification_channel,
    )
    app.state.recommendation_service = RecommendationService(
        inference=inference,
        is_online=connectivity.is_online,
        notifications=notification_channel,
        placeholder_image_url=settings.placeholder_image_url,
    )
    app.state.run_tasks = set()

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        """Handle scanner errors."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.message,
                "title": exc.title,
                "details": exc.details,
            },
        )

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        online = await app.state.connectivity.refresh()
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.api_version,
            "online": online,
            "inference": {
                "provider": app.state.inference.provider_name,
                "healthy": await app.state.inference.health_check() if online else False,
                "authenticated": settings.is_inference_authenticated,
            },
            "camera": {
                "backend": app.state.camera.backend.backend_name,
                **app.state.camera.status().model_dump(mode="json"),
            },
        }

    # Root endpoint
    @app.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "name": settings.app_name,
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    # Include routers
    app.include_router(scanner.router, prefix="/scanner", tags=["Scanner"])
    app.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
    app.include_router(
        recommendations.router, prefix="/recommendations", tags=["Recommendations"]
    )

    return app


def run() -> None:
    """Run the API with uvicorn."""
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(create_app(settings), host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()
