"""FastAPI dependency injection factories."""

from typing import Annotated

from fastapi import Depends, Request

from allergen_scanner.services.notifications import NotificationChannel
from allergen_scanner.services.pipeline import PipelineOrchestrator
from allergen_scanner.services.recommendations import RecommendationService
from allergen_scanner.services.session import ScannerSession


def get_scanner_session(request: Request) -> ScannerSession:
    """
    Get the scanner session.

    The scanner serves a single screen, so one session lives on the app.
    """
    return request.app.state.scanner_session


def get_orchestrator(request: Request) -> PipelineOrchestrator:
    """Get the pipeline orchestrator."""
    return request.app.state.orchestrator


def get_recommendation_service(request: Request) -> RecommendationService:
    """Get the recommendation service."""
    return request.app.state.recommendation_service


def get_notifications(request: Request) -> NotificationChannel:
    """Get the notification channel."""
    return request.app.state.notifications


# Type aliases for service dependencies
ScannerSessionDep = Annotated[ScannerSession, Depends(get_scanner_session)]
OrchestratorDep = Annotated[PipelineOrchestrator, Depends(get_orchestrator)]
RecommendationServiceDep = Annotated[RecommendationService, Depends(get_recommendation_service)]
NotificationsDep = Annotated[NotificationChannel, Depends(get_notifications)]
