"""Notification API routes."""

from fastapi import APIRouter

from allergen_scanner.api.dependencies import NotificationsDep
from allergen_scanner.services.notifications import Notification

router = APIRouter()


@router.get("", response_model=list[Notification])
async def drain_notifications(notifications: NotificationsDep) -> list[Notification]:
    """Return pending toast notifications, oldest first, and clear them."""
    return notifications.drain()
