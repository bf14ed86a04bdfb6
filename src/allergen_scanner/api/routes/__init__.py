"""API route modules."""

from . import notifications, recommendations, scanner

__all__ = ["notifications", "recommendations", "scanner"]
