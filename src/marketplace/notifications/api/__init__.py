"""Notifications API package."""

from marketplace.notifications.api.routes import router

__all__ = ["router"]
