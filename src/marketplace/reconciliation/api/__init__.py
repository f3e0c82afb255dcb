"""Webhook API package."""

from marketplace.reconciliation.api.routes import router

__all__ = ["router"]
