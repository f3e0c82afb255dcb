"""Payments API package."""

from marketplace.payments.api.routes import router

__all__ = ["router"]
