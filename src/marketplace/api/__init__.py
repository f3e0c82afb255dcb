"""Shared HTTP plumbing: authentication and exception mapping."""

from marketplace.api.auth import admin_principal, current_principal, ensure_can_view
from marketplace.api.errors import register_error_handlers

__all__ = ["admin_principal", "current_principal", "ensure_can_view", "register_error_handlers"]
