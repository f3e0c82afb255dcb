"""Marketplace bounded context — orders, stock, payments, shipping and notifications.

Handles the order lifecycle (CQRS) from cart checkout through payment and
shipping reconciliation, plus the per-user notification log.
"""

import structlog
from protean.domain import Domain

from marketplace.utils.logging import configure_logging

# Configure logging for the application
configure_logging()

logger = structlog.get_logger(__name__)

# Domain Composition Root
marketplace = Domain(name="marketplace")
