"""Delivery claims — one record per (source, external reference, status).

A webhook delivery is claimed before any of its effects run. The record's
identity is the key itself, so claiming is a single insert: a second
delivery of the same event finds the record and is reported as a duplicate.
Claims expire after ``IDEMPOTENCY_TTL_HOURS`` (24 by default), which bounds
the table to the gateways' redelivery window. A lapsed claim is renewed in
place; a purged one is simply inserted again.
"""

import os
from datetime import UTC, datetime, timedelta

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace

logger = structlog.get_logger(__name__)


def claim_ttl() -> timedelta:
    return timedelta(hours=int(os.environ.get("IDEMPOTENCY_TTL_HOURS", "24")))


def idempotency_key(source: str, external_ref: str, reported_status: str) -> str:
    return f"{source}:{external_ref}:{(reported_status or '').lower()}"


def _aware(value):
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@marketplace.aggregate
class IdempotencyRecord:
    key = String(identifier=True, required=True, max_length=255)
    source = String(required=True, max_length=30)
    external_ref = String(required=True, max_length=150)
    reported_status = String(required=True, max_length=50)
    created_at = DateTime()
    expires_at = DateTime()

    @classmethod
    def claim(cls, source, external_ref, reported_status, now=None):
        now = now or datetime.now(UTC)
        return cls(
            key=idempotency_key(source, external_ref, reported_status),
            source=source,
            external_ref=external_ref,
            reported_status=(reported_status or "").lower(),
            created_at=now,
            expires_at=now + claim_ttl(),
        )

    def is_expired(self, now=None) -> bool:
        now = now or datetime.now(UTC)
        return _aware(self.expires_at) <= now

    def renew(self, now=None):
        """Restart the redelivery window of a lapsed claim."""
        now = now or datetime.now(UTC)
        self.created_at = now
        self.expires_at = now + claim_ttl()


@marketplace.command(part_of="IdempotencyRecord")
class ClaimDelivery:
    source = String(required=True, max_length=30)
    external_ref = String(required=True, max_length=150)
    reported_status = String(required=True, max_length=50)


@marketplace.command(part_of="IdempotencyRecord")
class PurgeExpiredClaims:
    as_of = DateTime()


@marketplace.command_handler(part_of=IdempotencyRecord)
class DeliveryClaimHandler:
    @handle(ClaimDelivery)
    def claim(self, command):
        """Returns True when this delivery is the first one seen, False for a duplicate."""
        repo = current_domain.repository_for(IdempotencyRecord)
        key = idempotency_key(command.source, command.external_ref, command.reported_status)

        try:
            existing = repo.get(key)
        except ObjectNotFoundError:
            existing = None

        if existing is None:
            repo.add(IdempotencyRecord.claim(command.source, command.external_ref, command.reported_status))
            return True

        if not existing.is_expired():
            return False

        # Past the redelivery window: the same key counts as a new delivery
        existing.renew()
        repo.add(existing)
        return True

    @handle(PurgeExpiredClaims)
    def purge(self, command):
        repo = current_domain.repository_for(IdempotencyRecord)
        expired = repo._dao.query.filter(expires_at__lte=command.as_of or datetime.now(UTC)).all().items
        for record in expired:
            repo._dao.delete(record)
        logger.info("Expired delivery claims purged", count=len(expired))
        return len(expired)


def claim_stats() -> dict:
    now = datetime.now(UTC)
    records = current_domain.repository_for(IdempotencyRecord)._dao.query.all().items
    expired = sum(1 for r in records if r.is_expired(now))
    return {"total": len(records), "active": len(records) - expired, "expired": expired}
