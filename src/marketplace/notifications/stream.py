"""Live notification delivery over Server-Sent Events.

This is a polling simulation of push: each open connection runs its own loop
that wakes every ``poll_interval`` seconds, reads notifications created after
its watermark and writes them to the client. There is no pub/sub bus behind
it. A connection only ever awaits its own sleep, its own datastore read (run
in a worker thread) and its own socket, so a slow client cannot hold up the
others.

Wire format, one event per ``data:`` line:
    {"type": "connected", "message", "timestamp", "user_id"}
    {"type": "unread_count", "count"}
    {"type": "new_notification", "notification": {...}}
plus a ``: keepalive`` comment every ``heartbeat_interval`` seconds.
"""

import asyncio
import json
import os
import time
from datetime import UTC, datetime

import structlog
from starlette.concurrency import run_in_threadpool

from marketplace.domain import marketplace
from marketplace.notifications.queries import notifications_since, unread_count

logger = structlog.get_logger(__name__)

POLL_INTERVAL = float(os.environ.get("NOTIFICATION_POLL_INTERVAL", "5"))
HEARTBEAT_INTERVAL = float(os.environ.get("NOTIFICATION_HEARTBEAT_INTERVAL", "30"))

KEEPALIVE = ": keepalive\n\n"

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def sse_event(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def _aware(value):
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _read_unread_count(user_id) -> int:
    with marketplace.domain_context():
        return unread_count(user_id)


def _read_since(user_id, watermark):
    with marketplace.domain_context():
        fresh = notifications_since(user_id, watermark)
        if not fresh:
            return [], None
        return [n.to_dict() for n in fresh], unread_count(user_id)


async def notification_events(user_id, is_disconnected, poll_interval=None, heartbeat_interval=None):
    """Yield SSE frames for ``user_id`` until ``is_disconnected()`` says the client left."""
    poll_interval = POLL_INTERVAL if poll_interval is None else poll_interval
    heartbeat_interval = HEARTBEAT_INTERVAL if heartbeat_interval is None else heartbeat_interval

    watermark = datetime.now(UTC)
    logger.info("Notification stream opened", user_id=user_id)

    try:
        yield sse_event(
            {
                "type": "connected",
                "message": "Notification stream connected",
                "timestamp": watermark.isoformat(),
                "user_id": user_id,
            }
        )
        yield sse_event({"type": "unread_count", "count": await run_in_threadpool(_read_unread_count, user_id)})

        last_heartbeat = time.monotonic()
        while not await is_disconnected():
            await asyncio.sleep(poll_interval)
            if await is_disconnected():
                break

            fresh, count = await run_in_threadpool(_read_since, user_id, watermark)
            for notification in fresh:
                yield sse_event({"type": "new_notification", "notification": notification})
                watermark = max(watermark, _aware(datetime.fromisoformat(notification["created_at"])))
            if fresh:
                yield sse_event({"type": "unread_count", "count": count})

            if time.monotonic() - last_heartbeat >= heartbeat_interval:
                yield KEEPALIVE
                last_heartbeat = time.monotonic()
    finally:
        logger.info("Notification stream closed", user_id=user_id)
