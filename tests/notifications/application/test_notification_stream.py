import asyncio
import json

import pytest

from marketplace.domain import marketplace
from marketplace.notifications.helpers import create_notification
from marketplace.notifications.stream import KEEPALIVE, notification_events, sse_event


def _frames(user_id, disconnected_after, on_first_check=None, poll_interval=0, heartbeat_interval=0):
    """Run the stream until ``is_disconnected`` has answered False ``disconnected_after`` times."""
    calls = {"n": 0}

    async def is_disconnected():
        calls["n"] += 1
        if calls["n"] == 1 and on_first_check is not None:
            with marketplace.domain_context():
                on_first_check()
        return calls["n"] > disconnected_after

    async def collect():
        return [
            frame
            async for frame in notification_events(
                user_id, is_disconnected, poll_interval=poll_interval, heartbeat_interval=heartbeat_interval
            )
        ]

    return asyncio.run(collect())


def _decode(frame):
    assert frame.startswith("data: ")
    return json.loads(frame[len("data: ") :])


def test_sse_event_format():
    assert sse_event({"type": "unread_count", "count": 2}) == 'data: {"type": "unread_count", "count": 2}\n\n'


def test_opens_with_connected_and_unread_count():
    create_notification("buyer-1", "order_update", "Earlier", "Earlier message")

    frames = _frames("buyer-1", disconnected_after=0)

    connected, count = (_decode(f) for f in frames)
    assert connected["type"] == "connected"
    assert connected["user_id"] == "buyer-1"
    assert count == {"type": "unread_count", "count": 1}


def test_pushes_notifications_created_after_connect():
    frames = _frames(
        "buyer-1",
        disconnected_after=2,
        on_first_check=lambda: create_notification("buyer-1", "payment_confirmed", "Payment Confirmed", "Paid"),
    )

    events = [_decode(f) for f in frames if f != KEEPALIVE]
    assert [e["type"] for e in events] == ["connected", "unread_count", "new_notification", "unread_count"]
    assert events[2]["notification"]["title"] == "Payment Confirmed"
    assert events[3]["count"] == 1
    assert KEEPALIVE in frames


def test_other_users_notifications_are_not_pushed():
    frames = _frames(
        "buyer-1",
        disconnected_after=2,
        on_first_check=lambda: create_notification("buyer-2", "order_update", "Not yours", "Nope"),
    )

    events = [_decode(f) for f in frames if f != KEEPALIVE]
    assert "new_notification" not in [e["type"] for e in events]


class TestHeartbeat:
    def test_keepalive_once_interval_has_passed(self):
        frames = _frames("buyer-1", disconnected_after=4, heartbeat_interval=0)
        assert frames.count(KEEPALIVE) == 2

    def test_no_keepalive_before_interval(self):
        frames = _frames("buyer-1", disconnected_after=4, heartbeat_interval=3600)
        assert KEEPALIVE not in frames


class TestTermination:
    def test_disconnect_during_sleep_ends_stream(self):
        frames = _frames("buyer-1", disconnected_after=1, poll_interval=0.01)

        assert [_decode(f)["type"] for f in frames] == ["connected", "unread_count"]

    def test_cancel_while_sleeping_closes_generator(self):
        async def never_disconnected():
            return False

        async def run():
            stream = notification_events("buyer-1", never_disconnected, poll_interval=60, heartbeat_interval=60)
            await anext(stream)
            await anext(stream)

            pending = asyncio.ensure_future(anext(stream))
            await asyncio.sleep(0.01)
            pending.cancel()
            with pytest.raises(asyncio.CancelledError):
                await pending

            with pytest.raises(StopAsyncIteration):
                await anext(stream)

        asyncio.run(run())
