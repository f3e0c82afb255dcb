"""FastAPI routes for in-app notifications.

Every route acts on the caller's own notifications; another user's id reads
as not found.
"""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from protean.utils.globals import current_domain

from marketplace.api.auth import current_principal
from marketplace.identity import Principal
from marketplace.notifications.api.schemas import (
    MarkAllReadResponse,
    NotificationCountResponse,
    NotificationListResponse,
    NotificationResponse,
)
from marketplace.notifications.management import (
    DeleteNotification,
    MarkAllNotificationsRead,
    MarkNotificationRead,
)
from marketplace.notifications.queries import counts, list_notifications
from marketplace.notifications.stream import STREAM_HEADERS, notification_events

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def get_notifications(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    unread_only: bool = False,
    principal: Principal = Depends(current_principal),
):
    return list_notifications(principal.user_id, page=page, limit=limit, unread_only=unread_only)


@router.get("/count", response_model=NotificationCountResponse)
async def get_counts(principal: Principal = Depends(current_principal)):
    return counts(principal.user_id)


@router.get("/stream")
async def stream(request: Request, principal: Principal = Depends(current_principal)):
    """Server-Sent Events. Browsers pass the token as ``?token=``."""
    return StreamingResponse(
        notification_events(principal.user_id, request.is_disconnected),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )


@router.put("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(principal: Principal = Depends(current_principal)):
    updated = current_domain.process(MarkAllNotificationsRead(user_id=principal.user_id), asynchronous=False)
    return MarkAllReadResponse(updated=updated)


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(notification_id: str, principal: Principal = Depends(current_principal)):
    command = MarkNotificationRead(notification_id=notification_id, user_id=principal.user_id)
    return current_domain.process(command, asynchronous=False)


@router.delete("/{notification_id}", status_code=204)
async def delete_notification(notification_id: str, principal: Principal = Depends(current_principal)):
    command = DeleteNotification(notification_id=notification_id, user_id=principal.user_id)
    current_domain.process(command, asynchronous=False)
