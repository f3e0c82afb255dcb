"""Pydantic response schemas for the notification API."""

from pydantic import BaseModel


class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    message: str
    data: dict | None = None
    read: bool
    created_at: str | None = None
    icon: str | None = None


class PaginationSchema(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    pagination: PaginationSchema
    unread_count: int


class NotificationCountResponse(BaseModel):
    total: int
    unread: int


class MarkAllReadResponse(BaseModel):
    updated: int
