"""Read side of the notification log: listing, counts and polling."""

from protean.utils.globals import current_domain

from marketplace.notifications.notification import Notification


def _query(user_id):
    return current_domain.repository_for(Notification)._dao.query.filter(user_id=str(user_id))


def unread_count(user_id) -> int:
    return _query(user_id).filter(read=False).all().total


def counts(user_id) -> dict:
    return {"total": _query(user_id).all().total, "unread": unread_count(user_id)}


def list_notifications(user_id, page: int = 1, limit: int = 20, unread_only: bool = False) -> dict:
    """Newest first, paginated."""
    page = max(page, 1)
    query = _query(user_id)
    if unread_only:
        query = query.filter(read=False)
    result = query.order_by("-created_at").offset((page - 1) * limit).limit(limit).all()

    total = result.total
    return {
        "notifications": [n.to_dict() for n in result.items],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit if limit else 0,
        },
        "unread_count": unread_count(user_id),
    }


def notifications_since(user_id, watermark) -> list[Notification]:
    """Notifications created strictly after ``watermark``, oldest first."""
    return _query(user_id).filter(created_at__gt=watermark).order_by("created_at").all().items
