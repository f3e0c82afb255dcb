"""Request authentication — bearer token to ``Principal``.

The token comes from the ``Authorization: Bearer`` header, or from the
``token`` query parameter for clients (EventSource) that cannot set headers.
"""

from fastapi import Depends, Header, HTTPException, Query

from marketplace.identity import Principal, get_identity_provider


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def current_principal(
    authorization: str | None = Header(default=None),
    token: str | None = Query(default=None),
) -> Principal:
    raw = _bearer_token(authorization) or token
    if not raw:
        raise HTTPException(status_code=401, detail="Access token required")
    principal = get_identity_provider().authenticate(raw)
    if principal is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return principal


def admin_principal(principal: Principal = Depends(current_principal)) -> Principal:
    if not principal.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return principal


def ensure_can_view(order, principal: Principal) -> None:
    """Buyers see their own orders; admins see all. Others get a 404."""
    if not principal.is_admin and str(order.buyer_id) != principal.user_id:
        raise HTTPException(status_code=404, detail="Order not found")
