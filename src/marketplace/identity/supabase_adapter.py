"""Supabase identity provider.

Validates the access token against Supabase Auth (``GET /auth/v1/user``).
Administrators carry ``user_type: admin`` in their app or user metadata.
"""

import httpx
import structlog

from marketplace.exceptions import GatewayError
from marketplace.identity.port import IdentityProvider, Principal

logger = structlog.get_logger(__name__)


class SupabaseIdentityProvider(IdentityProvider):
    name = "supabase"

    def __init__(self, url: str, anon_key: str, timeout: float = 5.0, client: httpx.Client | None = None):
        if not url or not anon_key:
            raise ValueError("SupabaseIdentityProvider requires SUPABASE_URL and SUPABASE_ANON_KEY")
        self.client = client or httpx.Client(
            base_url=url.rstrip("/"),
            headers={"apikey": anon_key},
            timeout=httpx.Timeout(timeout),
        )

    def authenticate(self, token: str) -> Principal | None:
        if not token:
            return None
        try:
            response = self.client.get("/auth/v1/user", headers={"Authorization": f"Bearer {token}"})
        except httpx.RequestError as exc:
            logger.error("Identity provider unreachable", error=str(exc))
            raise GatewayError(self.name, "Identity provider unreachable") from exc

        if response.status_code in (401, 403):
            return None
        if response.is_error:
            logger.error("Identity provider error", status_code=response.status_code)
            raise GatewayError(self.name, f"HTTP {response.status_code}", response.status_code)

        user = response.json()
        metadata = {**(user.get("user_metadata") or {}), **(user.get("app_metadata") or {})}
        return Principal(
            user_id=user["id"],
            is_admin=metadata.get("user_type") == "admin",
            email=user.get("email"),
        )
