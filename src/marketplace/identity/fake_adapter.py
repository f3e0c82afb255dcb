"""Fake identity provider for development and testing.

Accepts ``test-token-<user id>`` for buyers and ``admin-token-<user id>`` for
administrators, plus any token registered explicitly.
"""

from marketplace.identity.port import IdentityProvider, Principal

BUYER_PREFIX = "test-token-"
ADMIN_PREFIX = "admin-token-"


class FakeIdentityProvider(IdentityProvider):
    name = "fake"

    def __init__(self):
        self.tokens: dict[str, Principal] = {}

    def register(self, token: str, user_id: str, is_admin: bool = False, email: str | None = None) -> Principal:
        principal = Principal(user_id=user_id, is_admin=is_admin, email=email)
        self.tokens[token] = principal
        return principal

    def authenticate(self, token: str) -> Principal | None:
        if not token:
            return None
        if token in self.tokens:
            return self.tokens[token]
        if token.startswith(ADMIN_PREFIX) and len(token) > len(ADMIN_PREFIX):
            return Principal(user_id=token[len(ADMIN_PREFIX) :], is_admin=True)
        if token.startswith(BUYER_PREFIX) and len(token) > len(BUYER_PREFIX):
            return Principal(user_id=token[len(BUYER_PREFIX) :])
        return None
