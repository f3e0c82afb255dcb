"""Identity port — resolves a bearer token to the caller."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Principal:
    """A verified caller."""

    user_id: str
    is_admin: bool = False
    email: str | None = None


class IdentityProvider(ABC):
    name = "identity"

    @abstractmethod
    def authenticate(self, token: str) -> Principal | None:
        """The caller the token belongs to, or None when it is not valid."""
        ...
