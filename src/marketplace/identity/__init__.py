"""Identity provider factory.

FakeIdentityProvider by default; IDENTITY_ADAPTER=supabase validates tokens
against Supabase Auth.
"""

import os

from marketplace.identity.port import IdentityProvider, Principal

_current_provider: IdentityProvider | None = None

__all__ = ["Principal", "get_identity_provider", "reset_identity_provider", "set_identity_provider"]


def get_identity_provider() -> IdentityProvider:
    global _current_provider
    if _current_provider is None:
        adapter = os.environ.get("IDENTITY_ADAPTER", "fake")
        if adapter == "fake":
            from marketplace.identity.fake_adapter import FakeIdentityProvider

            _current_provider = FakeIdentityProvider()
        elif adapter == "supabase":
            from marketplace.identity.supabase_adapter import SupabaseIdentityProvider

            _current_provider = SupabaseIdentityProvider(
                url=os.environ.get("SUPABASE_URL", ""),
                anon_key=os.environ.get("SUPABASE_ANON_KEY", ""),
            )
        else:
            raise ValueError(f"Unknown identity adapter: {adapter}")
    return _current_provider


def set_identity_provider(provider: IdentityProvider) -> None:
    global _current_provider
    _current_provider = provider


def reset_identity_provider() -> None:
    global _current_provider
    _current_provider = None
