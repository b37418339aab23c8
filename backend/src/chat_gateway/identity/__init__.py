"""Identity resolution for bearer credentials."""

from chat_gateway.identity.base import (
    AnonymousIdentityResolver,
    BaseIdentityResolver,
    parse_bearer_token,
)
from chat_gateway.identity.supabase import SupabaseIdentityResolver

__all__ = [
    "AnonymousIdentityResolver",
    "BaseIdentityResolver",
    "SupabaseIdentityResolver",
    "parse_bearer_token",
]
