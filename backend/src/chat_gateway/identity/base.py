"""Base classes for bearer-token identity resolution."""

from abc import ABC, abstractmethod

BEARER_PREFIX = "Bearer "


def parse_bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` value.

    Returns None when the header is absent, uses another scheme, or
    carries a blank token.
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX) :].strip()
    return token or None


class BaseIdentityResolver(ABC):
    """Turns an optional bearer credential into an optional user id.

    Implementations never raise for a bad credential: an invalid or
    unverifiable token resolves to None, the same as no token at all.
    """

    async def resolve(self, authorization: str | None) -> str | None:
        """Resolve an ``Authorization`` header value to a user id."""
        token = parse_bearer_token(authorization)
        if token is None:
            return None
        return await self.verify(token)

    @abstractmethod
    async def verify(self, token: str) -> str | None:
        """Verify a bearer token with the identity provider."""

    async def aclose(self) -> None:
        """Release any held resources."""


class AnonymousIdentityResolver(BaseIdentityResolver):
    """Resolver used when no identity provider is configured."""

    async def verify(self, token: str) -> str | None:
        return None
