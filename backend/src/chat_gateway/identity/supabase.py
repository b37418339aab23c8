"""Supabase-compatible identity provider client."""

import httpx

from chat_gateway.core.logging import get_logger
from chat_gateway.identity.base import BaseIdentityResolver

logger = get_logger(__name__)


class SupabaseIdentityResolver(BaseIdentityResolver):
    """Verifies access tokens against ``GET {base_url}/auth/v1/user``.

    Example usage:
        resolver = SupabaseIdentityResolver(
            base_url="https://project.supabase.co",
            api_key=os.getenv("SUPABASE_ANON_KEY"),
        )
        user_id = await resolver.resolve("Bearer eyJhbGciOi...")
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        """Initialize the resolver.

        Args:
            base_url: Identity provider base URL.
            api_key: Public API key sent in the ``apikey`` header.
            http_client: Optional pre-built httpx client (used by tests).
            timeout: Seconds to wait for the provider.
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(timeout=timeout)

    async def verify(self, token: str) -> str | None:
        """Return the user id for a valid token, None otherwise."""
        try:
            response = await self.client.get(
                f"{self.base_url}/auth/v1/user",
                headers={
                    "Authorization": f"Bearer {token}",
                    "apikey": self.api_key,
                },
            )
        except httpx.HTTPError as e:
            logger.warning("identity_provider_unreachable", error=str(e))
            return None

        if not response.is_success:
            logger.warning(
                "identity_token_rejected",
                status_code=response.status_code,
            )
            return None

        try:
            data = response.json()
        except ValueError:
            logger.warning("identity_response_unparseable")
            return None

        user_id = data.get("id") if isinstance(data, dict) else None
        if not isinstance(user_id, str) or not user_id:
            logger.warning("identity_response_missing_user")
            return None
        return user_id

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this resolver created it."""
        if self._owns_client:
            await self.client.aclose()
