"""Admission control: rate limiting followed by the tier message cap."""

from chat_gateway.admission.rate_limiter import BaseRateLimiter, client_identifier
from chat_gateway.core.errors import GuestLimitExceededError, RateLimitExceededError
from chat_gateway.core.logging import get_logger

logger = get_logger(__name__)


class AdmissionController:
    """Decides whether a chat turn may proceed and how much history it keeps.

    Args:
        rate_limiter: Limiter shared by every request in this process.
        max_guest_messages: History ceiling for unauthenticated requests.
        max_auth_messages: History ceiling for authenticated requests.
    """

    def __init__(
        self,
        rate_limiter: BaseRateLimiter,
        max_guest_messages: int = 12,
        max_auth_messages: int = 40,
    ) -> None:
        self.rate_limiter = rate_limiter
        self.max_guest_messages = max_guest_messages
        self.max_auth_messages = max_auth_messages

    def max_messages_for(self, authenticated: bool) -> int:
        """History ceiling for a tier."""
        return self.max_auth_messages if authenticated else self.max_guest_messages

    def admit(
        self,
        user_id: str | None,
        guest_id: str | None,
        remote_addr: str | None,
        message_count: int,
    ) -> int:
        """Apply both admission checks.

        Returns:
            The tier's history ceiling, used later to truncate the payload.

        Raises:
            RateLimitExceededError: The client key is over its window allowance.
            GuestLimitExceededError: A guest submitted more history than allowed.
        """
        key = client_identifier(user_id, guest_id, remote_addr)
        decision = self.rate_limiter.hit(key)
        if not decision.allowed:
            logger.warning(
                "rate_limit_exceeded",
                client_key=key,
                count=decision.count,
                retry_after=decision.retry_after,
            )
            raise RateLimitExceededError(retry_after=decision.retry_after)

        authenticated = bool(user_id)
        max_messages = self.max_messages_for(authenticated)
        if not authenticated and message_count > max_messages:
            logger.warning(
                "guest_limit_exceeded",
                client_key=key,
                message_count=message_count,
                max_messages=max_messages,
            )
            raise GuestLimitExceededError()
        return max_messages
