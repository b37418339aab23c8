"""Unit tests for AdmissionController."""

import pytest

from chat_gateway.admission import AdmissionController, InMemoryRateLimiter
from chat_gateway.core.errors import GuestLimitExceededError, RateLimitExceededError


@pytest.fixture
def controller() -> AdmissionController:
    return AdmissionController(
        InMemoryRateLimiter(max_requests=3, window_seconds=60),
        max_guest_messages=12,
        max_auth_messages=40,
    )


class TestAdmissionController:
    """Tests for the rate limit and tier cap checks."""

    def test_guest_within_cap_gets_guest_ceiling(self, controller):
        assert controller.admit(None, "g1", "10.0.0.1", message_count=12) == 12

    def test_guest_over_cap_rejected(self, controller):
        with pytest.raises(GuestLimitExceededError) as exc_info:
            controller.admit(None, "g1", "10.0.0.1", message_count=13)
        assert exc_info.value.status_code == 403

    def test_authenticated_never_rejected_for_length(self, controller):
        """Authenticated history over the cap is truncated later, not refused."""
        assert controller.admit("u1", None, None, message_count=500) == 40

    def test_rate_limit_checked_before_tier_cap(self, controller):
        for _ in range(3):
            controller.admit("u1", None, None, message_count=1)

        with pytest.raises(RateLimitExceededError) as exc_info:
            controller.admit("u1", None, None, message_count=1)
        assert exc_info.value.status_code == 429
        assert exc_info.value.retry_after >= 1

    def test_denied_guest_requests_still_count(self, controller):
        """A tier denial happens after the request is counted."""
        for _ in range(3):
            with pytest.raises(GuestLimitExceededError):
                controller.admit(None, "g1", None, message_count=20)

        with pytest.raises(RateLimitExceededError):
            controller.admit(None, "g1", None, message_count=1)

    def test_user_and_guest_keys_are_separate(self, controller):
        for _ in range(3):
            controller.admit(None, "g1", None, message_count=1)
        assert controller.admit("u1", "g1", None, message_count=1) == 40

    def test_max_messages_for(self, controller):
        assert controller.max_messages_for(True) == 40
        assert controller.max_messages_for(False) == 12
