"""Admission control for chat requests."""

from chat_gateway.admission.controller import AdmissionController
from chat_gateway.admission.rate_limiter import (
    BaseRateLimiter,
    InMemoryRateLimiter,
    RateLimitDecision,
    client_identifier,
)

__all__ = [
    "AdmissionController",
    "BaseRateLimiter",
    "InMemoryRateLimiter",
    "RateLimitDecision",
    "client_identifier",
]
