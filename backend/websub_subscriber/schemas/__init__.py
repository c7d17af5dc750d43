"""Pydantic schemas for API requests and responses."""

from websub_subscriber.schemas.websub import (
    SubscribeRequest,
    SubscriptionMode,
    SubscriptionRead,
    VerificationAttempt,
)

__all__ = [
    "SubscribeRequest",
    "SubscriptionMode",
    "SubscriptionRead",
    "VerificationAttempt",
]
