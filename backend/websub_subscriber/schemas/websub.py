"""WebSub request/response schemas.

Wire names on the hub-facing side are fixed by the protocol
(``hub.mode``, ``hub.topic``, ``hub.challenge``, ``hub.lease_seconds``).
The subscribe endpoint is our own API and uses plain parameter names.
"""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Largest lease the subscriptions.lease_seconds INTEGER column can hold.
MAX_LEASE_SECONDS = 2**31 - 1

# =============================================================================
# Enums
# =============================================================================


class SubscriptionMode(str, Enum):
    """Value of ``hub.mode`` on intents and verification requests."""

    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"


def _require_http_url(value: str, field_name: str) -> str:
    """Reject values that are not absolute http(s) URLs.

    The value itself is returned unchanged; stored URLs are compared byte
    for byte later, so no normalisation happens here.
    """
    if not value.startswith(("http://", "https://")):
        msg = f"{field_name} must be an absolute http(s) URL"
        raise ValueError(msg)
    return value


# =============================================================================
# Hub-facing Schemas
# =============================================================================


class VerificationAttempt(BaseModel):
    """Verification request sent by a hub to a callback.

    Decoded from the query string of ``GET {base}/callback/{id}``. Unknown
    parameters are ignored because hubs add their own.

    Attributes:
        mode: Whether the hub verifies a subscribe or unsubscribe intent.
        topic: Topic the hub believes the intent was for.
        challenge: Random string that must be echoed back verbatim.
        lease_seconds: Lease granted by the hub, if any.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    mode: SubscriptionMode = Field(..., alias="hub.mode")
    topic: str = Field(..., min_length=1, alias="hub.topic")
    challenge: str = Field(..., min_length=1, alias="hub.challenge")
    lease_seconds: int | None = Field(
        default=None, ge=0, le=MAX_LEASE_SECONDS, alias="hub.lease_seconds"
    )


# =============================================================================
# Subscriber API Schemas
# =============================================================================


class SubscribeRequest(BaseModel):
    """Query parameters of ``GET {base}/subscribe``.

    Attributes:
        topic: Topic URL to (un)subscribe.
        hub: Hub URL. Discovered from the topic when omitted on subscribe.
        mode: subscribe (default) or unsubscribe.
        lease_seconds: Lease to request from the hub.
        callback: Callback of the subscription to cancel (unsubscribe only).
    """

    model_config = ConfigDict(extra="forbid")

    topic: str = Field(..., min_length=1, max_length=2048)
    hub: str | None = Field(default=None, min_length=1, max_length=2048)
    mode: SubscriptionMode = SubscriptionMode.SUBSCRIBE
    lease_seconds: int | None = Field(default=None, gt=0, le=MAX_LEASE_SECONDS)
    callback: str | None = Field(default=None, min_length=1, max_length=2048)

    @field_validator("topic")
    @classmethod
    def topic_is_url(cls, v: str) -> str:
        """Validate topic is an http(s) URL."""
        return _require_http_url(v, "topic")

    @field_validator("hub")
    @classmethod
    def hub_is_url(cls, v: str | None) -> str | None:
        """Validate hub is an http(s) URL when given."""
        if v is None:
            return v
        return _require_http_url(v, "hub")


class SubscriptionRead(BaseModel):
    """Subscription as returned by the subscribe endpoint."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    topic: str
    hub: str
    callback: str
    state: str
    lease_seconds: int | None = None
    expired_at: datetime | None = None
    last_successful_verification_at: datetime | None = None
    last_unsuccessful_verification_at: datetime | None = None
