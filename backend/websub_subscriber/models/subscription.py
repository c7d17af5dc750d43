"""Subscription model - one subscriber to topic relationship.

A row is created when the subscriber asks a hub for updates and is then
moved through its lifecycle by the hub's verification callbacks.
"""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from websub_subscriber.models.base import Base, TimestampMixin


class Subscription(Base, TimestampMixin):
    """Subscription held with a hub for a topic.

    topic, hub and callback are written once at creation. The callback
    embeds the id, which makes it unique per row.

    Attributes:
        id: UUID primary key, also the last segment of the callback path.
        topic: Canonical URL of the watched resource.
        hub: Hub endpoint used to (un)subscribe.
        callback: Full callback URL advertised to the hub.
        state: Lifecycle state (see services.subscription_state).
        lease_seconds: Lease reported by the hub on verification.
        expired_at: Verification time plus lease_seconds. Advisory only.
        last_successful_verification_at: Last accepted verification.
        last_unsuccessful_verification_at: Last rejected verification.
    """

    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint(
            "state IN ('pendingSubscription', 'subscribed', 'verified', "
            "'unverified', 'pendingUnsubscription', 'unsubscribed')",
            name="ck_subscription_state",
        ),
        CheckConstraint(
            "lease_seconds >= 0 OR lease_seconds IS NULL",
            name="ck_subscription_lease_seconds",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
    )
    topic: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        index=True,
    )
    hub: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    callback: Mapped[str] = mapped_column(
        Text,
        unique=True,
        nullable=False,
    )
    state: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
    )
    lease_seconds: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )
    expired_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    last_successful_verification_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    last_unsuccessful_verification_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<Subscription id={self.id} state={self.state} "
            f"topic={self.topic!r} hub={self.hub!r}>"
        )
