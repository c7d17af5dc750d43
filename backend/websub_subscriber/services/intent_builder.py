"""Subscription intent builder.

Records the subscriber's intent locally before anything is sent to a hub.
Subscribing creates a pendingSubscription row; unsubscribing moves an
existing row to pendingUnsubscription. The caller commits and only then
dispatches the returned HubRequest, so a crash in between leaves a
pending row rather than a hub-side subscription with no local record.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from websub_subscriber.core.errors import NotFoundError
from websub_subscriber.models.subscription import Subscription
from websub_subscriber.repositories.subscription_repository import (
    SubscriptionRepository,
)
from websub_subscriber.schemas.websub import SubscriptionMode
from websub_subscriber.services.callback_correlator import CallbackURL
from websub_subscriber.services.subscription_state import (
    SubscriptionState,
    transition_state,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HubRequest:
    """Outbound (un)subscription request for a hub.

    Attributes:
        hub: Hub endpoint the request is POSTed to.
        mode: subscribe or unsubscribe.
        topic: Topic URL.
        callback: Callback URL the hub will verify and deliver to.
        lease_seconds: Requested lease, if any. Never copied into the
            subscription; only the hub's verification sets the lease.
    """

    hub: str
    mode: SubscriptionMode
    topic: str
    callback: str
    lease_seconds: int | None = None

    def form_data(self) -> dict[str, str]:
        """Return the form-encoded body fields of the request."""
        data = {
            "hub.mode": self.mode.value,
            "hub.topic": self.topic,
            "hub.callback": self.callback,
        }
        if self.lease_seconds is not None:
            data["hub.lease_seconds"] = str(self.lease_seconds)
        return data


@dataclass(frozen=True)
class SubscriptionIntent:
    """Persisted intent plus the request that announces it to the hub."""

    subscription: Subscription
    request: HubRequest


async def subscribe_intent(
    db: AsyncSession,
    *,
    topic: str,
    hub: str,
    callback: CallbackURL,
    lease_seconds: int | None = None,
) -> SubscriptionIntent:
    """Create a pendingSubscription record and its hub request.

    Args:
        db: Async database session.
        topic: Topic URL.
        hub: Hub URL.
        callback: Freshly derived callback (its id becomes the row id).
        lease_seconds: Lease to request from the hub.

    Returns:
        SubscriptionIntent with the flushed record and the hub request.
    """
    subscription = await SubscriptionRepository.create(
        db,
        subscription_id=callback.subscription_id,
        topic=topic,
        hub=hub,
        callback=callback.url,
        state=SubscriptionState.PENDING_SUBSCRIPTION.value,
    )
    logger.info("Subscription %s pending for topic %s", subscription.id, topic)
    return SubscriptionIntent(
        subscription=subscription,
        request=HubRequest(
            hub=hub,
            mode=SubscriptionMode.SUBSCRIBE,
            topic=topic,
            callback=callback.url,
            lease_seconds=lease_seconds,
        ),
    )


async def unsubscribe_intent(
    db: AsyncSession,
    *,
    topic: str,
    hub: str,
    callback: str,
) -> SubscriptionIntent:
    """Move an existing subscription to pendingUnsubscription.

    Args:
        db: Async database session.
        topic: Topic URL of the subscription.
        hub: Hub URL of the subscription.
        callback: Callback URL of the subscription.

    Returns:
        SubscriptionIntent with the updated record and the hub request.

    Raises:
        NotFoundError: No subscription has this topic, hub and callback.
        InvalidStateTransitionError: The subscription cannot be cancelled
            from its current state.
    """
    subscription = await SubscriptionRepository.get_by_identity(
        db, topic=topic, hub=hub, callback=callback
    )
    if subscription is None:
        raise NotFoundError("Subscription")

    subscription.state = transition_state(
        SubscriptionState.from_string(subscription.state),
        SubscriptionState.PENDING_UNSUBSCRIPTION,
    ).value
    await SubscriptionRepository.save(db, subscription)
    logger.info("Subscription %s pending unsubscription", subscription.id)
    return SubscriptionIntent(
        subscription=subscription,
        request=HubRequest(
            hub=hub,
            mode=SubscriptionMode.UNSUBSCRIBE,
            topic=topic,
            callback=callback,
        ),
    )


async def build_intent(
    db: AsyncSession,
    *,
    mode: SubscriptionMode,
    topic: str,
    hub: str,
    callback: CallbackURL | str,
    lease_seconds: int | None = None,
) -> SubscriptionIntent:
    """Record a subscribe or unsubscribe intent.

    Args:
        db: Async database session.
        mode: subscribe or unsubscribe.
        topic: Topic URL.
        hub: Hub URL.
        callback: A new CallbackURL when subscribing, the stored callback
            URL when unsubscribing.
        lease_seconds: Lease to request (subscribe only).

    Returns:
        SubscriptionIntent for the caller to commit and dispatch.

    Raises:
        TypeError: The callback kind does not fit the mode.
        NotFoundError: Unsubscribing from an unknown subscription.
    """
    if mode is SubscriptionMode.SUBSCRIBE:
        if not isinstance(callback, CallbackURL):
            msg = "Subscribing needs a freshly derived CallbackURL"
            raise TypeError(msg)
        return await subscribe_intent(
            db, topic=topic, hub=hub, callback=callback, lease_seconds=lease_seconds
        )

    callback_url = callback.url if isinstance(callback, CallbackURL) else callback
    return await unsubscribe_intent(db, topic=topic, hub=hub, callback=callback_url)
