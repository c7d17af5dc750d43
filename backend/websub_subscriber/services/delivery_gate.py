"""Content delivery authentication.

A hub POSTs new content to a subscription's callback. The delivery is
admitted only when the callback correlates with a stored subscription and
the delivery itself advertises that subscription's topic and hub, either
in its Link headers or in its body. One channel matching is enough.

The gate only reads; it never changes a subscription.
"""

from collections.abc import Iterable

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from websub_subscriber.core.errors import NotAcceptableError, NotFoundError
from websub_subscriber.models.subscription import Subscription
from websub_subscriber.services.callback_correlator import CallbackCorrelator
from websub_subscriber.services.link_discovery import (
    links_from_content,
    links_from_headers,
    matches_subscription,
)

logger = structlog.get_logger()


class ContentDeliveryGate:
    """Decides whether an inbound notification may be handed on.

    Args:
        correlator: Resolves the delivery's callback to a subscription.
    """

    def __init__(self, correlator: CallbackCorrelator) -> None:
        self.correlator = correlator

    async def admit(
        self,
        db: AsyncSession,
        request_path: str,
        link_headers: Iterable[str],
        body: bytes,
    ) -> Subscription:
        """Authenticate a content delivery.

        Args:
            db: Async database session.
            request_path: Path the delivery was POSTed to.
            link_headers: Every Link header value of the delivery.
            body: Raw delivery body.

        Returns:
            The subscription the delivery belongs to.

        Raises:
            NotFoundError: No subscription has this callback. Discovery is
                not attempted.
            NotAcceptableError: Neither headers nor body advertise the
                subscription's topic and hub.
        """
        subscription = await self.correlator.resolve(db, request_path)
        if subscription is None:
            logger.info("delivery_rejected", reason="unknown_callback", path=request_path)
            raise NotFoundError("Subscription")

        if matches_subscription(subscription, links_from_headers(link_headers)):
            logger.info(
                "delivery_admitted",
                subscription_id=str(subscription.id),
                channel="headers",
            )
            return subscription

        if matches_subscription(subscription, links_from_content(body)):
            logger.info(
                "delivery_admitted",
                subscription_id=str(subscription.id),
                channel="content",
            )
            return subscription

        logger.info(
            "delivery_rejected",
            reason="links_mismatch",
            subscription_id=str(subscription.id),
            body_length=len(body),
        )
        raise NotAcceptableError()
