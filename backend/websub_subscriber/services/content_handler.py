"""Handlers for authenticated content deliveries.

What a deployment does with new content is its own business. It plugs in
a ContentHandler; the default one only logs the delivery.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from starlette.datastructures import Headers

from websub_subscriber.models.subscription import Subscription

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContentDelivery:
    """An admitted delivery.

    Attributes:
        subscription: Subscription the delivery was authenticated against.
        headers: Request headers (content type, Link, ...).
        body: Raw payload.
    """

    subscription: Subscription
    headers: Headers
    body: bytes

    @property
    def content_type(self) -> str | None:
        """Content-Type of the payload, if sent."""
        return self.headers.get("content-type")


class ContentHandler(ABC):
    """Receives deliveries that passed the delivery gate."""

    @abstractmethod
    async def handle(self, delivery: ContentDelivery) -> int:
        """Process a delivery.

        Args:
            delivery: The authenticated delivery.

        Returns:
            HTTP status to answer the hub with (2xx acknowledges receipt).
        """
        ...


class LoggingContentHandler(ContentHandler):
    """Acknowledges every delivery after logging it."""

    async def handle(self, delivery: ContentDelivery) -> int:
        """Log the delivery and acknowledge it with 200."""
        logger.info(
            "Content for subscription %s (topic %s): %d bytes of %s",
            delivery.subscription.id,
            delivery.subscription.topic,
            len(delivery.body),
            delivery.content_type or "unknown type",
        )
        return 200
