"""Callback URL derivation and request correlation.

A callback is ``{host}{base_path}/callback/{id}`` with a fresh UUID per
subscription request. An inbound hub request is bound to a subscription
only when ``{host}{request_path}`` equals the stored callback exactly:
no case folding, no trailing slash tolerance, no lookup by id alone.
"""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from websub_subscriber.models.subscription import Subscription
from websub_subscriber.repositories.subscription_repository import (
    SubscriptionRepository,
)

logger = logging.getLogger(__name__)

_SUBSCRIBE_SUFFIX = "/subscribe"
_CALLBACK_SEGMENT = "/callback/"


@dataclass(frozen=True)
class CallbackURL:
    """A freshly derived callback.

    Attributes:
        subscription_id: Id embedded as the last path segment.
        url: Full callback URL advertised to the hub.
    """

    subscription_id: uuid.UUID
    url: str


class CallbackCorrelator:
    """Derives callback URLs and resolves inbound requests to subscriptions.

    Args:
        host: Public scheme://host[:port] prefix, without a trailing slash.
        id_factory: Source of new subscription ids. Defaults to uuid4.
    """

    def __init__(
        self,
        host: str,
        id_factory: Callable[[], uuid.UUID] = uuid.uuid4,
    ) -> None:
        self.host = host
        self._id_factory = id_factory

    def new_callback(self, request_path: str) -> CallbackURL:
        """Derive a callback URL for a subscription request.

        Args:
            request_path: Path of the subscribe request,
                e.g. ``/websub/subscribe``.

        Returns:
            CallbackURL with a never-before-used id.
        """
        base_path = request_path
        if base_path.endswith(_SUBSCRIBE_SUFFIX):
            base_path = base_path[: -len(_SUBSCRIBE_SUFFIX)]
        subscription_id = self._id_factory()
        return CallbackURL(
            subscription_id=subscription_id,
            url=f"{self.host}{base_path}{_CALLBACK_SEGMENT}{subscription_id}",
        )

    def callback_for(self, request_path: str) -> str:
        """Rebuild the callback URL an inbound request arrived on.

        Args:
            request_path: Path of the inbound hub request.

        Returns:
            ``{host}{request_path}``.
        """
        return f"{self.host}{request_path}"

    async def resolve(
        self,
        db: AsyncSession,
        request_path: str,
        *,
        for_update: bool = False,
    ) -> Subscription | None:
        """Find the subscription whose callback equals the request's URL.

        Args:
            db: Async database session.
            request_path: Path of the inbound hub request.
            for_update: Lock the row for a following state change.

        Returns:
            The correlated Subscription, or None when nothing matches.
        """
        callback = self.callback_for(request_path)
        subscription = await SubscriptionRepository.get_by_callback(
            db, callback, for_update=for_update
        )
        if subscription is None:
            logger.info("No subscription for callback %s", callback)
        return subscription
