"""Repository for Subscription persistence.

Lookups are exact string equality on the stored URLs. Nothing here
normalises a URL; correlating an inbound request depends on that.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from websub_subscriber.models.subscription import Subscription


class SubscriptionRepository:
    """Stateless repository for Subscription table operations.

    All methods are static. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        subscription_id: uuid.UUID,
        topic: str,
        hub: str,
        callback: str,
        state: str,
    ) -> Subscription:
        """Insert a new subscription.

        Args:
            db: Async database session.
            subscription_id: Id embedded in the callback URL.
            topic: Canonical topic URL.
            hub: Hub URL.
            callback: Full callback URL.
            state: Initial lifecycle state.

        Returns:
            Created Subscription with database-generated fields populated.

        Raises:
            sqlalchemy.exc.IntegrityError: If the callback already exists.
        """
        subscription = Subscription(
            id=subscription_id,
            topic=topic,
            hub=hub,
            callback=callback,
            state=state,
        )
        db.add(subscription)
        await db.flush()
        await db.refresh(subscription)
        return subscription

    @staticmethod
    async def get_by_id(
        db: AsyncSession,
        subscription_id: uuid.UUID,
    ) -> Subscription | None:
        """Fetch a subscription by primary key.

        Args:
            db: Async database session.
            subscription_id: Subscription UUID.

        Returns:
            Subscription if found, None otherwise.
        """
        return await db.get(Subscription, subscription_id)

    @staticmethod
    async def get_by_callback(
        db: AsyncSession,
        callback: str,
        *,
        for_update: bool = False,
    ) -> Subscription | None:
        """Fetch the subscription advertised under an exact callback URL.

        Args:
            db: Async database session.
            callback: Full callback URL, compared byte for byte.
            for_update: Lock the row until the transaction ends. Ignored by
                backends without row locks (SQLite).

        Returns:
            Subscription if found, None otherwise.
        """
        stmt = select(Subscription).where(Subscription.callback == callback)
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_identity(
        db: AsyncSession,
        *,
        topic: str,
        hub: str,
        callback: str,
    ) -> Subscription | None:
        """Fetch a subscription matching topic, hub and callback exactly.

        Args:
            db: Async database session.
            topic: Topic URL.
            hub: Hub URL.
            callback: Callback URL.

        Returns:
            Subscription if found, None otherwise.
        """
        stmt = select(Subscription).where(
            Subscription.topic == topic,
            Subscription.hub == hub,
            Subscription.callback == callback,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def save(db: AsyncSession, subscription: Subscription) -> Subscription:
        """Write pending changes of a subscription to the database.

        Flushes inside the caller's transaction; the caller commits.

        Args:
            db: Async database session.
            subscription: Subscription with modified attributes.

        Returns:
            The same Subscription instance.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: If the write fails.
        """
        db.add(subscription)
        await db.flush()
        return subscription
