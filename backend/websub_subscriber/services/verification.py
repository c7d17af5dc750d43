"""Hub verification handshake.

A hub verifies an intent by calling the callback with ``hub.mode``,
``hub.topic``, ``hub.challenge`` and optionally ``hub.lease_seconds``.
The subscriber confirms by answering 202 with the challenge echoed back
byte for byte, or refuses with 404, which tells the hub to stop.

Two entry points share the same mutation routines:
- verify_subscription(): intent acknowledgment, pendingSubscription →
  subscribed. Answers with a HandshakeReply.
- verify(): lease confirmation, strict topic check then → verified, or
  → unverified on mismatch. Answers with a VerificationResult.

handle() answers an inbound callback request. A topic mismatch takes the
same failure branch as verify(); anything else is an intent acknowledgment.
"""

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from websub_subscriber.core.errors import NotFoundError
from websub_subscriber.models.subscription import Subscription
from websub_subscriber.repositories.subscription_repository import (
    SubscriptionRepository,
)
from websub_subscriber.schemas.websub import SubscriptionMode, VerificationAttempt
from websub_subscriber.services.subscription_state import SubscriptionState

logger = structlog.get_logger()

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Default clock: current time in UTC."""
    return datetime.now(UTC)


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class HandshakeReply:
    """Status and body to answer a hub's verification request with.

    Attributes:
        status_code: 202 when verified, 404 otherwise.
        body: The challenge on success, None otherwise.
    """

    status_code: int
    body: str | None = None

    @classmethod
    def accepted(cls, challenge: str) -> "HandshakeReply":
        """Confirm the intent by echoing the hub's challenge."""
        return cls(status_code=202, body=challenge)

    @classmethod
    def not_found(cls) -> "HandshakeReply":
        """Refuse the intent."""
        return cls(status_code=404)


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a lease confirmation.

    Exactly one of verification and error is set.
    """

    verification: VerificationAttempt | None = None
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        """True when the hub's attempt was confirmed."""
        return self.error is None

    @classmethod
    def success(cls, verification: VerificationAttempt) -> "VerificationResult":
        """Build a successful result carrying the confirmed attempt."""
        return cls(verification=verification)

    @classmethod
    def failure(cls, error: Exception) -> "VerificationResult":
        """Build a failed result carrying its cause."""
        return cls(error=error)


def _subscription_not_found(subscription_id: uuid.UUID | None = None) -> NotFoundError:
    return NotFoundError(
        "Subscription", str(subscription_id) if subscription_id else None
    )


# =============================================================================
# Handshake
# =============================================================================


class VerificationHandshake:
    """Validates hub verification requests and moves subscriptions along.

    Every state change is flushed through SubscriptionRepository.save()
    before a method returns. The caller owns the commit.

    Args:
        clock: Source of "now" for verification timestamps and expiry.
    """

    def __init__(self, clock: Clock = utcnow) -> None:
        self.clock = clock

    # -------------------------------------------------------------------------
    # Shared mutation routines
    # -------------------------------------------------------------------------

    async def _accept(
        self,
        db: AsyncSession,
        subscription: Subscription,
        attempt: VerificationAttempt,
        target: SubscriptionState,
        *,
        record_lease: bool,
    ) -> None:
        now = self.clock()
        subscription.state = target.value
        subscription.last_successful_verification_at = now
        if record_lease:
            subscription.lease_seconds = attempt.lease_seconds
        if attempt.lease_seconds is not None:
            subscription.expired_at = now + timedelta(seconds=attempt.lease_seconds)
        await SubscriptionRepository.save(db, subscription)
        logger.info(
            "subscription_verified",
            subscription_id=str(subscription.id),
            state=subscription.state,
            mode=attempt.mode.value,
            lease_seconds=attempt.lease_seconds,
        )

    async def _reject(
        self,
        db: AsyncSession,
        subscription: Subscription,
        attempt: VerificationAttempt,
    ) -> None:
        logger.info(
            "verification_topic_mismatch",
            subscription_id=str(subscription.id),
            stored_topic=subscription.topic,
            attempt_topic=attempt.topic,
        )
        # Any state, terminal ones included, ends in unverified.
        subscription.state = SubscriptionState.UNVERIFIED.value
        await self._record_unsuccessful(db, subscription)

    async def _record_unsuccessful(
        self,
        db: AsyncSession,
        subscription: Subscription,
    ) -> None:
        subscription.last_unsuccessful_verification_at = self.clock()
        await SubscriptionRepository.save(db, subscription)
        logger.info(
            "subscription_not_verified",
            subscription_id=str(subscription.id),
            state=subscription.state,
        )

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    async def verify_subscription(
        self,
        db: AsyncSession,
        subscription: Subscription,
        attempt: VerificationAttempt,
    ) -> HandshakeReply:
        """Acknowledge a subscribe intent awaiting verification.

        Only a pendingSubscription is accepted; any other state (including
        a repeated verification) is refused and the refusal is recorded.

        Args:
            db: Async database session.
            subscription: Subscription correlated with the request.
            attempt: Decoded verification request.

        Returns:
            202 with the challenge, or 404.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: If persisting fails.
        """
        state = SubscriptionState.from_string(subscription.state)
        if state is SubscriptionState.PENDING_SUBSCRIPTION:
            await self._accept(
                db,
                subscription,
                attempt,
                SubscriptionState.SUBSCRIBED,
                record_lease=False,
            )
            return HandshakeReply.accepted(attempt.challenge)

        await self._record_unsuccessful(db, subscription)
        return HandshakeReply.not_found()

    async def verify_unsubscription(
        self,
        db: AsyncSession,
        subscription: Subscription,
        attempt: VerificationAttempt,
    ) -> HandshakeReply:
        """Acknowledge an unsubscribe intent awaiting verification.

        Args:
            db: Async database session.
            subscription: Subscription correlated with the request.
            attempt: Decoded verification request.

        Returns:
            202 with the challenge when pendingUnsubscription, 404 otherwise.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: If persisting fails.
        """
        state = SubscriptionState.from_string(subscription.state)
        if state is SubscriptionState.PENDING_UNSUBSCRIPTION:
            await self._accept(
                db,
                subscription,
                attempt,
                SubscriptionState.UNSUBSCRIBED,
                record_lease=False,
            )
            return HandshakeReply.accepted(attempt.challenge)

        await self._record_unsuccessful(db, subscription)
        return HandshakeReply.not_found()

    async def verify(
        self,
        db: AsyncSession,
        attempt: VerificationAttempt,
        subscription: Subscription | None,
    ) -> VerificationResult:
        """Confirm a verification by strict topic comparison.

        The attempt's topic must equal the stored topic exactly; there is
        no discovery fallback.

        Args:
            db: Async database session.
            attempt: Decoded verification request.
            subscription: Correlated subscription, None if correlation failed.

        Returns:
            success(attempt) after moving to verified, failure(NotFoundError)
            when nothing correlated or the topic differs, failure(error) when
            persisting fails.
        """
        if subscription is None:
            return VerificationResult.failure(_subscription_not_found())

        try:
            if subscription.topic != attempt.topic:
                await self._reject(db, subscription, attempt)
                return VerificationResult.failure(
                    _subscription_not_found(subscription.id)
                )

            await self._accept(
                db,
                subscription,
                attempt,
                SubscriptionState.VERIFIED,
                record_lease=True,
            )
            return VerificationResult.success(attempt)
        except SQLAlchemyError as e:
            logger.error(
                "verification_persistence_failed",
                subscription_id=str(subscription.id),
                error=str(e),
                error_type=type(e).__name__,
            )
            return VerificationResult.failure(e)

    async def handle(
        self,
        db: AsyncSession,
        attempt: VerificationAttempt,
        subscription: Subscription | None,
    ) -> HandshakeReply:
        """Answer a hub's verification request.

        Order of checks:
        1. nothing correlated → 404, nothing written;
        2. topic differs from the stored topic → unverified, 404;
        3. unsubscribe → verify_unsubscription();
        4. subscribe → verify_subscription().

        A repeated subscribe verification is refused even when it carries
        a lease, since hubs send ``hub.lease_seconds`` on every attempt.

        Args:
            db: Async database session.
            attempt: Decoded verification request.
            subscription: Correlated subscription, None if correlation failed.

        Returns:
            The reply for the hub.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: If persisting fails.
        """
        logger.info(
            "verification_attempt",
            mode=attempt.mode.value,
            topic=attempt.topic,
            lease_seconds=attempt.lease_seconds,
            subscription_id=str(subscription.id) if subscription else None,
        )
        if subscription is None:
            return HandshakeReply.not_found()

        if subscription.topic != attempt.topic:
            await self._reject(db, subscription, attempt)
            return HandshakeReply.not_found()

        if attempt.mode is SubscriptionMode.UNSUBSCRIBE:
            return await self.verify_unsubscription(db, subscription, attempt)

        return await self.verify_subscription(db, subscription, attempt)
