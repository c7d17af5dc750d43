"""Tests for SubscriptionRepository.

Lookups are exact string matches; nothing is normalised on the way in or
out of the database.
"""

import uuid

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tests.conftest import TEST_HUB, TEST_TOPIC, callback_url
from websub_subscriber.repositories.subscription_repository import (
    SubscriptionRepository,
)
from websub_subscriber.services.subscription_state import SubscriptionState

_PENDING = SubscriptionState.PENDING_SUBSCRIPTION.value


async def _create(db: AsyncSession, subscription_id: uuid.UUID | None = None):
    subscription_id = subscription_id or uuid.uuid4()
    return await SubscriptionRepository.create(
        db,
        subscription_id=subscription_id,
        topic=TEST_TOPIC,
        hub=TEST_HUB,
        callback=callback_url(subscription_id),
        state=_PENDING,
    )


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_persists_fields_and_timestamps(self, db_session):
        subscription_id = uuid.uuid4()
        subscription = await _create(db_session, subscription_id)

        assert subscription.id == subscription_id
        assert subscription.topic == TEST_TOPIC
        assert subscription.hub == TEST_HUB
        assert subscription.callback == callback_url(subscription_id)
        assert subscription.state == _PENDING
        assert subscription.lease_seconds is None
        assert subscription.expired_at is None
        assert subscription.last_successful_verification_at is None
        assert subscription.last_unsuccessful_verification_at is None
        assert subscription.created_at is not None

    @pytest.mark.asyncio
    async def test_create_rejects_duplicate_callback(self, db_session):
        first = await _create(db_session)

        with pytest.raises(IntegrityError):
            await SubscriptionRepository.create(
                db_session,
                subscription_id=uuid.uuid4(),
                topic=TEST_TOPIC,
                hub=TEST_HUB,
                callback=first.callback,
                state=_PENDING,
            )


class TestLookups:
    @pytest.mark.asyncio
    async def test_get_by_id_returns_none_when_missing(self, db_session):
        assert await SubscriptionRepository.get_by_id(db_session, uuid.uuid4()) is None

    @pytest.mark.asyncio
    async def test_get_by_callback_matches_exact_url(self, db_session):
        subscription = await _create(db_session)

        found = await SubscriptionRepository.get_by_callback(
            db_session, subscription.callback
        )

        assert found is subscription

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "mangle",
        [
            lambda url: f"{url}/",
            lambda url: url.upper(),
            lambda url: url.replace("http://", "https://"),
        ],
    )
    async def test_get_by_callback_returns_none_for_near_miss(
        self, db_session, mangle
    ):
        subscription = await _create(db_session)

        found = await SubscriptionRepository.get_by_callback(
            db_session, mangle(subscription.callback)
        )

        assert found is None

    @pytest.mark.asyncio
    async def test_get_by_callback_for_update_returns_row(self, db_session):
        """Row locking is a no-op on SQLite but the lookup still works."""
        subscription = await _create(db_session)

        found = await SubscriptionRepository.get_by_callback(
            db_session, subscription.callback, for_update=True
        )

        assert found is subscription

    @pytest.mark.asyncio
    async def test_get_by_identity_requires_all_three_fields(self, db_session):
        subscription = await _create(db_session)

        assert (
            await SubscriptionRepository.get_by_identity(
                db_session,
                topic=TEST_TOPIC,
                hub=TEST_HUB,
                callback=subscription.callback,
            )
            is subscription
        )
        assert (
            await SubscriptionRepository.get_by_identity(
                db_session,
                topic=TEST_TOPIC,
                hub="https://other-hub.example/",
                callback=subscription.callback,
            )
            is None
        )


class TestSave:
    @pytest.mark.asyncio
    async def test_save_flushes_changes(self, db_session):
        subscription = await _create(db_session)
        subscription.state = SubscriptionState.SUBSCRIBED.value
        subscription.lease_seconds = 3600

        await SubscriptionRepository.save(db_session, subscription)
        db_session.expunge_all()
        reloaded = await SubscriptionRepository.get_by_id(db_session, subscription.id)

        assert reloaded is not None
        assert reloaded.state == SubscriptionState.SUBSCRIBED.value
        assert reloaded.lease_seconds == 3600
