"""Tests for WebSub request/response schemas."""

import pytest
from pydantic import ValidationError

from websub_subscriber.schemas.websub import (
    MAX_LEASE_SECONDS,
    SubscribeRequest,
    SubscriptionMode,
    VerificationAttempt,
)


class TestVerificationAttempt:
    def test_decodes_hub_parameter_names(self):
        attempt = VerificationAttempt.model_validate(
            {
                "hub.mode": "unsubscribe",
                "hub.topic": "https://publisher.example/feed",
                "hub.challenge": "c",
                "hub.lease_seconds": "86400",
            }
        )

        assert attempt.mode is SubscriptionMode.UNSUBSCRIBE
        assert attempt.topic == "https://publisher.example/feed"
        assert attempt.challenge == "c"
        assert attempt.lease_seconds == 86400

    def test_lease_is_optional(self):
        attempt = VerificationAttempt.model_validate(
            {"hub.mode": "subscribe", "hub.topic": "t", "hub.challenge": "c"}
        )
        assert attempt.lease_seconds is None

    def test_unknown_hub_parameters_are_ignored(self):
        attempt = VerificationAttempt.model_validate(
            {
                "hub.mode": "subscribe",
                "hub.topic": "t",
                "hub.challenge": "c",
                "hub.verify_token": "legacy",
            }
        )
        assert attempt.challenge == "c"

    def test_largest_lease_is_accepted(self):
        attempt = VerificationAttempt.model_validate(
            {
                "hub.mode": "subscribe",
                "hub.topic": "t",
                "hub.challenge": "c",
                "hub.lease_seconds": str(MAX_LEASE_SECONDS),
            }
        )
        assert attempt.lease_seconds == 2**31 - 1

    def test_challenge_is_kept_verbatim(self):
        attempt = VerificationAttempt.model_validate(
            {"hub.mode": "subscribe", "hub.topic": "t", "hub.challenge": " c\n"}
        )
        assert attempt.challenge == " c\n"

    @pytest.mark.parametrize(
        "params",
        [
            {"hub.topic": "t", "hub.challenge": "c"},
            {"hub.mode": "subscribe", "hub.topic": "", "hub.challenge": "c"},
            {"hub.mode": "subscribe", "hub.topic": "t", "hub.challenge": ""},
            {"hub.mode": "denied", "hub.topic": "t", "hub.challenge": "c"},
            {
                "hub.mode": "subscribe",
                "hub.topic": "t",
                "hub.challenge": "c",
                "hub.lease_seconds": "-1",
            },
            {
                "hub.mode": "subscribe",
                "hub.topic": "t",
                "hub.challenge": "c",
                "hub.lease_seconds": "99999999999999",
            },
        ],
    )
    def test_rejects_malformed_attempts(self, params):
        with pytest.raises(ValidationError):
            VerificationAttempt.model_validate(params)

    def test_is_immutable(self):
        attempt = VerificationAttempt(mode="subscribe", topic="t", challenge="c")
        with pytest.raises(ValidationError):
            attempt.challenge = "other"


class TestSubscribeRequest:
    def test_defaults_to_subscribe(self):
        request = SubscribeRequest(topic="https://publisher.example/feed")
        assert request.mode is SubscriptionMode.SUBSCRIBE
        assert request.hub is None

    def test_url_is_not_normalised(self):
        request = SubscribeRequest(
            topic="https://Publisher.example/feed/", hub="https://Hub.example"
        )
        assert request.topic == "https://Publisher.example/feed/"
        assert request.hub == "https://Hub.example"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"topic": "ftp://publisher.example/feed"},
            {"topic": "https://publisher.example/feed", "hub": "hub.example"},
            {"topic": "https://publisher.example/feed", "lease_seconds": 0},
            {"topic": "https://publisher.example/feed", "lease_seconds": 2**31},
            {"topic": "https://publisher.example/feed", "secret": "s"},
        ],
    )
    def test_rejects_invalid_requests(self, kwargs):
        with pytest.raises(ValidationError):
            SubscribeRequest(**kwargs)
