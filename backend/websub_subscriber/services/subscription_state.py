"""Subscription lifecycle states and transitions.

Implements the state machine driven by intents and hub verifications:
- pendingSubscription → subscribed, unverified, pendingUnsubscription
- subscribed → verified, unverified, pendingUnsubscription
- verified → verified (lease renewal), unverified, pendingUnsubscription
- pendingUnsubscription → unsubscribed, unverified
- unsubscribed, unverified → (terminal, no transitions)

Intents only apply the listed transitions and answer 422 otherwise. A hub
verification naming the wrong topic is the one exception: it marks the
subscription unverified from any state, terminal ones included.
"""

from enum import Enum

from websub_subscriber.core.errors import APIError

# =============================================================================
# Enums
# =============================================================================


class SubscriptionState(str, Enum):
    """Subscription state values.

    Values match the database check constraint in the subscriptions table.
    """

    PENDING_SUBSCRIPTION = "pendingSubscription"
    SUBSCRIBED = "subscribed"
    VERIFIED = "verified"
    UNVERIFIED = "unverified"
    PENDING_UNSUBSCRIPTION = "pendingUnsubscription"
    UNSUBSCRIBED = "unsubscribed"

    @classmethod
    def from_string(cls, value: str) -> "SubscriptionState":
        """Convert a database string to enum.

        Args:
            value: State string from database.

        Returns:
            The corresponding SubscriptionState enum value.

        Raises:
            ValueError: If the string doesn't match any state.
        """
        for state in cls:
            if state.value == value:
                return state
        valid = [s.value for s in cls]
        raise ValueError(f"Invalid subscription state: '{value}'. Valid: {valid}")


# =============================================================================
# Exceptions
# =============================================================================


class InvalidStateTransitionError(APIError):
    """Raised when an intent asks for a transition the state machine forbids."""

    def __init__(
        self,
        current_state: SubscriptionState,
        target_state: SubscriptionState,
    ) -> None:
        self.current_state = current_state
        self.target_state = target_state
        valid_names = [s.value for s in get_valid_transitions(current_state)]
        super().__init__(
            code="INVALID_STATE_TRANSITION",
            message=(
                f"Cannot transition from {current_state.value} to {target_state.value}. "
                f"Valid transitions: {valid_names or 'none (terminal state)'}"
            ),
            status_code=422,
        )


# =============================================================================
# State Machine Definition
# =============================================================================


_VALID_TRANSITIONS: dict[SubscriptionState, list[SubscriptionState]] = {
    SubscriptionState.PENDING_SUBSCRIPTION: [
        SubscriptionState.SUBSCRIBED,
        SubscriptionState.UNVERIFIED,
        SubscriptionState.PENDING_UNSUBSCRIPTION,
    ],
    SubscriptionState.SUBSCRIBED: [
        SubscriptionState.VERIFIED,
        SubscriptionState.UNVERIFIED,
        SubscriptionState.PENDING_UNSUBSCRIPTION,
    ],
    SubscriptionState.VERIFIED: [
        SubscriptionState.VERIFIED,
        SubscriptionState.UNVERIFIED,
        SubscriptionState.PENDING_UNSUBSCRIPTION,
    ],
    SubscriptionState.PENDING_UNSUBSCRIPTION: [
        SubscriptionState.UNSUBSCRIBED,
        SubscriptionState.UNVERIFIED,
    ],
    SubscriptionState.UNSUBSCRIBED: [],  # Terminal state
    SubscriptionState.UNVERIFIED: [],  # Terminal state
}


# =============================================================================
# Public Functions
# =============================================================================


def is_valid_transition(
    current: SubscriptionState,
    target: SubscriptionState,
) -> bool:
    """Check if a state transition is valid.

    Args:
        current: The current state of the subscription.
        target: The desired target state.

    Returns:
        True if the transition is allowed, False otherwise.
    """
    return target in _VALID_TRANSITIONS.get(current, [])


def get_valid_transitions(state: SubscriptionState) -> list[SubscriptionState]:
    """Get valid target states from the current state.

    Args:
        state: The current state.

    Returns:
        List of states that can be transitioned to.
    """
    return _VALID_TRANSITIONS.get(state, [])


def is_terminal(state: SubscriptionState) -> bool:
    """Return True if no transition leaves the given state."""
    return not _VALID_TRANSITIONS.get(state)


def transition_state(
    current: SubscriptionState,
    target: SubscriptionState,
) -> SubscriptionState:
    """Validate a state transition and return the new state.

    Args:
        current: The current state of the subscription.
        target: The desired target state.

    Returns:
        The target state.

    Raises:
        InvalidStateTransitionError: If the transition is not allowed.
    """
    if not is_valid_transition(current, target):
        raise InvalidStateTransitionError(current_state=current, target_state=target)
    return target
