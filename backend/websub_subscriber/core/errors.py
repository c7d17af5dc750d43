"""API error classes.

Every error carries a machine-readable code, a human-readable message and
the HTTP status it maps to. The exception handlers in main.py render them
with the standard error envelope.
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Field validation failed (400).

    Use for malformed query parameters on the subscribe and callback routes.
    """

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class NotFoundError(APIError):
    """Resource not found (404).

    Use when no subscription correlates with the request. The message never
    says whether a callback id exists under a different host or path.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
        )


class NotAcceptableError(APIError):
    """Content delivery could not be authenticated (406).

    A subscription correlates with the callback, but neither the delivery
    headers nor its body advertise the subscription's topic and hub.
    """

    def __init__(self, message: str = "Delivery does not match subscription") -> None:
        super().__init__(
            code="NOT_ACCEPTABLE",
            message=message,
            status_code=406,
        )


class DiscoveryError(APIError):
    """Hub discovery failed for a topic (400).

    Raised when a subscribe request names no hub and the topic resource does
    not advertise both a hub and a self link.
    """

    def __init__(self, topic: str, reason: str | None = None) -> None:
        message = f"Could not discover a hub for topic '{topic}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            code="DISCOVERY_FAILED",
            message=message,
            status_code=400,
        )


class HubRequestError(APIError):
    """Hub rejected or did not answer a (un)subscription request (502).

    The local pending record is kept so the request can be replayed.

    Args:
        hub: Hub URL the request was sent to.
        status_code: Status returned by the hub, None if it was unreachable.
    """

    def __init__(self, hub: str, status_code: int | None = None) -> None:
        if status_code is None:
            message = f"Hub '{hub}' could not be reached"
            details = None
        else:
            message = f"Hub '{hub}' rejected the request"
            details = [{"hub_status": status_code}]
        super().__init__(
            code="HUB_REQUEST_FAILED",
            message=message,
            status_code=502,
            details=details,
        )
        self.hub = hub
        self.hub_status = status_code


class InternalError(APIError):
    """Unexpected server error (500).

    Use for unhandled exceptions. Never expose stack traces to clients.
    """

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )
