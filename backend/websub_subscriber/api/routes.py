"""WebSub subscriber endpoints.

Endpoints (mounted under WEBSUB_BASE_PATH):
- GET /subscribe: record an intent and send it to the hub
- GET /callback/{subscription_id}: hub verification handshake
- POST /callback/{subscription_id}: hub content delivery

The callback routes never trust the path id on its own: the whole
callback URL must equal a stored subscription's callback.
"""

from typing import TypeVar

from fastapi import APIRouter, Request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from starlette.datastructures import QueryParams
from starlette.responses import PlainTextResponse, Response

from websub_subscriber.api.deps import (
    Content,
    Correlator,
    DbSession,
    DeliveryGate,
    Handshake,
    Hub,
)
from websub_subscriber.core.config import settings
from websub_subscriber.core.errors import ValidationError
from websub_subscriber.core.rate_limiting import limiter
from websub_subscriber.core.responses import DataResponse
from websub_subscriber.schemas.websub import (
    SubscribeRequest,
    SubscriptionMode,
    SubscriptionRead,
    VerificationAttempt,
)
from websub_subscriber.services.content_handler import ContentDelivery
from websub_subscriber.services.intent_builder import build_intent

router = APIRouter()

ModelT = TypeVar("ModelT", bound=BaseModel)


def _decode_query(model: type[ModelT], query_params: QueryParams) -> ModelT:
    """Validate query parameters against a schema.

    Raises:
        ValidationError: 400 with field-level details.
    """
    try:
        return model.model_validate(dict(query_params))
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid query parameters",
            details=[
                {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
                for err in e.errors()
            ],
        ) from e


# ===================================================================
# GET /subscribe
# ===================================================================


@router.get("/subscribe", status_code=202)
@limiter.limit(lambda: settings.rate_limit_subscribe)
async def subscribe(
    request: Request,
    db: DbSession,
    correlator: Correlator,
    hub_client: Hub,
) -> DataResponse[SubscriptionRead]:
    """Subscribe to or unsubscribe from a topic.

    Subscribing without a hub discovers it from the topic resource; the
    advertised self link then becomes the stored topic. Unsubscribing
    needs the hub and the callback of the subscription to cancel.

    The intent is committed before the hub is contacted. A hub failure
    answers 502 and leaves the pending record in place.
    """
    params = _decode_query(SubscribeRequest, request.query_params)

    if params.mode is SubscriptionMode.SUBSCRIBE:
        topic, hub = params.topic, params.hub
        if hub is None:
            links = await hub_client.discover(params.topic)
            topic, hub = links.topic, links.hub
        intent = await build_intent(
            db,
            mode=SubscriptionMode.SUBSCRIBE,
            topic=topic,
            hub=hub,
            callback=correlator.new_callback(request.url.path),
            lease_seconds=params.lease_seconds or settings.default_lease_seconds,
        )
    else:
        if params.hub is None or params.callback is None:
            raise ValidationError("hub and callback are required to unsubscribe")
        intent = await build_intent(
            db,
            mode=SubscriptionMode.UNSUBSCRIBE,
            topic=params.topic,
            hub=params.hub,
            callback=params.callback,
        )

    await db.commit()
    await hub_client.send(intent.request)

    return DataResponse(data=SubscriptionRead.model_validate(intent.subscription))


# ===================================================================
# GET /callback/{subscription_id}
# ===================================================================


@router.get("/callback/{subscription_id}")
async def verify(
    subscription_id: str,  # noqa: ARG001 - correlation uses the full URL
    request: Request,
    db: DbSession,
    correlator: Correlator,
    handshake: Handshake,
) -> Response:
    """Answer a hub's verification request.

    202 with the challenge as text/plain body on success; an empty 404 when
    the callback is unknown or the intent is refused; 400 when the hub's
    parameters are malformed.
    """
    attempt = _decode_query(VerificationAttempt, request.query_params)
    subscription = await correlator.resolve(db, request.url.path, for_update=True)
    reply = await handshake.handle(db, attempt, subscription)
    await db.commit()

    if reply.body is None:
        return Response(status_code=reply.status_code)
    return PlainTextResponse(reply.body, status_code=reply.status_code)


# ===================================================================
# POST /callback/{subscription_id}
# ===================================================================


@router.post("/callback/{subscription_id}")
async def receive_content(
    subscription_id: str,  # noqa: ARG001 - correlation uses the full URL
    request: Request,
    db: DbSession,
    gate: DeliveryGate,
    content_handler: Content,
) -> Response:
    """Authenticate a content delivery and hand it to the content handler.

    404 for an unknown callback, 406 when the delivery does not advertise
    the subscription's topic and hub.
    """
    body = await request.body()
    subscription = await gate.admit(
        db,
        request.url.path,
        request.headers.getlist("link"),
        body,
    )
    status_code = await content_handler.handle(
        ContentDelivery(subscription=subscription, headers=request.headers, body=body)
    )
    return Response(status_code=status_code)
