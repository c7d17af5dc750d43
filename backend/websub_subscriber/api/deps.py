"""Shared dependencies for the WebSub endpoints.

Wires the subscriber's collaborators (database session, callback host,
hub HTTP client, content handler) into the routes. Tests swap any of
them through app.dependency_overrides.
"""

from collections.abc import AsyncGenerator
from typing import Annotated

import httpx
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from websub_subscriber.core.config import settings
from websub_subscriber.core.database import get_db
from websub_subscriber.services.callback_correlator import CallbackCorrelator
from websub_subscriber.services.content_handler import (
    ContentHandler,
    LoggingContentHandler,
)
from websub_subscriber.services.delivery_gate import ContentDeliveryGate
from websub_subscriber.services.hub_client import HubClient
from websub_subscriber.services.verification import VerificationHandshake


def get_correlator() -> CallbackCorrelator:
    """Correlator bound to the configured public host."""
    return CallbackCorrelator(settings.websub_host)


def get_handshake() -> VerificationHandshake:
    """Verification handshake using the wall clock."""
    return VerificationHandshake()


def get_delivery_gate(
    correlator: Annotated[CallbackCorrelator, Depends(get_correlator)],
) -> ContentDeliveryGate:
    """Delivery gate sharing the request's correlator."""
    return ContentDeliveryGate(correlator)


def get_content_handler() -> ContentHandler:
    """Handler for admitted deliveries. Override to process content."""
    return LoggingContentHandler()


async def get_hub_client() -> AsyncGenerator[HubClient, None]:
    """Hub client with its own httpx.AsyncClient for one request."""
    async with httpx.AsyncClient(
        timeout=settings.hub_request_timeout_seconds,
        headers={"User-Agent": settings.hub_user_agent},
    ) as client:
        yield HubClient(client)


DbSession = Annotated[AsyncSession, Depends(get_db)]
Correlator = Annotated[CallbackCorrelator, Depends(get_correlator)]
Handshake = Annotated[VerificationHandshake, Depends(get_handshake)]
DeliveryGate = Annotated[ContentDeliveryGate, Depends(get_delivery_gate)]
Hub = Annotated[HubClient, Depends(get_hub_client)]
Content = Annotated[ContentHandler, Depends(get_content_handler)]
