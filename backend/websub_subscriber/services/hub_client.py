"""Outbound HTTP to hubs and topics.

Sends (un)subscription requests to hubs and fetches topic resources to
discover their hub. No retries: a failed request surfaces as an error and
the pending record stays behind for a later attempt.
"""

import logging

import httpx

from websub_subscriber.core.errors import DiscoveryError, HubRequestError
from websub_subscriber.services.intent_builder import HubRequest
from websub_subscriber.services.link_discovery import (
    DiscoveredLinks,
    links_from_content,
    links_from_headers,
)

logger = logging.getLogger(__name__)


class HubClient:
    """Talks to hubs and topic publishers over an httpx.AsyncClient.

    Args:
        client: Client to send requests with. The caller owns its lifetime.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    async def send(self, request: HubRequest) -> httpx.Response:
        """POST a subscription request to its hub.

        Hubs answer 202 Accepted and verify asynchronously; any 2xx is
        treated as accepted.

        Args:
            request: Request built from a recorded intent.

        Returns:
            The hub's response.

        Raises:
            HubRequestError: The hub was unreachable or answered non-2xx.
        """
        try:
            response = await self.client.post(request.hub, data=request.form_data())
        except httpx.HTTPError as e:
            logger.warning(
                "Hub %s unreachable for %s of %s: %s",
                request.hub,
                request.mode.value,
                request.topic,
                e,
            )
            raise HubRequestError(request.hub) from e

        if not response.is_success:
            logger.warning(
                "Hub %s answered %d to %s of %s",
                request.hub,
                response.status_code,
                request.mode.value,
                request.topic,
            )
            raise HubRequestError(request.hub, response.status_code)

        logger.info(
            "Hub %s accepted %s of %s (status %d)",
            request.hub,
            request.mode.value,
            request.topic,
            response.status_code,
        )
        return response

    async def discover(self, topic: str) -> DiscoveredLinks:
        """Fetch a topic resource and discover its hub and self links.

        Link headers take precedence over links in the document body.

        Args:
            topic: URL of the resource to subscribe to.

        Returns:
            The advertised topic (self) and hub.

        Raises:
            DiscoveryError: The resource could not be fetched or does not
                advertise both links.
        """
        try:
            response = await self.client.get(topic, follow_redirects=True)
        except httpx.HTTPError as e:
            raise DiscoveryError(topic, "resource could not be fetched") from e

        if not response.is_success:
            raise DiscoveryError(topic, f"resource answered {response.status_code}")

        links = links_from_headers(response.headers.get_list("link"))
        if links is None:
            links = links_from_content(response.content)
        if links is None:
            raise DiscoveryError(topic, "no hub and self links advertised")

        logger.info("Discovered hub %s for topic %s", links.hub, links.topic)
        return links
