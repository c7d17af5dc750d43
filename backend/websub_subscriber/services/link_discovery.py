"""Topic/hub link discovery and matching.

Discovers the ``rel="self"`` (topic) and ``rel="hub"`` links a resource
advertises, either in HTTP ``Link`` headers or in the document itself
(HTML/XHTML ``<link>`` elements, Atom/RSS feed links), and decides
whether a discovered pair matches a stored subscription.

A pair is only returned when both links are present. Matching is exact
string equality on both fields; hrefs are never resolved or normalised.
"""

import io
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from html.parser import HTMLParser

import feedparser
from requests.utils import parse_header_links

from websub_subscriber.models.subscription import Subscription

logger = logging.getLogger(__name__)

_REL_HUB = "hub"
_REL_SELF = "self"


@dataclass(frozen=True)
class DiscoveredLinks:
    """Topic and hub advertised by a resource.

    Attributes:
        topic: Href of the ``rel="self"`` link.
        hub: Href of the ``rel="hub"`` link.
    """

    topic: str
    hub: str


# =============================================================================
# Matching
# =============================================================================


def matches(
    stored_topic: str,
    stored_hub: str,
    discovered_topic: str,
    discovered_hub: str,
) -> bool:
    """Return True iff both topic and hub are exactly equal."""
    return stored_topic == discovered_topic and stored_hub == discovered_hub


def matches_subscription(
    subscription: Subscription,
    links: DiscoveredLinks | None,
) -> bool:
    """Check a discovered pair against a stored subscription.

    Args:
        subscription: Stored subscription.
        links: Discovered pair, or None when discovery found nothing.

    Returns:
        False when links is None, otherwise the result of matches().
    """
    if links is None:
        return False
    return matches(subscription.topic, subscription.hub, links.topic, links.hub)


# =============================================================================
# Header discovery
# =============================================================================


def _rel_tokens(link: dict[str, str]) -> list[str]:
    """Extract the space-separated rel values of one parsed link-value."""
    for key, value in link.items():
        if key.lower() == "rel":
            return value.lower().split()
    return []


def _pair(rel_hrefs: Iterable[tuple[list[str], str]]) -> DiscoveredLinks | None:
    """Pick the first self and first hub href out of (rels, href) pairs."""
    topic: str | None = None
    hub: str | None = None
    for rels, href in rel_hrefs:
        if topic is None and _REL_SELF in rels:
            topic = href
        if hub is None and _REL_HUB in rels:
            hub = href
    if topic is None or hub is None:
        return None
    return DiscoveredLinks(topic=topic, hub=hub)


def links_from_headers(link_headers: Iterable[str]) -> DiscoveredLinks | None:
    """Discover topic and hub from ``Link`` header values.

    Args:
        link_headers: Every ``Link`` header value of a request or response.
            A single value may hold several comma-separated links.

    Returns:
        DiscoveredLinks when both a self and a hub link are advertised,
        None otherwise.
    """

    def _iter_links():
        for header in link_headers:
            for link in parse_header_links(header):
                yield _rel_tokens(link), link["url"]

    return _pair(_iter_links())


# =============================================================================
# Content discovery
# =============================================================================


class _LinkCollector(HTMLParser):
    """Collects (rels, href) of every ``<link>`` element in a document."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.links: list[tuple[list[str], str]] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag != "link" and not tag.endswith(":link"):
            return
        values = dict(attrs)
        rel = values.get("rel")
        href = values.get("href")
        if rel and href is not None:
            self.links.append((rel.lower().split(), href.strip()))

    # <link/> in XHTML arrives here instead of handle_starttag.
    handle_startendtag = handle_starttag


def _links_from_feed(parsed: feedparser.FeedParserDict) -> DiscoveredLinks | None:
    """Discover feed-level hub/self links of a parsed Atom or RSS document.

    Entry-level links are ignored; an entry's self link is not the topic.
    """
    feed_links = parsed.feed.get("links", [])
    return _pair(
        (str(link.get("rel", "")).lower().split(), link.get("href", ""))
        for link in feed_links
    )


def _links_from_markup(text: str) -> DiscoveredLinks | None:
    """Discover hub/self ``<link>`` elements in HTML or XML markup."""
    collector = _LinkCollector()
    collector.feed(text)
    collector.close()
    return _pair(collector.links)


def links_from_content(body: bytes | str | None) -> DiscoveredLinks | None:
    """Discover topic and hub from a document body.

    Feeds are read with feedparser; anything else is scanned for
    ``<link>`` elements.

    Args:
        body: Raw document (bytes or text). Empty bodies discover nothing.

    Returns:
        DiscoveredLinks when both a self and a hub link are advertised,
        None otherwise.
    """
    if not body:
        return None
    raw = body.encode("utf-8") if isinstance(body, str) else body

    # A stream, so feedparser never treats the body as a URL or file name.
    parsed = feedparser.parse(io.BytesIO(raw))
    if parsed.get("version"):
        return _links_from_feed(parsed)

    text = body if isinstance(body, str) else raw.decode("utf-8", errors="replace")
    links = _links_from_markup(text)
    if links is None:
        logger.debug("No hub/self links in %d byte document", len(raw))
    return links
