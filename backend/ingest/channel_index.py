"""
Channel index page parsing.

A channel page (e.g. https://www.youtube.com/@handle) names its canonical
channel ID in a few `<link>` tags. Only those tags are kept from the raw bytes
and re-wrapped in a minimal document before parsing, which keeps extraction
working on truncated or malformed pages.
"""
from __future__ import annotations

import re
from typing import Optional

from bs4 import BeautifulSoup

from shared.errors import NotFoundError
from shared.models.domain import ChannelIndex
from shared.youtube import is_valid_channel_id

OPERATION = "parse_channel_index"

LINK_TAG_START = b"<link"
LINK_TAG_END = b">"

_CHANNEL_PATH_RE = re.compile(r"channel/([^/?#&\s]+)")
_CHANNEL_QUERY_RE = re.compile(r"channel_id=([^&#\s]+)")


def extract_link_tags(body: bytes) -> bytes:
    """Concatenate every `<link ...>` tag found in `body`, in document order."""
    tags: list[bytes] = []
    pos = 0
    while True:
        start = body.find(LINK_TAG_START, pos)
        if start < 0:
            break
        end = body.find(LINK_TAG_END, start)
        if end < 0:
            break
        tag = body[start:end + 1]
        pos = end + 1
        if len(tag) > len(LINK_TAG_START) + len(LINK_TAG_END):
            tags.append(tag)
    return b"".join(tags)


def _attr(tag: object, name: str) -> str:
    value = tag.get(name)  # type: ignore[attr-defined]
    if value is None:
        return ""
    if isinstance(value, list):
        value = " ".join(value)
    return str(value).strip()


def _match_id(pattern: re.Pattern[str], href: str) -> Optional[str]:
    match = pattern.search(href)
    if match and match.start() > 0 and is_valid_channel_id(match.group(1)):
        return match.group(1)
    return None


def parse_channel_index(body: bytes) -> ChannelIndex:
    """
    Extract the channel ID from a channel index page.

    Canonical/`itemprop="url"` links win over RSS alternates.

    Raises:
        NotFoundError: If no link yields a valid channel ID.
    """
    if not body:
        raise NotFoundError("empty channel page", operation=OPERATION)

    document = b"<html><body>" + extract_link_tags(body) + b"</body></html>"
    soup = BeautifulSoup(document, "html.parser")
    links = soup.find_all("link")

    for link in links:
        rel = _attr(link, "rel").lower().split()
        itemprop = _attr(link, "itemprop").lower()
        if "canonical" in rel or itemprop == "url":
            channel_id = _match_id(_CHANNEL_PATH_RE, _attr(link, "href"))
            if channel_id:
                return ChannelIndex(channel_id=channel_id)

    for link in links:
        rel = _attr(link, "rel").lower().split()
        if "alternate" in rel and "rss" in _attr(link, "type").lower():
            channel_id = _match_id(_CHANNEL_QUERY_RE, _attr(link, "href"))
            if channel_id:
                return ChannelIndex(channel_id=channel_id)

    raise NotFoundError("no channel ID in channel page links", operation=OPERATION)
