"""
RSS Feed Parser
===============

Turns a fetched RSS/Atom document into FeedItem records using feedparser.
"""

import io
from typing import Any, Iterable, List, Optional

import feedparser

from ..database.models import FeedItem
from ..utils.exceptions import FeedParseError, ErrorCode
from ..utils.logging import get_logger_for_component


class FeedParser:
    """Parses feed XML and removes repeated items."""

    def __init__(self):
        self.logger = get_logger_for_component("feed_parser")

    def parse_feed(self, xml: str, feed_url: Optional[str] = None) -> List[FeedItem]:
        """Parse a feed document into deduplicated items.

        Args:
            xml: Raw feed document
            feed_url: Source URL, used for log and error context only

        Returns:
            Items in document order, first occurrence of each link kept

        Raises:
            FeedParseError: If the document is not a feed at all
        """
        # a bare string that looks like a path or URL would be opened by feedparser
        parsed = feedparser.parse(
            io.BytesIO((xml or "").encode("utf-8")),
            response_headers={"content-type": "application/xml; charset=utf-8"},
        )
        entries = parsed.get("entries", [])

        reason = parsed.get("bozo_exception", "Invalid XML structure")
        # Well-formed HTML parses without bozo but has no feed version
        if not entries and (parsed.get("bozo") or not parsed.get("version")):
            raise FeedParseError(
                f"Document is not a valid feed: {reason}",
                feed_url=feed_url,
                error_code=ErrorCode.FEED_PARSE_ERROR,
            )

        if parsed.get("bozo"):
            self.logger.warning(
                f"Feed has parse issues but {len(entries)} entries, continuing: {reason}",
                extra={"feed_url": feed_url},
            )

        items = []
        for entry in entries:
            item = self._entry_to_item(entry)
            if item is None:
                self.logger.warning(
                    f"Skipping feed item without link: {entry.get('title', '')!r}",
                    extra={"feed_url": feed_url},
                )
                continue
            items.append(item)

        return dedupe_items(items, logger=self.logger)

    def _entry_to_item(self, entry: Any) -> Optional[FeedItem]:
        link = (entry.get("link") or "").strip()
        if not link:
            return None

        return FeedItem(
            title=(entry.get("title") or "").strip(),
            link=link,
            # Kept as published by the source, never reparsed
            pub_date=entry.get("published") or entry.get("updated") or "",
            description=entry.get("summary"),
            image=self._entry_image(entry),
        )

    def _entry_image(self, entry: Any) -> Optional[str]:
        for enclosure in entry.get("enclosures") or []:
            href = enclosure.get("href") or enclosure.get("url")
            if href:
                return href

        for media in entry.get("media_content") or []:
            url = media.get("url")
            if url:
                return url

        return None


def dedupe_items(items: Iterable[FeedItem], logger=None) -> List[FeedItem]:
    """Drop items whose link was already seen, preserving source order."""
    seen = set()
    unique = []
    for item in items:
        if item.link in seen:
            if logger is not None:
                logger.debug(f"Dropping duplicate feed item: {item.link}")
            continue
        seen.add(item.link)
        unique.append(item)
    return unique
