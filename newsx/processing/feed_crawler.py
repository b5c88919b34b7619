"""
Feed Crawler
============

Crawls a single RSS feed: fetch, parse, dedupe, then fetch every article
page under a per-feed concurrency limit.
"""

import asyncio
from typing import List, Optional

from ..config.settings import CrawlerSettings
from ..database.models import Article, AuthorDiagnostic, FeedItem, ScrapedArticle
from ..ingestion.article_fetcher import ArticleFetcher
from ..ingestion.feed_parser import FeedParser
from ..ingestion.http_client import HttpClient
from ..utils.exceptions import FeedParseError, HttpRequestError
from ..utils.logging import get_logger_for_component
from ..utils.text import create_slug, strip_html_tags


class FeedCrawler:
    """Turns one feed URL into a list of Articles."""

    def __init__(
        self,
        http_client: HttpClient,
        settings: Optional[CrawlerSettings] = None,
        parser: Optional[FeedParser] = None,
        fetcher: Optional[ArticleFetcher] = None,
    ):
        """Initialize feed crawler.

        Args:
            http_client: Shared HTTP client
            settings: Crawler settings (defaults when omitted)
            parser: Feed parser override
            fetcher: Article fetcher override
        """
        self.http_client = http_client
        self.settings = settings or CrawlerSettings()
        self.parser = parser or FeedParser()
        self.fetcher = fetcher or ArticleFetcher(http_client)

    async def crawl_feed(self, feed_url: str, category_id: str) -> List[Article]:
        """Crawl one feed and return an Article per unique item.

        Feed-level failures are logged and produce an empty list. Article
        fetch failures are embedded in the returned records.
        """
        logger = get_logger_for_component(
            "feed_crawler", feed_url=feed_url, category_id=category_id
        )

        try:
            xml = await self.http_client.fetch_text(feed_url)
            items = self.parser.parse_feed(xml, feed_url=feed_url)
        except (HttpRequestError, FeedParseError) as e:
            logger.error(f"Failed to crawl feed {feed_url}: {e}")
            return []

        if self.settings.max_items_per_feed is not None:
            items = items[: self.settings.max_items_per_feed]

        if not items:
            logger.info(f"Feed {feed_url} has no items")
            return []

        # Scoped to this invocation, one pool per feed
        semaphore = asyncio.Semaphore(self.settings.item_concurrency)

        async def crawl_item(item: FeedItem) -> Article:
            async with semaphore:
                scraped = await self._fetch(item.link, logger)
            return self.build_article(item, scraped, category_id)

        articles = await asyncio.gather(*(crawl_item(item) for item in items))

        logger.info(f"Crawled {len(articles)} articles from {feed_url}")
        return list(articles)

    async def _fetch(self, url: str, logger) -> ScrapedArticle:
        try:
            return await self.fetcher.fetch_article(url)
        except Exception as e:
            logger.error(f"Article fetcher raised for {url}: {e}")
            message = f"Error when fetching article content: {e}"
            return ScrapedArticle(content=message, author=AuthorDiagnostic(message=message))

    @staticmethod
    def build_article(item: FeedItem, scraped: ScrapedArticle, category_id: str) -> Article:
        """Combine a feed item with its scraped page into an Article."""
        title = item.title or item.link
        return Article(
            author=scraped.author,
            title=title,
            link=item.link,
            slug=create_slug(title),
            pub_date=item.pub_date,
            categories=[category_id],
            description=strip_html_tags(item.description),
            image=item.image or None,
            content=scraped.content,
        )
