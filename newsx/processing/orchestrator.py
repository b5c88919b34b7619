"""
Multi-Feed Crawl Orchestrator
=============================

Runs FeedCrawler across many feeds with a global feed-level concurrency
limit and isolates failures of individual feeds.
"""

import asyncio
from typing import List, Optional, Sequence

from ..config.settings import CrawlerSettings, DuplicatePolicy
from ..database.models import Article, FeedTarget
from ..utils.logging import get_logger_for_component
from .feed_crawler import FeedCrawler


class CrawlOrchestrator:
    """Fans out over feeds, at most ``feed_concurrency`` at a time."""

    def __init__(self, crawler: FeedCrawler, settings: Optional[CrawlerSettings] = None):
        self.crawler = crawler
        self.settings = settings or CrawlerSettings()
        self.semaphore = asyncio.Semaphore(self.settings.feed_concurrency)
        self.logger = get_logger_for_component("orchestrator")

    async def crawl_many(self, targets: Sequence[FeedTarget]) -> List[Article]:
        """Crawl every target and flatten the results.

        A feed whose task fails contributes no articles. Order across feeds
        is unspecified.
        """
        if not targets:
            return []

        async def crawl_target(target: FeedTarget) -> List[Article]:
            async with self.semaphore:
                return await self.crawler.crawl_feed(target.url, target.category_id)

        results = await asyncio.gather(
            *(crawl_target(target) for target in targets), return_exceptions=True
        )

        articles: List[Article] = []
        failed = 0
        for target, result in zip(targets, results):
            if isinstance(result, BaseException):
                failed += 1
                self.logger.error(
                    f"Feed task failed for {target.url}: {result}",
                    extra={"feed_url": target.url, "category_id": target.category_id},
                )
                continue
            articles.extend(result)

        self.logger.info(
            f"Crawled {len(targets)} feeds ({failed} failed), {len(articles)} articles"
        )
        return apply_duplicate_policy(articles, self.settings.duplicate_policy)


def apply_duplicate_policy(articles: List[Article], policy: DuplicatePolicy) -> List[Article]:
    """Resolve articles that share a link across feeds."""
    if policy == DuplicatePolicy.ALLOW:
        return articles

    by_link = {}
    result = []
    for article in articles:
        first = by_link.get(article.link)
        if first is None:
            by_link[article.link] = article
            result.append(article)
            continue

        if policy == DuplicatePolicy.MERGE_CATEGORIES:
            for category_id in article.categories:
                if category_id not in first.categories:
                    first.categories.append(category_id)

    return result
