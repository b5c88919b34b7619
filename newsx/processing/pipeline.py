"""
Ingestion Pipeline
==================

Runs one complete crawl cycle: load categories, crawl every feed, persist
the results in batches with a per-record fallback.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

from ..config.settings import NewsXSettings, get_settings
from ..database.models import Article, Category, FeedTarget
from ..ingestion.http_client import HttpClient
from ..storage.article_repository import ArticleRepository
from ..storage.category_repository import CategoryRepository
from ..utils.logging import PerformanceLogger, get_logger_for_component
from ..utils.validators import URLValidator
from .feed_crawler import FeedCrawler
from .orchestrator import CrawlOrchestrator


@dataclass
class CycleStats:
    """Counters of one crawl cycle."""

    cycle: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    categories_loaded: int = 0
    feeds_crawled: int = 0
    feeds_skipped: int = 0
    articles_crawled: int = 0
    articles_persisted: int = 0
    articles_failed: int = 0
    batches: int = 0
    batches_failed: int = 0
    duration_seconds: float = 0.0

    @property
    def success_rate(self) -> float:
        if self.articles_crawled == 0:
            return 100.0
        return self.articles_persisted / self.articles_crawled * 100


OrchestratorFactory = Callable[[HttpClient], CrawlOrchestrator]


class IngestionPipeline:
    """Complete crawl cycle coordinator."""

    def __init__(
        self,
        category_repository: CategoryRepository,
        article_repository: ArticleRepository,
        settings: Optional[NewsXSettings] = None,
        http_client_factory: Optional[Callable[[], HttpClient]] = None,
        orchestrator_factory: Optional[OrchestratorFactory] = None,
    ):
        """Initialize ingestion pipeline.

        Args:
            category_repository: Source of the feeds to crawl
            article_repository: Destination of crawled articles
            settings: Application settings (global settings when omitted)
            http_client_factory: Builds the HTTP client shared by one cycle
            orchestrator_factory: Builds the orchestrator around that client
        """
        self.categories = category_repository
        self.articles = article_repository
        self.settings = settings or get_settings()
        self.http_client_factory = http_client_factory or (
            lambda: HttpClient(self.settings.crawler)
        )
        self.orchestrator_factory = orchestrator_factory or self._default_orchestrator
        self.logger = get_logger_for_component("pipeline")
        self.last_stats: Optional[CycleStats] = None
        self.cycles_started = 0

    def _default_orchestrator(self, http_client: HttpClient) -> CrawlOrchestrator:
        crawler = FeedCrawler(http_client, self.settings.crawler)
        return CrawlOrchestrator(crawler, self.settings.crawler)

    async def run_crawl_cycle(self) -> int:
        """Run one cycle and return the number of persisted articles.

        Raises:
            DatabaseError: If the category list cannot be loaded
        """
        self.cycles_started += 1
        stats = CycleStats(cycle=self.cycles_started)
        self.last_stats = stats
        log = self.logger.bind(cycle=stats.cycle)

        with PerformanceLogger(log, "crawl cycle") as perf:
            # Fatal: nothing to crawl without categories
            categories = self.categories.list_categories()
            stats.categories_loaded = len(categories)

            targets = self.build_targets(categories, stats)
            if not targets:
                log.warning("No crawlable categories, nothing to do")
                return 0

            async with self.http_client_factory() as http_client:
                orchestrator = self.orchestrator_factory(http_client)
                articles = await orchestrator.crawl_many(targets)

            stats.articles_crawled = len(articles)
            log.info(
                f"Crawled {len(articles)} articles from {len(targets)} categories"
            )

            await self.persist(articles, stats)

        stats.duration_seconds = perf.duration
        log.info(
            f"Crawl cycle finished: {stats.articles_persisted} persisted, "
            f"{stats.articles_failed} failed, {stats.batches_failed}/{stats.batches} batches fell back",
            extra={
                "articles_persisted": stats.articles_persisted,
                "articles_failed": stats.articles_failed,
            },
        )
        return stats.articles_persisted

    def build_targets(self, categories: List[Category], stats: Optional[CycleStats] = None) -> List[FeedTarget]:
        """FeedTargets for every category with a valid http(s) feed link."""
        targets = []
        for category in categories:
            if not URLValidator.is_valid_feed_url(category.link):
                self.logger.warning(
                    f"Skipping category {category.slug}: invalid feed link {category.link!r}",
                    extra={"category_id": category.id},
                )
                if stats is not None:
                    stats.feeds_skipped += 1
                continue
            targets.append(FeedTarget(url=category.link, category_id=category.id))

        if stats is not None:
            stats.feeds_crawled = len(targets)
        return targets

    async def persist(self, articles: List[Article], stats: Optional[CycleStats] = None) -> int:
        """Write articles in batches, sleeping between batches.

        A failed batch is retried one record at a time; records that still
        fail are logged and dropped.
        """
        stats = stats or CycleStats()
        log = self.logger.bind(cycle=stats.cycle or None)
        batch_size = self.settings.pipeline.batch_size
        delay = self.settings.pipeline.batch_delay_seconds

        for start in range(0, len(articles), batch_size):
            if start > 0 and delay > 0:
                await asyncio.sleep(delay)

            batch = articles[start:start + batch_size]
            batch_number = start // batch_size + 1
            stats.batches += 1

            try:
                written = self.articles.upsert_many(batch)
                stats.articles_persisted += written
                log.info(
                    f"Batch {batch_number}: {written}/{len(batch)} articles saved",
                    extra={"batch": batch_number},
                )
                continue
            except Exception as e:
                stats.batches_failed += 1
                log.warning(
                    f"Batch {batch_number} failed, retrying record by record: {e}",
                    extra={"batch": batch_number},
                )

            saved, failed = self._persist_one_by_one(batch, log.bind(batch=batch_number))
            stats.articles_persisted += saved
            stats.articles_failed += failed
            log.info(
                f"Batch {batch_number} fallback: {saved} saved, {failed} failed",
                extra={"batch": batch_number},
            )

        return stats.articles_persisted

    def _persist_one_by_one(self, batch: List[Article], log):
        saved = failed = 0
        for article in batch:
            try:
                self.articles.upsert_article_by_link(article)
                saved += 1
            except Exception as e:
                failed += 1
                log.error(
                    f"Failed to save article {article.link}: {e}",
                    extra={"article_link": article.link},
                )
        return saved, failed
