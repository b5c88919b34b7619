"""
NewsX Processing Module
=======================

Crawl coordination: per-feed crawling, multi-feed fan-out and the
ingestion cycle that persists the results.
"""

from .feed_crawler import FeedCrawler
from .orchestrator import CrawlOrchestrator
from .pipeline import IngestionPipeline, CycleStats

__all__ = [
    'FeedCrawler',
    'CrawlOrchestrator',
    'IngestionPipeline',
    'CycleStats',
]
