"""
NewsX - News Crawler Backend
============================

Concurrent RSS crawler that collects Vietnamese news articles, scrapes their
full content and author, and serves them through a small HTTP API.

Main Components:
- Ingestion: shared HTTP client, RSS parsing, article HTML extraction
- Processing: per-feed crawler, multi-feed orchestrator, ingestion pipeline
- Storage: SQLite repositories with upsert-by-link and paginated queries
- Scheduler: periodic crawling and fire-and-forget manual trigger
- API: aiohttp.web routes over posts and categories
"""

__version__ = "0.1.0"
__author__ = "NewsX Development Team"
__description__ = "Concurrent RSS news crawler and API"

# Core imports for easy access
from .config.settings import get_settings
from .database.connection import get_db_manager
from .database.schema import DatabaseSchema
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import NewsXError

__all__ = [
    "get_settings",
    "get_db_manager",
    "DatabaseSchema",
    "configure_application_logging",
    "get_logger_for_component",
    "NewsXError",
]
