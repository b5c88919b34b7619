"""
NewsX Storage Layer
===================

Repository pattern implementations for data access abstraction.

This module provides:
- Article repository with upsert-by-link and paginated queries
- Category repository for the feeds to crawl
"""

from .article_repository import ArticleRepository
from .category_repository import CategoryRepository

__all__ = [
    "ArticleRepository",
    "CategoryRepository",
]
