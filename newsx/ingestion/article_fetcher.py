"""
Article Fetcher
===============

Downloads one article page and extracts its body and author.
"""

from typing import Optional

from ..database.models import AuthorDiagnostic, ScrapedArticle
from ..utils.exceptions import HttpRequestError
from ..utils.logging import get_logger_for_component
from .html_extractor import ArticleExtractor
from .http_client import HttpClient


class ArticleFetcher:
    """Fetches article pages; failures come back as diagnostic values."""

    def __init__(self, http_client: HttpClient, extractor: Optional[ArticleExtractor] = None):
        self.http_client = http_client
        self.extractor = extractor or ArticleExtractor()
        self.logger = get_logger_for_component("article_fetcher")

    async def fetch_article(self, url: str) -> ScrapedArticle:
        """Fetch ``url`` once and extract content and author from the same body.

        Never raises; a failed request yields the reason in both fields.
        """
        try:
            html = await self.http_client.fetch_text(url)
        except HttpRequestError as e:
            return self._failure(url, str(e))
        except Exception as e:
            self.logger.error(f"Unexpected error fetching {url}: {e}", exc_info=True)
            return self._failure(url, str(e) or type(e).__name__)

        return self.extractor.extract(html)

    def _failure(self, url: str, reason: str) -> ScrapedArticle:
        message = f"Error when fetching article content: {reason}"
        self.logger.warning(message, extra={"url": url})
        return ScrapedArticle(content=message, author=AuthorDiagnostic(message=message))
