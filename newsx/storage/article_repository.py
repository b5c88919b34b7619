"""
Article Repository
==================

Upsert-by-link persistence for crawled articles and the paginated read
queries behind the API.
"""

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from ..database.connection import DatabaseConnection
from ..database.models import Article, AuthorProfile, Page, StoredArticle
from ..utils.exceptions import DatabaseError, ErrorCode, NotFoundError, ValidationError
from ..utils.logging import get_logger_for_component
from ..utils.text import create_slug, ensure_unique_slug, normalize_vietnamese


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ArticleRepository:
    """Repository for crawled articles, keyed by link."""

    def __init__(self, db_connection: DatabaseConnection, source: str = "tuoitre.vn"):
        """Initialize article repository.

        Args:
            db_connection: Database connection manager
            source: Source label written on newly created articles
        """
        self.db = db_connection
        self.source = source
        self.logger = get_logger_for_component("article_repository")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert_article_by_link(self, article: Article) -> StoredArticle:
        """Create or update a single article.

        Raises:
            DatabaseError: If the write fails
        """
        try:
            with self.db.transaction() as conn:
                stored = self._upsert(conn, article)
            return stored

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to upsert article {article.link}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

    def upsert_many(self, articles: List[Article]) -> int:
        """Upsert a batch of articles in one transaction.

        Either every article is written or none is.

        Returns:
            Number of articles written

        Raises:
            DatabaseError: If any write fails; the batch is rolled back
        """
        if not articles:
            return 0

        try:
            with self.db.transaction() as conn:
                for article in articles:
                    self._upsert(conn, article)

            self.logger.debug(f"Batch upserted {len(articles)} articles")
            return len(articles)

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to batch upsert {len(articles)} articles: {e}",
                error_code=ErrorCode.DATABASE_TRANSACTION,
            ) from e

    def _upsert(self, conn: sqlite3.Connection, article: Article) -> StoredArticle:
        now = datetime.now(timezone.utc)
        row = conn.execute("SELECT * FROM posts WHERE link = ?", (article.link,)).fetchone()

        if row is not None:
            existing = StoredArticle.from_db_row(row)
            categories = list(dict.fromkeys(existing.categories + article.categories))
            # A failed scrape never replaces a known author
            author = article.author if isinstance(article.author, AuthorProfile) else existing.author

            updated = existing.model_copy(
                update={
                    "title": article.title,
                    "title_normalized": normalize_vietnamese(article.title),
                    "description": article.description,
                    "content": article.content,
                    "image": article.image,
                    "pub_date": article.pub_date,
                    "author": author,
                    "categories": categories,
                    "updated_at": now,
                }
            )
            conn.execute(
                """
                UPDATE posts
                SET title = ?, title_normalized = ?, description = ?, content = ?,
                    image = ?, pub_date = ?, author = ?, categories = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    updated.title,
                    updated.title_normalized,
                    updated.description,
                    updated.content,
                    updated.image,
                    updated.pub_date,
                    updated.author.model_dump_json(),
                    json.dumps(updated.categories),
                    now.isoformat(),
                    updated.id,
                ),
            )
            return updated

        base_slug = article.slug or create_slug(article.title)
        slug = ensure_unique_slug(base_slug, self._slugs_like(conn, base_slug))

        stored = StoredArticle(
            **article.model_dump(exclude={"slug", "author"}),
            author=article.author,
            slug=slug,
            id=str(uuid.uuid4()),
            title_normalized=normalize_vietnamese(article.title),
            published=True,
            source=self.source,
            created_at=now,
            updated_at=now,
        )
        conn.execute(
            """
            INSERT INTO posts (id, title, title_normalized, link, slug, pub_date,
                               description, content, image, author, categories,
                               published, source, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                stored.id,
                stored.title,
                stored.title_normalized,
                stored.link,
                stored.slug,
                stored.pub_date,
                stored.description,
                stored.content,
                stored.image,
                stored.author.model_dump_json(),
                json.dumps(stored.categories),
                stored.published,
                stored.source,
                now.isoformat(),
                now.isoformat(),
            ),
        )
        return stored

    def _slugs_like(self, conn: sqlite3.Connection, base_slug: str) -> List[str]:
        rows = conn.execute(
            "SELECT slug FROM posts WHERE slug = ? OR slug LIKE ? ESCAPE '\\'",
            (base_slug, _escape_like(base_slug) + "-%"),
        ).fetchall()
        return [row["slug"] for row in rows]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_link(self, link: str) -> Optional[StoredArticle]:
        row = self.db.execute_one("SELECT * FROM posts WHERE link = ?", (link,))
        return StoredArticle.from_db_row(row) if row else None

    def get_by_slug(self, slug: str) -> Optional[StoredArticle]:
        row = self.db.execute_one("SELECT * FROM posts WHERE slug = ?", (slug,))
        return StoredArticle.from_db_row(row) if row else None

    def count(self) -> int:
        row = self.db.execute_one("SELECT COUNT(*) AS total FROM posts")
        return row["total"]

    def list_articles(self, page: int = 1, limit: int = 10) -> Page[StoredArticle]:
        """Published articles, newest first."""
        return self._paginate("published = 1", (), page, limit)

    def find_by_category_slug(self, slug: str, page: int = 1, limit: int = 10) -> Tuple[Page[StoredArticle], dict]:
        """Published articles of one category, newest first.

        Returns:
            The page and a ``{id, name, slug}`` summary of the category

        Raises:
            NotFoundError: If no category has this slug
        """
        row = self.db.execute_one("SELECT id, name, slug FROM categories WHERE slug = ?", (slug,))
        if row is None:
            raise NotFoundError(f'Category with slug "{slug}" not found', resource="category")

        result = self._paginate(
            "published = 1 AND EXISTS "
            "(SELECT 1 FROM json_each(posts.categories) WHERE json_each.value = ?)",
            (row["id"],),
            page,
            limit,
        )
        return result, {"id": row["id"], "name": row["name"], "slug": row["slug"]}

    def search_by_title(self, query: str, page: int = 1, limit: int = 10) -> Page[StoredArticle]:
        """Accent- and case-insensitive title search, newest first.

        Raises:
            ValidationError: If the query is empty
        """
        if not query or not query.strip():
            raise ValidationError(
                "Search query cannot be empty",
                field_name="q",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
            )

        pattern = "%" + _escape_like(normalize_vietnamese(query)) + "%"
        result = self._paginate(
            "published = 1 AND title_normalized LIKE ? ESCAPE '\\'", (pattern,), page, limit
        )
        self.logger.info(f'Search completed: found {result.total} posts for query "{query.strip()}"')
        return result

    def _paginate(self, where: str, params: tuple, page: int, limit: int) -> Page[StoredArticle]:
        offset = (page - 1) * limit
        try:
            with self.db.get_connection() as conn:
                total = conn.execute(
                    f"SELECT COUNT(*) FROM posts WHERE {where}", params
                ).fetchone()[0]
                rows = conn.execute(
                    f"""
                    SELECT * FROM posts WHERE {where}
                    ORDER BY created_at DESC, rowid DESC
                    LIMIT ? OFFSET ?
                    """,
                    params + (limit, offset),
                ).fetchall()

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to query posts: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        return Page(
            items=[StoredArticle.from_db_row(row) for row in rows],
            current_page=page,
            limit=limit,
            total=total,
        )
