"""
NewsX Database Schema
=====================

SQLite schema for the crawler's two tables:
- categories: news categories and the RSS feed behind each one
- posts: crawled articles, unique by link and by slug
"""

import sqlite3
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class DatabaseSchema:
    """Database schema manager for the NewsX SQLite database."""

    def __init__(self, db_path: str = "data/newsx.db"):
        """Initialize database schema manager.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables and indexes."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("PRAGMA foreign_keys = ON")

            self._create_categories_table(conn)
            self._create_posts_table(conn)
            self._create_indexes(conn)

            conn.commit()
            logger.info("Database schema created successfully")

    def _create_categories_table(self, conn: sqlite3.Connection) -> None:
        """Create categories table."""
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS categories (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL UNIQUE,
                slug TEXT NOT NULL UNIQUE,
                link TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

    def _create_posts_table(self, conn: sqlite3.Connection) -> None:
        """Create posts table for crawled articles.

        author and categories are JSON documents.
        """
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS posts (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                title_normalized TEXT NOT NULL,
                link TEXT NOT NULL UNIQUE,
                slug TEXT NOT NULL UNIQUE,
                pub_date TEXT,
                description TEXT,
                content TEXT,
                image TEXT,
                author TEXT NOT NULL,
                categories TEXT NOT NULL DEFAULT '[]',
                published BOOLEAN DEFAULT TRUE,
                source TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

    def _create_indexes(self, conn: sqlite3.Connection) -> None:
        """Create indexes for listing and search queries."""
        indexes = [
            "CREATE INDEX IF NOT EXISTS idx_posts_created_at ON posts(created_at)",
            "CREATE INDEX IF NOT EXISTS idx_posts_title_normalized ON posts(title_normalized)",
            "CREATE INDEX IF NOT EXISTS idx_posts_published ON posts(published)",
            "CREATE INDEX IF NOT EXISTS idx_categories_created_at ON categories(created_at)",
        ]
        for statement in indexes:
            conn.execute(statement)

    def verify_schema(self) -> bool:
        """Check that every expected table exists."""
        expected = {"categories", "posts"}
        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table'"
            ).fetchall()
        present = {row[0] for row in rows}
        missing = expected - present
        if missing:
            logger.error(f"Missing tables: {sorted(missing)}")
            return False
        return True
