"""
Category Repository
===================

Data access for news categories and the feed URL behind each one.
"""

import sqlite3
from typing import List, Optional

from ..database.connection import DatabaseConnection
from ..database.models import Category
from ..utils.exceptions import DatabaseError, ErrorCode, NotFoundError, ValidationError
from ..utils.logging import get_logger_for_component
from ..utils.text import create_slug, ensure_unique_slug


class CategoryRepository:
    """Repository for Category CRUD operations."""

    def __init__(self, db_connection: DatabaseConnection):
        """Initialize category repository.

        Args:
            db_connection: Database connection manager
        """
        self.db = db_connection
        self.logger = get_logger_for_component("category_repository")

    def create_category(self, name: str, link: Optional[str] = None, slug: Optional[str] = None) -> Category:
        """Create a category, or return the existing one with the same slug.

        Args:
            name: Display name
            link: RSS feed URL
            slug: URL slug, derived from name when omitted

        Returns:
            Stored category

        Raises:
            ValidationError: If no slug can be derived or the name is taken
            DatabaseError: If the insert fails
        """
        name = (name or "").strip()
        slug = slug or create_slug(name)
        if not name or not slug:
            raise ValidationError("Category name is required", field_name="name")

        try:
            with self.db.transaction() as conn:
                row = conn.execute(
                    "SELECT * FROM categories WHERE slug = ?", (slug,)
                ).fetchone()
                if row:
                    self.logger.debug(f"Category already exists: {slug}")
                    return Category.from_db_row(row)

                category = Category(name=name, slug=slug, link=link)
                conn.execute(
                    """
                    INSERT INTO categories (id, name, slug, link, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        category.id,
                        category.name,
                        category.slug,
                        category.link,
                        category.created_at.isoformat(),
                    ),
                )

            self.logger.info(f"Created category: {category.name} ({category.slug})")
            return category

        except sqlite3.IntegrityError as e:
            raise ValidationError(
                f"Category name already in use: {name}",
                field_name="name",
                error_code=ErrorCode.DUPLICATE_RESOURCE,
            ) from e
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to create category: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

    def list_categories(self) -> List[Category]:
        """All categories, newest first.

        Raises:
            DatabaseError: If the query fails
        """
        try:
            with self.db.get_connection() as conn:
                rows = conn.execute(
                    "SELECT * FROM categories ORDER BY created_at DESC, rowid DESC"
                ).fetchall()
            return [Category.from_db_row(row) for row in rows]

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to list categories: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

    def get_category(self, category_id: str) -> Category:
        """Get category by ID.

        Raises:
            NotFoundError: If no such category exists
        """
        row = self.db.execute_one("SELECT * FROM categories WHERE id = ?", (category_id,))
        if row is None:
            raise NotFoundError(f"Category with ID {category_id} not found", resource="category")
        return Category.from_db_row(row)

    def get_by_slug(self, slug: str) -> Category:
        """Get category by slug.

        Raises:
            NotFoundError: If no such category exists
        """
        row = self.db.execute_one("SELECT * FROM categories WHERE slug = ?", (slug,))
        if row is None:
            raise NotFoundError(f'Category with slug "{slug}" not found', resource="category")
        return Category.from_db_row(row)

    def update_category(
        self,
        category_id: str,
        name: Optional[str] = None,
        link: Optional[str] = None,
        slug: Optional[str] = None,
    ) -> Category:
        """Update name, link or slug of a category.

        A new name without an explicit slug regenerates the slug, made unique
        among the other categories.

        Raises:
            NotFoundError: If the category does not exist
            ValidationError: If another category already uses the name or link
        """
        existing = self.get_category(category_id)

        with self.db.get_connection() as conn:
            if name or link:
                conflict = conn.execute(
                    """
                    SELECT id FROM categories
                    WHERE id != ? AND (name = ? OR link = ?)
                    """,
                    (category_id, name, link),
                ).fetchone()
                if conflict:
                    raise ValidationError(
                        f'Another category with name "{name}" or link "{link}" already exists',
                        field_name="name",
                        error_code=ErrorCode.DUPLICATE_RESOURCE,
                    )

            final_slug = slug
            if name and not slug and name != existing.name:
                others = conn.execute(
                    "SELECT slug FROM categories WHERE id != ?", (category_id,)
                ).fetchall()
                final_slug = ensure_unique_slug(create_slug(name), (row["slug"] for row in others))

        updated = existing.model_copy(
            update={
                "name": name or existing.name,
                "link": link or existing.link,
                "slug": final_slug or existing.slug,
            }
        )
        try:
            self.db.execute_update(
                "UPDATE categories SET name = ?, link = ?, slug = ? WHERE id = ?",
                (updated.name, updated.link, updated.slug, category_id),
            )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to update category {category_id}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        self.logger.info(f"Updated category: {updated.name}")
        return updated

    def delete_category(self, category_id: str) -> Category:
        """Delete a category and return what was removed.

        Raises:
            NotFoundError: If the category does not exist
        """
        category = self.get_category(category_id)
        self.db.execute_update("DELETE FROM categories WHERE id = ?", (category_id,))
        self.logger.info(f"Deleted category: {category.name}")
        return category
