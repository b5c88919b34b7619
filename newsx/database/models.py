"""
NewsX Data Models
=================

Crawl-time records (dataclasses, discarded after each crawl) and the
pydantic models that cross into persistence and the API.
"""

import json
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, Generic, List, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator


NO_CONTENT_MESSAGE = "Cannot find any content."
NO_AUTHOR_MESSAGE = "Can't find any author information."
UNKNOWN_AUTHOR_NAME = "Unknown"
NO_AVATAR_MARKER = "No avatar found"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Author: structured profile or diagnostic message
# ---------------------------------------------------------------------------


class AuthorProfile(BaseModel):
    """Author block found on the article page."""
    kind: Literal["profile"] = "profile"
    name: str = Field(default=UNKNOWN_AUTHOR_NAME)
    avatar_url: str = Field(default=NO_AVATAR_MARKER)

    def __str__(self) -> str:
        return f"AuthorProfile({self.name})"


class AuthorDiagnostic(BaseModel):
    """Why no author could be extracted."""
    kind: Literal["diagnostic"] = "diagnostic"
    message: str

    def __str__(self) -> str:
        return f"AuthorDiagnostic({self.message})"


AuthorInfo = Annotated[Union[AuthorProfile, AuthorDiagnostic], Field(discriminator="kind")]

_author_adapter = TypeAdapter(AuthorInfo)


def author_from_json(raw: str) -> Union[AuthorProfile, AuthorDiagnostic]:
    """Rebuild an AuthorInfo variant from its stored JSON."""
    return _author_adapter.validate_json(raw)


def author_display_name(author: Union[AuthorProfile, AuthorDiagnostic]) -> str:
    """Name to show for an author; diagnostics render as the unknown author."""
    if isinstance(author, AuthorProfile):
        return author.name
    return UNKNOWN_AUTHOR_NAME


# ---------------------------------------------------------------------------
# Crawl-time records
# ---------------------------------------------------------------------------


@dataclass
class FeedItem:
    """One <item> of an RSS feed."""

    title: str
    link: str
    pub_date: str = ""
    description: Optional[str] = None
    image: Optional[str] = None


@dataclass
class ScrapedArticle:
    """Content and author scraped from one article page."""

    content: str
    author: Union[AuthorProfile, AuthorDiagnostic]


@dataclass
class FeedTarget:
    """A feed to crawl and the category its articles belong to."""

    url: str
    category_id: str


# ---------------------------------------------------------------------------
# Persisted entities
# ---------------------------------------------------------------------------


class Article(BaseModel):
    """Normalized article produced by the crawler, upserted by link."""
    author: AuthorInfo
    title: str = Field(..., min_length=1, description="Article title")
    link: str = Field(..., min_length=1, description="Article URL, global identity")
    slug: str = Field(default="", description="URL-safe title, disambiguated on insert")
    pub_date: str = Field(default="", description="Publication date as given by the feed")
    categories: List[str] = Field(..., min_length=1, description="Owning category ids")
    description: Optional[str] = Field(default=None, description="Plain-text summary")
    image: Optional[str] = Field(default=None, description="Cover image URL")
    content: str = Field(default="", description="Sanitized article HTML")

    @field_validator("categories")
    @classmethod
    def dedupe_categories(cls, v):
        """Keep category ids unique while preserving order."""
        return list(dict.fromkeys(v))

    def __str__(self) -> str:
        return f"Article({self.title[:50]}...)"


class StoredArticle(Article):
    """Article as read back from the database."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title_normalized: str = Field(default="")
    published: bool = Field(default=True)
    source: str = Field(default="")
    created_at: Optional[datetime] = Field(default_factory=_utcnow)
    updated_at: Optional[datetime] = Field(default_factory=_utcnow)

    @classmethod
    def from_db_row(cls, row: Dict[str, Any]) -> "StoredArticle":
        """Create StoredArticle from database row with JSON parsing."""
        data = dict(row)
        data["author"] = author_from_json(data["author"])
        data["categories"] = json.loads(data["categories"])
        data["published"] = bool(data.get("published", True))
        return cls(**data)


class Category(BaseModel):
    """News category with the RSS feed that populates it."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=255)
    link: Optional[str] = Field(default=None, description="RSS feed URL")
    created_at: Optional[datetime] = Field(default_factory=_utcnow)

    @classmethod
    def from_db_row(cls, row: Dict[str, Any]) -> "Category":
        return cls(**dict(row))

    def __str__(self) -> str:
        return f"Category({self.name}:{self.slug})"


T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One page of a paginated query."""

    items: List[T]
    current_page: int
    limit: int
    total: int
    total_pages: int = field(init=False)
    has_next: bool = field(init=False)
    has_prev: bool = field(init=False)

    def __post_init__(self):
        self.total_pages = math.ceil(self.total / self.limit) if self.limit else 0
        self.has_next = self.current_page < self.total_pages
        self.has_prev = self.current_page > 1

    def pagination(self) -> Dict[str, Any]:
        return {
            "currentPage": self.current_page,
            "totalPages": self.total_pages,
            "totalPosts": self.total,
            "hasNext": self.has_next,
            "hasPrev": self.has_prev,
        }
