"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and configuration for NewsX tests.

- Temporary SQLite databases with the full schema
- Repositories over those databases
- In-process HTTP stub with in-flight instrumentation
- RSS and article page builders
"""

import asyncio
import os
import sys
import tempfile
from pathlib import Path

import pytest

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
os.environ["NEWSX_LOGGING__FILE_PATH"] = ""
os.environ["NEWSX_LOGGING__CONSOLE_LOGGING"] = "false"
os.environ["NEWSX_DATABASE__PATH"] = str(Path(tempfile.gettempdir()) / "newsx_tests" / "newsx.db")
os.environ["NEWSX_PIPELINE__BATCH_DELAY_SECONDS"] = "0"


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def temp_db():
    """Temporary database file with the schema created."""
    from newsx.database.schema import DatabaseSchema

    with tempfile.TemporaryDirectory() as tmp_dir:
        db_path = str(Path(tmp_dir) / "newsx_test.db")
        DatabaseSchema(db_path).create_tables()
        yield db_path


@pytest.fixture
def db_connection(temp_db):
    """Create a database connection manager for testing."""
    from newsx.database.connection import DatabaseConnection

    connection = DatabaseConnection(temp_db, pool_size=2)
    yield connection

    # Cleanup connections
    connection.close_all_connections()


@pytest.fixture
def article_repo(db_connection):
    from newsx.storage.article_repository import ArticleRepository

    return ArticleRepository(db_connection)


@pytest.fixture
def category_repo(db_connection):
    from newsx.storage.category_repository import CategoryRepository

    return CategoryRepository(db_connection)


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture
def test_settings(temp_db):
    """Settings pointing at the temporary database, no batch delay."""
    from newsx.config.settings import NewsXSettings

    settings = NewsXSettings()
    settings.database.path = temp_db
    settings.pipeline.batch_delay_seconds = 0.0
    return settings


# ============================================================================
# HTTP Stub
# ============================================================================


class StubHttpClient:
    """In-process replacement for HttpClient.

    ``responses`` maps URL to a body string or an exception to raise.
    Unknown URLs answer like an HTTP 404. Tracks concurrent requests.
    """

    def __init__(self, responses=None, delay=0.0):
        self.responses = dict(responses or {})
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def fetch_text(self, url, headers=None, timeout=None):
        from newsx.utils.exceptions import ErrorCode, HttpRequestError

        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            value = self.responses.get(url)
            if value is None:
                raise HttpRequestError(
                    "HTTP 404", url=url, status=404, error_code=ErrorCode.HTTP_STATUS_ERROR
                )
            if isinstance(value, Exception):
                raise value
            return value
        finally:
            self.in_flight -= 1

    async def close(self):
        self.closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


@pytest.fixture
def stub_http_client():
    """Factory for StubHttpClient instances."""
    return StubHttpClient


# ============================================================================
# Content Builders
# ============================================================================


def build_rss(items, title="Tuoi Tre - Thoi su"):
    """RSS 2.0 document from (title, link) pairs or dicts."""
    parts = []
    for item in items:
        if isinstance(item, tuple):
            item = {"title": item[0], "link": item[1]}
        enclosure = ""
        if item.get("image"):
            enclosure = f'<enclosure url="{item["image"]}" type="image/jpeg" length="0"/>'
        parts.append(
            f"""
        <item>
            <title><![CDATA[{item["title"]}]]></title>
            <link>{item["link"]}</link>
            <description><![CDATA[{item.get("description", "")}]]></description>
            <pubDate>{item.get("pub_date", "Mon, 06 Jan 2025 08:00:00 +0700")}</pubDate>
            {enclosure}
        </item>"""
        )

    return f"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
    <channel>
        <title>{title}</title>
        <link>https://tuoitre.vn</link>
        <description>Tin tuc</description>
        {''.join(parts)}
    </channel>
</rss>"""


def build_article_page(body="<p>Noi dung bai viet.</p>", author_name="Minh Anh",
                       avatar="//cdn.tuoitre.vn/avatar.jpg"):
    """Article page in the tuoitre.vn layout."""
    author_block = ""
    if author_name is not None or avatar is not None:
        name_html = f'<div class="author-info"><a href="/tac-gia/x.htm">{author_name}</a></div>' if author_name else ""
        avatar_html = (
            f'<div class="groupavtauthor"><a href="/tac-gia/x.htm"><img src="{avatar}"></a></div>'
            if avatar else ""
        )
        author_block = f'<div class="detail-author oneauthor">{avatar_html}{name_html}</div>'

    return f"""<html><head><title>Bai viet</title></head><body>
        {author_block}
        <div class="detail-content afcbc-body">{body}</div>
    </body></html>"""


@pytest.fixture
def rss_builder():
    return build_rss


@pytest.fixture
def article_page_builder():
    return build_article_page


@pytest.fixture
def sample_articles():
    """Generate sample articles for testing."""
    from newsx.database.models import Article, AuthorProfile, AuthorDiagnostic

    return [
        Article(
            author=AuthorProfile(name="Minh Anh", avatar_url="https://cdn.tuoitre.vn/a.jpg"),
            title="Đà Nẵng đón khách quốc tế",
            link="https://tuoitre.vn/da-nang-don-khach.htm",
            slug="da-nang-don-khach-quoc-te",
            pub_date="Mon, 06 Jan 2025 08:00:00 +0700",
            categories=["cat-thoi-su"],
            description="Du lịch khởi sắc",
            image="https://cdn.tuoitre.vn/cover1.jpg",
            content="<p>Nội dung</p>",
        ),
        Article(
            author=AuthorDiagnostic(message="Can't find any author information."),
            title="Giá xăng giảm mạnh",
            link="https://tuoitre.vn/gia-xang-giam.htm",
            slug="gia-xang-giam-manh",
            pub_date="Mon, 06 Jan 2025 09:00:00 +0700",
            categories=["cat-kinh-doanh"],
            content="<p>Giá xăng</p>",
        ),
        Article(
            author=AuthorProfile(name="Quốc Việt"),
            title="Hà Nội mưa lớn",
            link="https://tuoitre.vn/ha-noi-mua-lon.htm",
            slug="ha-noi-mua-lon",
            pub_date="Mon, 06 Jan 2025 10:00:00 +0700",
            categories=["cat-thoi-su"],
            content="<p>Mưa</p>",
        ),
    ]
