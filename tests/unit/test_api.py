"""
Unit Tests for HTTP API
=======================

Routes served against a real temporary database and a mocked scheduler.
"""

from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestClient, TestServer

from newsx.api.app import create_app
from newsx.database.models import Article, AuthorProfile


@pytest.fixture
def scheduler():
    mock = MagicMock()
    mock.trigger_crawl.return_value = {"status": "initiated"}
    return mock


@pytest.fixture
def seeded(article_repo, category_repo):
    thoi_su = category_repo.create_category("Thời sự", "https://tuoitre.vn/rss/thoi-su.rss")
    kinh_doanh = category_repo.create_category("Kinh doanh", "https://tuoitre.vn/rss/kinh-doanh.rss")
    for i in range(12):
        category = thoi_su if i % 2 == 0 else kinh_doanh
        article_repo.upsert_article_by_link(
            Article(
                author=AuthorProfile(name="Minh Anh"),
                title=f"Đà Nẵng tin số {i}" if i < 3 else f"Hà Nội tin số {i}",
                link=f"https://tuoitre.vn/tin-{i}.htm",
                slug=f"tin-so-{i}",
                categories=[category.id],
                content="<p>x</p>",
            )
        )
    return {"thoi_su": thoi_su, "kinh_doanh": kinh_doanh}


@pytest_asyncio.fixture
async def client(test_settings, article_repo, category_repo, scheduler):
    app = create_app(test_settings, article_repo, category_repo, scheduler)
    async with TestClient(TestServer(app)) as test_client:
        yield test_client


class TestApiRoutes:
    """Test cases for the read API and crawl trigger."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/")

        assert response.status == 200
        assert await response.text() == "NewsX Backend API is running!"

    @pytest.mark.asyncio
    async def test_trigger_crawl_acknowledges(self, client, scheduler):
        response = await client.get("/post/crawl")

        assert response.status == 200
        assert await response.json() == {"status": "initiated"}
        scheduler.trigger_crawl.assert_called_once_with("api")

    @pytest.mark.asyncio
    async def test_list_posts_paginated(self, client, seeded):
        response = await client.get("/post", params={"page": 2, "limit": 5})
        body = await response.json()

        assert response.status == 200
        assert len(body["posts"]) == 5
        assert body["pagination"] == {
            "currentPage": 2,
            "totalPages": 3,
            "totalPosts": 12,
            "hasNext": True,
            "hasPrev": True,
        }
        post = body["posts"][0]
        assert post["author"] == {"kind": "profile", "name": "Minh Anh", "avatar_url": "No avatar found"}
        assert post["link"].startswith("https://tuoitre.vn/")

    @pytest.mark.asyncio
    async def test_default_page_size(self, client, seeded):
        body = await (await client.get("/post")).json()

        assert len(body["posts"]) == 10
        assert body["pagination"]["currentPage"] == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params", [{"page": "abc"}, {"page": "0"}, {"limit": "-3"}])
    async def test_invalid_pagination(self, client, params):
        response = await client.get("/post", params=params)

        assert response.status == 400
        assert "error" in await response.json()

    @pytest.mark.asyncio
    async def test_search(self, client, seeded):
        response = await client.get("/post/search", params={"q": " da nang "})
        body = await response.json()

        assert response.status == 200
        assert body["searchQuery"] == "da nang"
        assert body["pagination"]["totalPosts"] == 3
        assert body["searchMetadata"]["totalMatches"] == 3
        assert body["searchMetadata"]["resultsFound"] == 3
        assert all("Đà Nẵng" in post["title"] for post in body["posts"])

    @pytest.mark.asyncio
    async def test_search_requires_query(self, client):
        response = await client.get("/post/search")
        body = await response.json()

        assert response.status == 400
        assert body["code"] == "V001"

    @pytest.mark.asyncio
    async def test_posts_by_category(self, client, seeded):
        response = await client.get("/post/category/thoi-su")
        body = await response.json()

        assert response.status == 200
        assert body["category"] == {
            "id": seeded["thoi_su"].id,
            "name": "Thời sự",
            "slug": "thoi-su",
        }
        assert body["pagination"]["totalPosts"] == 6
        assert all(seeded["thoi_su"].id in post["categories"] for post in body["posts"])

    @pytest.mark.asyncio
    async def test_unknown_category(self, client):
        response = await client.get("/post/category/khong-ton-tai")
        body = await response.json()

        assert response.status == 404
        assert body["code"] == "R002"

    @pytest.mark.asyncio
    async def test_list_categories(self, client, seeded):
        response = await client.get("/category")
        body = await response.json()

        assert response.status == 200
        assert [c["slug"] for c in body] == ["kinh-doanh", "thoi-su"]
        assert body[0]["link"] == "https://tuoitre.vn/rss/kinh-doanh.rss"
