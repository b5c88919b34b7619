"""
NewsX HTTP API
==============

Read API over stored posts and categories plus the crawl trigger, served
with aiohttp.web.

Routes:
- GET /                        health text
- GET /post/crawl              start a crawl cycle in the background
- GET /post                    newest posts, paginated
- GET /post/search?q=          accent-insensitive title search
- GET /post/category/{slug}    posts of one category
- GET /category                all categories
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from aiohttp import web

from ..config.settings import NewsXSettings, get_settings
from ..database.connection import DatabaseConnection
from ..database.models import Page
from ..database.schema import DatabaseSchema
from ..processing.pipeline import IngestionPipeline
from ..scheduler.crawl_scheduler import CrawlScheduler
from ..storage.article_repository import ArticleRepository
from ..storage.category_repository import CategoryRepository
from ..utils.exceptions import NewsXError, NotFoundError, ValidationError
from ..utils.logging import get_logger_for_component
from ..utils.validators import validate_pagination

SETTINGS_KEY = web.AppKey("settings", NewsXSettings)
ARTICLES_KEY = web.AppKey("articles", ArticleRepository)
CATEGORIES_KEY = web.AppKey("categories", CategoryRepository)
SCHEDULER_KEY = web.AppKey("scheduler", CrawlScheduler)

logger = get_logger_for_component("api")


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Map NewsX errors onto JSON error responses."""
    try:
        return await handler(request)
    except ValidationError as e:
        return web.json_response(_error_body(e), status=400)
    except NotFoundError as e:
        return web.json_response(_error_body(e), status=404)
    except NewsXError as e:
        logger.error(f"{request.method} {request.path} failed: {e}", extra=e.to_dict())
        return web.json_response(_error_body(e), status=500)


def _error_body(error: NewsXError) -> Dict[str, Any]:
    return {
        "error": error.user_message,
        "code": error.error_code.value if error.error_code else None,
    }


def _page_body(page: Page) -> Dict[str, Any]:
    return {
        "posts": [post.model_dump(mode="json") for post in page.items],
        "pagination": page.pagination(),
    }


def _pagination_args(request: web.Request):
    settings = request.app[SETTINGS_KEY]
    return validate_pagination(
        request.query.get("page"),
        request.query.get("limit"),
        default_limit=settings.api.page_size,
        max_limit=settings.api.max_page_size,
    )


async def health(request: web.Request) -> web.Response:
    return web.Response(text="NewsX Backend API is running!")


async def trigger_crawl(request: web.Request) -> web.Response:
    """Acknowledge at once; the cycle result only reaches the logs."""
    return web.json_response(request.app[SCHEDULER_KEY].trigger_crawl("api"))


async def list_posts(request: web.Request) -> web.Response:
    page, limit = _pagination_args(request)
    result = request.app[ARTICLES_KEY].list_articles(page, limit)
    return web.json_response(_page_body(result))


async def search_posts(request: web.Request) -> web.Response:
    page, limit = _pagination_args(request)
    query = request.query.get("q", "")
    result = request.app[ARTICLES_KEY].search_by_title(query, page, limit)

    body = _page_body(result)
    body["searchQuery"] = query.strip()
    body["searchMetadata"] = {
        "executedAt": datetime.now(timezone.utc).isoformat(),
        "resultsFound": len(result.items),
        "totalMatches": result.total,
    }
    return web.json_response(body)


async def posts_by_category(request: web.Request) -> web.Response:
    page, limit = _pagination_args(request)
    slug = request.match_info["slug"]
    result, category = request.app[ARTICLES_KEY].find_by_category_slug(slug, page, limit)

    body = _page_body(result)
    body["category"] = category
    return web.json_response(body)


async def list_categories(request: web.Request) -> web.Response:
    categories = request.app[CATEGORIES_KEY].list_categories()
    return web.json_response([category.model_dump(mode="json") for category in categories])


async def _scheduler_context(app: web.Application):
    scheduler = app[SCHEDULER_KEY]
    task = asyncio.create_task(scheduler.run_forever())
    yield
    await scheduler.stop()
    await task


def create_app(
    settings: NewsXSettings,
    articles: ArticleRepository,
    categories: CategoryRepository,
    scheduler: CrawlScheduler,
    run_schedule: bool = False,
) -> web.Application:
    """Build the aiohttp application.

    Args:
        settings: Application settings
        articles: Article repository
        categories: Category repository
        scheduler: Scheduler behind the crawl trigger
        run_schedule: Also run periodic crawling for the app's lifetime
    """
    app = web.Application(middlewares=[error_middleware])
    app[SETTINGS_KEY] = settings
    app[ARTICLES_KEY] = articles
    app[CATEGORIES_KEY] = categories
    app[SCHEDULER_KEY] = scheduler

    app.router.add_get("/", health)
    app.router.add_get("/post/crawl", trigger_crawl)
    app.router.add_get("/post/search", search_posts)
    app.router.add_get("/post/category/{slug}", posts_by_category)
    app.router.add_get("/post", list_posts)
    app.router.add_get("/category", list_categories)

    if run_schedule:
        app.cleanup_ctx.append(_scheduler_context)

    return app


def build_service(settings: Optional[NewsXSettings] = None) -> web.Application:
    """Wire database, repositories, pipeline and scheduler into an app."""
    settings = settings or get_settings()

    DatabaseSchema(settings.database.path).create_tables()
    db = DatabaseConnection.from_settings(settings.database)

    articles = ArticleRepository(db, source=settings.pipeline.source)
    categories = CategoryRepository(db)
    pipeline = IngestionPipeline(categories, articles, settings)
    scheduler = CrawlScheduler(pipeline, settings.scheduler)

    app = create_app(settings, articles, categories, scheduler, run_schedule=True)

    async def close_database(app: web.Application) -> None:
        db.close_all_connections()

    app.on_cleanup.append(close_database)
    return app


def run_server(settings: Optional[NewsXSettings] = None) -> None:
    """Serve the API with periodic crawling until interrupted."""
    settings = settings or get_settings()
    app = build_service(settings)
    logger.info(f"NewsX API listening on {settings.api.host}:{settings.api.port}")
    web.run_app(app, host=settings.api.host, port=settings.api.port, print=None)
