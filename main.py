#!/usr/bin/env python3
"""
NewsX - News Crawler Backend
============================

Main application entry point with CLI interface for management and crawling.

Usage:
    python main.py --help                        # Show all commands
    python main.py check-config                  # Validate configuration
    python main.py init-db                       # Initialize database
    python main.py add-category NAME FEED_URL    # Register a category feed
    python main.py list-categories               # Show categories
    python main.py crawl                         # Run one crawl cycle
    python main.py list-articles                 # Show newest articles
    python main.py search QUERY                  # Search article titles
    python main.py serve                         # Start API with auto-crawling
"""

import sys
import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from newsx.config.settings import get_settings
from newsx.database.schema import DatabaseSchema
from newsx.database.connection import get_db_manager
from newsx.database.models import author_display_name
from newsx.storage.article_repository import ArticleRepository
from newsx.storage.category_repository import CategoryRepository
from newsx.processing.pipeline import IngestionPipeline
from newsx.utils.logging import configure_application_logging
from newsx.utils.exceptions import NewsXError, handle_exception

console = Console()
logger = logging.getLogger(__name__)


def _repositories(settings):
    """Schema-checked repositories over the configured database."""
    DatabaseSchema(settings.database.path).create_tables()
    db_manager = get_db_manager(settings.database)
    return (
        CategoryRepository(db_manager),
        ArticleRepository(db_manager, source=settings.pipeline.source),
    )


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, debug):
    """NewsX - concurrent RSS news crawler."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        # Show help if no subcommand provided
        click.echo(ctx.get_help())
        return

    try:
        settings = get_settings()
        configure_application_logging(
            log_level="DEBUG" if debug else settings.get_effective_log_level(),
            log_file=settings.logging.file_path,
            enable_console=settings.logging.console_logging,
            structured_logging=settings.logging.structured_logging,
            max_file_size_mb=settings.logging.max_file_size_mb,
            backup_count=settings.logging.backup_count,
        )
    except NewsXError as e:
        console.print(f"[bold red]❌ Configuration error: {e}[/bold red]")
        sys.exit(1)


@cli.command()
def check_config():
    """Validate configuration and environment variables."""
    console.print("[bold blue]🔧 Checking NewsX Configuration[/bold blue]")

    try:
        settings = get_settings()

        table = Table(title="Configuration Status")
        table.add_column("Component", style="cyan")
        table.add_column("Status", style="green")
        table.add_column("Details")

        checks = [
            ("Database", _check_database_config),
            ("Logging", _check_logging_config),
            ("Crawler", _check_crawler_config),
            ("Pipeline", _check_pipeline_config),
            ("API", _check_api_config),
        ]

        all_passed = True
        for name, check_func in checks:
            status, details = check_func(settings)
            table.add_row(name, "✅ Valid" if status else "❌ Invalid", details)
            if not status:
                all_passed = False

        console.print(table)

        if all_passed:
            console.print("[bold green]✅ All configuration checks passed![/bold green]")
        else:
            console.print("[bold red]❌ Configuration validation failed[/bold red]")
            sys.exit(1)

    except NewsXError as e:
        console.print(f"[bold red]❌ Configuration error: {e}[/bold red]")
        sys.exit(1)


@cli.command()
def init_db():
    """Initialize database with schema."""
    console.print("[bold blue]🗄️ Initializing NewsX Database[/bold blue]")

    try:
        settings = get_settings()
        schema = DatabaseSchema(settings.database.path)
        schema.create_tables()

        if not schema.verify_schema():
            console.print("[bold red]❌ Database schema verification failed[/bold red]")
            sys.exit(1)

        console.print("[bold green]✅ Database initialized successfully![/bold green]")

        db_manager = get_db_manager(settings.database)

        info_table = Table(title="Database Information")
        info_table.add_column("Property", style="cyan")
        info_table.add_column("Value", style="green")
        info_table.add_row("Database Path", settings.database.path)
        info_table.add_row("Size", f"{db_manager.file_size_mb():.2f} MB")
        for table_name, count in db_manager.table_counts().items():
            info_table.add_row(f"Rows in {table_name}", str(count))

        console.print(info_table)

    except Exception as e:
        error = handle_exception(e, logger, "init_db")
        console.print(f"[bold red]❌ Database initialization error: {error.user_message}[/bold red]")
        sys.exit(1)


@cli.command()
@click.argument('name')
@click.argument('feed_url')
@click.option('--slug', help='Category slug (derived from the name by default)')
def add_category(name, feed_url, slug):
    """Register a category and the RSS feed that fills it."""
    try:
        categories, _ = _repositories(get_settings())
        category = categories.create_category(name, link=feed_url, slug=slug)
        console.print(f"[bold green]✅ Category ready:[/bold green] {category.name} ({category.slug})")

    except NewsXError as e:
        console.print(f"[bold red]❌ {e.user_message}[/bold red]")
        sys.exit(1)


@cli.command()
def list_categories():
    """Show all categories and their feeds."""
    try:
        categories, _ = _repositories(get_settings())
        rows = categories.list_categories()

        if not rows:
            console.print("[yellow]No categories registered[/yellow]")
            return

        table = Table(title=f"Categories ({len(rows)})")
        table.add_column("Name", style="cyan")
        table.add_column("Slug")
        table.add_column("Feed", style="green")
        for category in rows:
            table.add_row(category.name, category.slug, category.link or "-")

        console.print(table)

    except NewsXError as e:
        console.print(f"[bold red]❌ {e.user_message}[/bold red]")
        sys.exit(1)


@cli.command()
def crawl():
    """Run one crawl cycle over every category feed."""
    console.print("[bold blue]📡 Crawling category feeds[/bold blue]")

    async def run_crawl():
        settings = get_settings()
        categories, articles = _repositories(settings)
        pipeline = IngestionPipeline(categories, articles, settings)

        saved = await pipeline.run_crawl_cycle()
        stats = pipeline.last_stats

        table = Table(title="Crawl Cycle")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Feeds crawled", str(stats.feeds_crawled))
        table.add_row("Feeds skipped", str(stats.feeds_skipped))
        table.add_row("Articles crawled", str(stats.articles_crawled))
        table.add_row("Articles saved", str(saved))
        table.add_row("Articles failed", str(stats.articles_failed))
        table.add_row("Duration", f"{stats.duration_seconds:.1f}s")
        console.print(table)

    try:
        asyncio.run(run_crawl())
    except NewsXError as e:
        console.print(f"[bold red]❌ Crawl failed: {e.user_message}[/bold red]")
        sys.exit(1)


@cli.command()
@click.option('--page', default=1, type=int, help='Page number (default: 1)')
@click.option('--limit', default=10, type=int, help='Articles per page (default: 10)')
def list_articles(page, limit):
    """Show the newest stored articles."""
    try:
        _, articles = _repositories(get_settings())
        _print_page(articles.list_articles(page, limit), "Articles")
    except NewsXError as e:
        console.print(f"[bold red]❌ {e.user_message}[/bold red]")
        sys.exit(1)


@cli.command()
@click.argument('query')
@click.option('--page', default=1, type=int, help='Page number (default: 1)')
@click.option('--limit', default=10, type=int, help='Articles per page (default: 10)')
def search(query, page, limit):
    """Search article titles, ignoring accents and case."""
    try:
        _, articles = _repositories(get_settings())
        _print_page(articles.search_by_title(query, page, limit), f"Search: {query}")
    except NewsXError as e:
        console.print(f"[bold red]❌ {e.user_message}[/bold red]")
        sys.exit(1)


@cli.command()
def serve():
    """Start the HTTP API with periodic crawling."""
    from newsx.api.app import run_server

    settings = get_settings()
    console.print(
        f"[bold blue]🚀 Starting NewsX API on {settings.api.host}:{settings.api.port} "
        f"(crawling every {settings.scheduler.interval_minutes} minutes)[/bold blue]"
    )
    run_server(settings)


def _print_page(page, title):
    table = Table(title=f"{title} (page {page.current_page}/{page.total_pages or 1}, {page.total} total)")
    table.add_column("Published", style="cyan")
    table.add_column("Title")
    table.add_column("Author", style="green")
    for article in page.items:
        table.add_row(article.pub_date or "-", article.title, author_display_name(article.author))
    console.print(table)


# Helper functions for configuration checks
def _check_database_config(settings) -> tuple[bool, str]:
    """Check database configuration."""
    try:
        Path(settings.database.path).parent.mkdir(parents=True, exist_ok=True)
        return True, f"Path: {settings.database.path}, Pool: {settings.database.pool_size}"
    except OSError as e:
        return False, str(e)


def _check_logging_config(settings) -> tuple[bool, str]:
    """Check logging configuration."""
    try:
        if settings.logging.file_path:
            Path(settings.logging.file_path).parent.mkdir(parents=True, exist_ok=True)
        return True, f"Level: {settings.logging.level.value}, Console: {settings.logging.console_logging}"
    except OSError as e:
        return False, str(e)


def _check_crawler_config(settings) -> tuple[bool, str]:
    crawler = settings.crawler
    return True, (
        f"Feeds: {crawler.feed_concurrency}, Items/feed: {crawler.item_concurrency}, "
        f"Timeout: {crawler.request_timeout}s, Duplicates: {crawler.duplicate_policy.value}"
    )


def _check_pipeline_config(settings) -> tuple[bool, str]:
    pipeline = settings.pipeline
    return True, f"Batch: {pipeline.batch_size}, Delay: {pipeline.batch_delay_seconds}s"


def _check_api_config(settings) -> tuple[bool, str]:
    api = settings.api
    if api.page_size > api.max_page_size:
        return False, "page_size exceeds max_page_size"
    return True, f"Listen: {api.host}:{api.port}, Page size: {api.page_size}"


if __name__ == "__main__":
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 NewsX interrupted by user[/yellow]")
        sys.exit(130)
