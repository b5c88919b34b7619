"""
NewsX Configuration System
==========================

Configuration management with environment variables and Pydantic models.
Environment variables (prefix ``NEWSX_``, nested with ``__``) override Field
defaults, e.g. ``NEWSX_CRAWLER__FEED_CONCURRENCY=4``.
"""

from pathlib import Path
from typing import Optional
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings

from ..utils.exceptions import ConfigurationError, ErrorCode


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class DuplicatePolicy(str, Enum):
    """What to do when the same article link shows up under several feeds."""
    ALLOW = "allow"                        # Keep every record, upsert sorts it out
    FIRST_WINS = "first_wins"              # Drop records with an already-seen link
    MERGE_CATEGORIES = "merge_categories"  # Keep first record, union category ids


class CrawlerSettings(BaseModel):
    """Feed and article crawling configuration."""
    feed_concurrency: int = Field(default=6, ge=1, le=50, description="Concurrent feed crawls")
    item_concurrency: int = Field(default=12, ge=1, le=100, description="Concurrent article fetches per feed")
    request_timeout: float = Field(default=12.0, gt=0, le=300, description="Per-request timeout in seconds")
    connections_per_host: int = Field(default=20, ge=1, le=200, description="Keep-alive sockets per host")
    max_items_per_feed: Optional[int] = Field(default=None, ge=1, description="Cap on items taken from each feed")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User-Agent sent to news sites")
    accept_language: str = Field(default="vi-VN,vi;q=0.9,en-US;q=0.8,en;q=0.7")
    duplicate_policy: DuplicatePolicy = Field(
        default=DuplicatePolicy.ALLOW,
        description="Cross-feed handling of articles sharing a link",
    )

    @property
    def max_connections(self) -> int:
        """Upper bound on simultaneous outstanding requests."""
        return self.feed_concurrency * self.item_concurrency


class PipelineSettings(BaseModel):
    """Persistence batching configuration."""
    batch_size: int = Field(default=50, ge=1, le=1000, description="Articles per upsert batch")
    batch_delay_seconds: float = Field(default=0.2, ge=0.0, le=60.0, description="Pause between batches")
    source: str = Field(default="tuoitre.vn", description="Source label stored with each article")


class SchedulerSettings(BaseModel):
    """Periodic crawl configuration."""
    interval_minutes: float = Field(default=5, gt=0, le=24 * 60, description="Minutes between crawl cycles")
    run_on_startup: bool = Field(default=True, description="Run a cycle as soon as the service starts")


class ApiSettings(BaseModel):
    """HTTP API configuration."""
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)
    page_size: int = Field(default=10, ge=1, le=100, description="Default page size")
    max_page_size: int = Field(default=100, ge=1, le=1000)


class DatabaseSettings(BaseModel):
    """Database configuration."""
    path: str = Field(default="data/newsx.db", description="SQLite database file path")
    pool_size: int = Field(default=5, ge=1, le=20, description="Idle SQLite connections kept for reuse")
    busy_timeout: float = Field(default=30.0, gt=0, le=300, description="Seconds to wait for a locked database")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default="logs/newsx.log", description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")

    @field_validator("file_path")
    @classmethod
    def empty_path_disables_file(cls, v):
        """An empty string turns file logging off."""
        if v is not None and not v.strip():
            return None
        return v


class NewsXSettings(BaseSettings):
    """Main application settings."""

    crawler: CrawlerSettings = Field(default_factory=CrawlerSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    app_name: str = Field(default="NewsX", description="Application name")
    version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "NEWSX_",
        "extra": "ignore",
    }

    def validate_configuration(self) -> None:
        """Create the data and log directories and check cross-section limits.

        Raises:
            ConfigurationError: Listing every problem found
        """
        problems = []

        directories = [("database.path", self.database.path), ("logging.file_path", self.logging.file_path)]
        for key, file_path in directories:
            if not file_path:
                continue
            try:
                Path(file_path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                problems.append(f"{key}: cannot create {Path(file_path).parent}: {e}")

        if self.api.page_size > self.api.max_page_size:
            problems.append("api.page_size cannot exceed api.max_page_size")

        if problems:
            raise ConfigurationError(
                "Invalid configuration: " + "; ".join(problems),
                error_code=ErrorCode.CONFIG_INVALID,
            )

    def get_effective_log_level(self) -> str:
        """``--debug``/``NEWSX_DEBUG`` forces DEBUG over ``logging.level``."""
        return "DEBUG" if self.debug else self.logging.level.value


def load_settings() -> NewsXSettings:
    """Read ``.env`` and the environment into validated settings.

    Precedence is environment, then ``.env``, then Field defaults.

    Raises:
        ConfigurationError: If a value is rejected or a directory cannot be created
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        settings = NewsXSettings()
    except PydanticValidationError as e:
        raise ConfigurationError(
            f"Invalid NEWSX_ setting: {e}",
            error_code=ErrorCode.CONFIG_INVALID,
        ) from e

    settings.validate_configuration()
    return settings


_settings: Optional[NewsXSettings] = None


def get_settings(reload: bool = False) -> NewsXSettings:
    """Process-wide settings, loaded on first use or when ``reload`` is set."""
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
