"""
NewsX Logging Configuration
===========================

Crawl context (cycle, feed, category, batch) rides on log records as
attributes set by component adapters. The console shows it as a short
``key=value`` tail; the rotating log file gets one JSON object per line
with the same fields at the top level, so a single feed or batch can be
filtered out of a cycle's output.
"""

import json
import logging
import logging.handlers
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

# Promoted to top-level JSON keys, in this order on the console
CRAWL_FIELDS = (
    "cycle",
    "trigger",
    "feed_url",
    "category_id",
    "batch",
    "url",
    "article_link",
)

_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "taskName",
}

NOISY_LOGGERS = ("aiohttp", "aiohttp.access", "feedparser", "asyncio", "charset_normalizer")


def _record_context(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS}


class StructuredFormatter(logging.Formatter):
    """JSON lines with crawl fields lifted out of ``extra``."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra = {}
        for key, value in _record_context(record).items():
            if key == "component" or key in CRAWL_FIELDS:
                payload[key] = value
            else:
                extra[key] = value
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class CrawlConsoleFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL logger: message | cycle=3 batch=2``"""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-7s %(name)s: %(message)s", datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        tail = " ".join(
            f"{key}={getattr(record, key)}"
            for key in CRAWL_FIELDS
            if getattr(record, key, None) is not None
        )
        if not tail:
            return line

        # keep a traceback below the context tail
        head, sep, trace = line.partition("\n")
        return f"{head} | {tail}{sep}{trace}"


def setup_logger(
    name: str = "newsx",
    level: str = "INFO",
    log_file: Optional[str] = None,
    console: bool = True,
    structured: bool = False,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """(Re)attach the console and file handlers of a logger.

    Args:
        name: Logger name
        level: Level name
        log_file: Rotating JSON log file, created with its directory
        console: Log to stderr
        structured: JSON on the console as well
        max_bytes: Rotation size of the log file
        backup_count: Rotated files kept

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level.upper())

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(StructuredFormatter() if structured else CrawlConsoleFormatter())
        logger.addHandler(stream_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    return logger


class CrawlContextAdapter(logging.LoggerAdapter):
    """Adds bound crawl context to each record; per-call extras win."""

    def process(self, msg: Any, kwargs: Dict[str, Any]):
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs

    def bind(self, **context: Any) -> "CrawlContextAdapter":
        """Adapter over the same logger with more context, e.g. ``cycle=3``."""
        merged = {**self.extra, **{k: v for k, v in context.items() if v is not None}}
        return CrawlContextAdapter(self.logger, merged)


def get_logger_for_component(
    component_name: str,
    feed_url: Optional[str] = None,
    category_id: Optional[str] = None,
) -> CrawlContextAdapter:
    """Logger ``newsx.<component>`` carrying the feed being worked on, if any."""
    adapter = CrawlContextAdapter(
        logging.getLogger(f"newsx.{component_name}"), {"component": component_name}
    )
    return adapter.bind(feed_url=feed_url, category_id=category_id)


def configure_application_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = "logs/newsx.log",
    enable_console: bool = True,
    structured_logging: bool = False,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
) -> None:
    """Configure the ``newsx`` logger tree from LoggingSettings values."""
    setup_logger(
        name="newsx",
        level=log_level,
        log_file=log_file,
        console=enable_console,
        structured=structured_logging,
        max_bytes=max_file_size_mb * 1024 * 1024,
        backup_count=backup_count,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class PerformanceLogger:
    """Times a block and logs its outcome with ``duration_seconds``.

    Success is logged at INFO, failure at ERROR; the exception propagates.
    """

    def __init__(self, logger: logging.LoggerAdapter, operation: str, **context: Any):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.duration = 0.0
        self._started: Optional[float] = None

    def __enter__(self) -> "PerformanceLogger":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.duration = time.perf_counter() - self._started
        extra = {**self.context, "duration_seconds": round(self.duration, 3)}

        if exc_type is None:
            self.logger.info(f"{self.operation} took {self.duration:.2f}s", extra=extra)
        else:
            self.logger.error(
                f"{self.operation} failed after {self.duration:.2f}s: {exc_val}", extra=extra
            )
