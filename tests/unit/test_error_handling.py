"""
Error Handling and Logging Tests
================================

Tests for the exception hierarchy, exception conversion and the logging
helpers.
"""

import json
import logging
from unittest.mock import Mock

import pytest

from newsx.utils.exceptions import (
    ConfigurationError,
    DatabaseError,
    ErrorCode,
    FeedParseError,
    HttpRequestError,
    NewsXError,
    NotFoundError,
    ValidationError,
    handle_exception,
)
from newsx.utils.logging import (
    CrawlConsoleFormatter,
    CrawlContextAdapter,
    PerformanceLogger,
    StructuredFormatter,
    get_logger_for_component,
    setup_logger,
)


class TestExceptionHierarchy:
    """Error codes, context and user messages."""

    def test_str_includes_error_code(self):
        error = DatabaseError("disk I/O error", error_code=ErrorCode.DATABASE_ERROR)

        assert str(error) == "[D006] disk I/O error"
        assert error.recoverable is True
        assert error.user_message == "Database operation failed"

    def test_http_error_context(self):
        error = HttpRequestError(
            "HTTP 503", url="https://tuoitre.vn/x.htm", status=503,
            error_code=ErrorCode.HTTP_STATUS_ERROR,
        )

        assert error.status == 503
        assert error.context == {"url": "https://tuoitre.vn/x.htm", "status": 503}
        assert error.to_dict()["error_code"] == "N003"

    def test_feed_parse_error_code(self):
        error = FeedParseError("not a feed", feed_url="https://tuoitre.vn/rss/x.rss")

        assert error.error_code == ErrorCode.FEED_PARSE_ERROR
        assert error.context["feed_url"] == "https://tuoitre.vn/rss/x.rss"

    def test_validation_and_not_found(self):
        validation = ValidationError("must be positive", field_name="page")
        not_found = NotFoundError("no such category", resource="category")

        assert validation.user_message == "Invalid page: must be positive"
        assert validation.error_code == ErrorCode.VALIDATION_INVALID_FORMAT
        assert not_found.error_code == ErrorCode.RESOURCE_NOT_FOUND
        assert isinstance(not_found, NewsXError)

    def test_none_fields_stay_out_of_context(self):
        error = HttpRequestError(
            "Request timed out", url="https://tuoitre.vn/x.htm", status=None,
            error_code=ErrorCode.HTTP_TIMEOUT,
        )

        assert error.context == {"url": "https://tuoitre.vn/x.htm"}
        assert error.status is None
        assert error.recoverable is True
        assert error.user_message == "Remote site request failed"

    def test_arguments_override_class_defaults(self):
        error = ConfigurationError(
            "feed_concurrency must be positive", config_key="crawler.feed_concurrency",
            user_message="Check NEWSX_CRAWLER__FEED_CONCURRENCY", recoverable=True,
        )

        assert error.error_code == ErrorCode.CONFIG_INVALID
        assert error.context == {"config_key": "crawler.feed_concurrency"}
        assert error.user_message == "Check NEWSX_CRAWLER__FEED_CONCURRENCY"
        assert error.recoverable is True


class TestHandleException:
    def setup_method(self):
        self.logger = Mock()

    def test_newsx_error_passes_through(self):
        original = ConfigurationError("bad value")

        assert handle_exception(original, self.logger, "load") is original
        self.logger.error.assert_called_once()

    def test_connection_error_is_recoverable(self):
        error = handle_exception(ConnectionError("reset"), self.logger, "fetch")

        assert error.error_code == ErrorCode.HTTP_NETWORK_ERROR
        assert error.recoverable is True
        assert error.context["operation"] == "fetch"

    def test_missing_file(self):
        error = handle_exception(FileNotFoundError(".env"), self.logger, "load")

        assert isinstance(error, ConfigurationError)
        assert error.error_code == ErrorCode.CONFIG_MISSING

    def test_unexpected_error(self):
        error = handle_exception(KeyError("x"), self.logger, "parse")

        assert error.context["original_exception_type"] == "KeyError"
        assert error.user_message == "An unexpected error occurred"


class TestLogging:
    """Formatters, adapters and timing."""

    def make_record(self, **attrs):
        record = logging.LogRecord(
            "newsx.pipeline", logging.INFO, __file__, 10, "Crawled %d articles", (3,), None
        )
        for key, value in attrs.items():
            setattr(record, key, value)
        return record

    def test_structured_formatter_lifts_crawl_fields(self):
        record = self.make_record(
            component="pipeline", cycle=4, batch=2, feed_url="https://tuoitre.vn/rss/x.rss", items=3
        )

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "Crawled 3 articles"
        assert data["level"] == "INFO"
        assert data["cycle"] == 4
        assert data["batch"] == 2
        assert data["feed_url"] == "https://tuoitre.vn/rss/x.rss"
        assert data["component"] == "pipeline"
        assert data["extra"] == {"items": 3}

    def test_structured_formatter_without_extras(self):
        data = json.loads(StructuredFormatter().format(self.make_record()))

        assert "extra" not in data
        assert "cycle" not in data

    def test_console_formatter_appends_context(self):
        record = self.make_record(cycle=4, batch=2, component="pipeline")

        line = CrawlConsoleFormatter().format(record)

        assert line.endswith("newsx.pipeline: Crawled 3 articles | cycle=4 batch=2")

    def test_component_logger_context(self, caplog):
        logger = get_logger_for_component("feed_crawler", feed_url="https://tuoitre.vn/rss/x.rss")

        with caplog.at_level(logging.INFO, logger="newsx.feed_crawler"):
            logger.info("hello", extra={"items": 2})

        record = caplog.records[-1]
        assert record.component == "feed_crawler"
        assert record.feed_url == "https://tuoitre.vn/rss/x.rss"
        assert record.items == 2
        assert not hasattr(record, "category_id")

    def test_bind_adds_cycle_context(self, caplog):
        logger = get_logger_for_component("pipeline").bind(cycle=7)

        with caplog.at_level(logging.INFO, logger="newsx.pipeline"):
            logger.bind(batch=3).info("Batch 3 saved")
            logger.info("override", extra={"cycle": 8})

        first, second = caplog.records[-2:]
        assert (first.cycle, first.batch) == (7, 3)
        assert second.cycle == 8
        assert isinstance(logger, CrawlContextAdapter)

    def test_setup_logger_writes_json_file(self, tmp_path):
        log_file = tmp_path / "logs" / "newsx.log"
        logger = setup_logger("newsx.file_test", log_file=str(log_file), console=False)

        logger.warning("disk almost full", extra={"cycle": 1})
        for handler in logger.handlers:
            handler.flush()
            handler.close()

        data = json.loads(log_file.read_text(encoding="utf-8").strip())
        assert data["message"] == "disk almost full"
        assert data["cycle"] == 1

    def test_performance_logger_duration(self):
        logger = Mock()

        with PerformanceLogger(logger, "crawl cycle", cycle=2) as perf:
            pass

        assert perf.duration >= 0
        logger.info.assert_called_once()
        assert logger.info.call_args.kwargs["extra"]["cycle"] == 2
        assert "duration_seconds" in logger.info.call_args.kwargs["extra"]

    def test_performance_logger_failure(self):
        logger = Mock()

        with pytest.raises(RuntimeError):
            with PerformanceLogger(logger, "crawl cycle"):
                raise RuntimeError("boom")

        logger.error.assert_called_once()
        assert "boom" in logger.error.call_args.args[0]
