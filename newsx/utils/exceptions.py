"""
NewsX Exceptions
================

Every error raised by NewsX carries an ``ErrorCode``, a context dict
(the feed, URL, query or field involved), a message safe to show to API
clients and CLI users, and whether a crawl can carry on past it.

Subclasses declare their defaults as class attributes; keyword fields
passed to any constructor (``feed_url=``, ``url=``, ``field_name=`` ...)
land in ``context`` unless they are None.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Error codes, one letter per family."""

    CONFIG_INVALID = "C001"
    CONFIG_MISSING = "C002"

    DATABASE_TRANSACTION = "D004"
    DATABASE_ERROR = "D006"

    FEED_UNAVAILABLE = "F001"
    FEED_PARSE_ERROR = "F003"

    HTTP_NETWORK_ERROR = "N001"
    HTTP_TIMEOUT = "N002"
    HTTP_STATUS_ERROR = "N003"

    VALIDATION_REQUIRED_FIELD = "V001"
    VALIDATION_INVALID_FORMAT = "V002"
    VALIDATION_OUT_OF_RANGE = "V003"

    DUPLICATE_RESOURCE = "R001"
    RESOURCE_NOT_FOUND = "R002"


class NewsXError(Exception):
    """Base exception for all NewsX errors."""

    default_code: Optional[ErrorCode] = None
    recoverable_by_default = False

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: Optional[bool] = None,
        **fields: Any,
    ):
        super().__init__(message)
        self.context = dict(context or {})
        self.context.update((k, v) for k, v in fields.items() if v is not None)
        self.error_code = error_code or self.default_code
        self.user_message = user_message or self.describe(message)
        self.recoverable = self.recoverable_by_default if recoverable is None else recoverable

    def describe(self, message: str) -> str:
        """User-facing message when the raiser did not give one."""
        return message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": type(self).__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        message = super().__str__()
        return f"[{self.error_code.value}] {message}" if self.error_code else message


class ConfigurationError(NewsXError):
    """Invalid or missing settings (``config_key=``)."""

    default_code = ErrorCode.CONFIG_INVALID

    def describe(self, message: str) -> str:
        return f"Configuration error: {message}"


class DatabaseError(NewsXError):
    """SQLite failures (``query=``). A crawl keeps going past a failed write."""

    default_code = ErrorCode.DATABASE_ERROR
    recoverable_by_default = True

    def describe(self, message: str) -> str:
        return "Database operation failed"


class FeedError(NewsXError):
    """A feed could not be crawled (``feed_url=``)."""

    default_code = ErrorCode.FEED_UNAVAILABLE
    recoverable_by_default = True

    def describe(self, message: str) -> str:
        return f"Feed processing failed: {message}"


class FeedParseError(FeedError):
    """The fetched document is not an RSS/Atom feed."""

    default_code = ErrorCode.FEED_PARSE_ERROR


class HttpRequestError(NewsXError):
    """One HTTP request failed (``url=``, ``status=`` when the server answered)."""

    default_code = ErrorCode.HTTP_NETWORK_ERROR
    recoverable_by_default = True

    @property
    def url(self) -> Optional[str]:
        return self.context.get("url")

    @property
    def status(self) -> Optional[int]:
        return self.context.get("status")

    def describe(self, message: str) -> str:
        return "Remote site request failed"


class ValidationError(NewsXError):
    """Rejected input (``field_name=``)."""

    default_code = ErrorCode.VALIDATION_INVALID_FORMAT

    def describe(self, message: str) -> str:
        return f"Invalid {self.context.get('field_name', 'input')}: {message}"


class NotFoundError(NewsXError):
    """Unknown category or article (``resource=``)."""

    default_code = ErrorCode.RESOURCE_NOT_FOUND


def handle_exception(
    exception: Exception,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> NewsXError:
    """Log a failed CLI operation and return it as a NewsXError.

    NewsX errors come back unchanged; anything else is wrapped with the
    operation name and the original exception type in its context.
    """
    if isinstance(exception, NewsXError):
        error = exception
    else:
        details = {
            **(context or {}),
            "operation": operation,
            "original_exception_type": type(exception).__name__,
        }
        if isinstance(exception, (ConnectionError, TimeoutError)):
            error = NewsXError(
                f"Network error during {operation}: {exception}",
                error_code=ErrorCode.HTTP_NETWORK_ERROR,
                context=details,
                user_message="Network connection failed",
                recoverable=True,
            )
        elif isinstance(exception, FileNotFoundError):
            error = ConfigurationError(
                f"Missing file during {operation}: {exception}",
                error_code=ErrorCode.CONFIG_MISSING,
                context=details,
                user_message="Configuration file missing",
            )
        else:
            error = NewsXError(
                f"Unexpected error during {operation}: {exception}",
                context=details,
                user_message="An unexpected error occurred",
                recoverable=True,
            )

    logger.error(f"{operation} failed: {error}", extra={"error": error.to_dict()})
    return error
