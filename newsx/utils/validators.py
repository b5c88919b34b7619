"""
NewsX Input Validators
======================

URL and pagination validation used at the crawler and API boundaries.
"""

from typing import Any, Optional, Tuple
from urllib.parse import urlparse, urlunparse

from .exceptions import ValidationError, ErrorCode


class URLValidator:
    """URL validation and normalization utilities."""

    ALLOWED_SCHEMES = {"http", "https"}

    @classmethod
    def validate_feed_url(cls, url: Any) -> str:
        """Validate and normalize an RSS feed URL.

        Args:
            url: URL to validate

        Returns:
            Normalized URL (lowercase scheme and host, fragment removed)

        Raises:
            ValidationError: If URL is invalid
        """
        if not url or not isinstance(url, str):
            raise ValidationError(
                "URL is required and must be a string",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
                field_name="url",
            )

        url = url.strip()
        parsed = urlparse(url)

        if parsed.scheme.lower() not in cls.ALLOWED_SCHEMES:
            raise ValidationError(
                f"URL scheme must be {' or '.join(sorted(cls.ALLOWED_SCHEMES))}",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url",
            )

        if not parsed.netloc:
            raise ValidationError(
                "URL must include a hostname",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url",
            )

        return urlunparse(
            parsed._replace(
                scheme=parsed.scheme.lower(),
                netloc=parsed.netloc.lower(),
                path=parsed.path or "/",
                fragment="",
            )
        )

    @classmethod
    def is_valid_feed_url(cls, url: Any) -> bool:
        """Boolean form of validate_feed_url."""
        try:
            cls.validate_feed_url(url)
            return True
        except ValidationError:
            return False


def validate_pagination(
    page: Optional[Any], limit: Optional[Any], default_limit: int = 10, max_limit: int = 100
) -> Tuple[int, int]:
    """Coerce page/limit query values into positive integers.

    Raises:
        ValidationError: If either value is not a positive integer
    """
    try:
        page_value = int(page) if page not in (None, "") else 1
        limit_value = int(limit) if limit not in (None, "") else default_limit
    except (TypeError, ValueError):
        raise ValidationError(
            "page and limit must be integers",
            error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
            field_name="pagination",
        )

    if page_value < 1 or limit_value < 1:
        raise ValidationError(
            "page and limit must be positive",
            error_code=ErrorCode.VALIDATION_OUT_OF_RANGE,
            field_name="pagination",
        )

    return page_value, min(limit_value, max_limit)
