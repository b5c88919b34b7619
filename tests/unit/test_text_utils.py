"""
Unit Tests for Text Helpers and Validators
==========================================
"""

import pytest

from newsx.utils.exceptions import ValidationError
from newsx.utils.text import create_slug, ensure_unique_slug, normalize_vietnamese, strip_html_tags
from newsx.utils.validators import URLValidator, validate_pagination


class TestSlugs:
    """Slug generation and disambiguation."""

    @pytest.mark.parametrize("title,expected", [
        ("Đà Nẵng đón khách quốc tế", "da-nang-don-khach-quoc-te"),
        ("Thời sự", "thoi-su"),
        ("  Giá xăng: giảm 1.000 đồng/lít!  ", "gia-xang-giam-1-000-dong-lit"),
        ("COVID-19 -- tin mới", "covid-19-tin-moi"),
    ])
    def test_create_slug(self, title, expected):
        assert create_slug(title) == expected

    def test_create_slug_empty(self):
        assert create_slug("") == ""
        assert create_slug("!!!") == ""

    def test_unique_slug_free(self):
        assert ensure_unique_slug("tin-nong", []) == "tin-nong"

    def test_unique_slug_lowest_free_suffix(self):
        taken = ["tin-nong", "tin-nong-1", "tin-nong-3"]

        assert ensure_unique_slug("tin-nong", taken) == "tin-nong-2"

    def test_unique_slug_empty_base(self):
        assert ensure_unique_slug("", ["post"]) == "post-1"


class TestNormalizeVietnamese:
    @pytest.mark.parametrize("text,expected", [
        ("Đà Nẵng", "da nang"),
        ("ĐƯỜNG PHỐ", "duong pho"),
        ("  Hà Nội  ", "ha noi"),
        ("Huế", "hue"),
        ("", ""),
    ])
    def test_folds_accents_and_case(self, text, expected):
        assert normalize_vietnamese(text) == expected


class TestStripHtmlTags:
    def test_strips_markup_and_entities(self):
        raw = '<a href="/x"><img src="a.jpg" /></a>Giá &amp; thị   trường<br/>'

        assert strip_html_tags(raw) == "Giá & thị trường"

    def test_empty_becomes_none(self):
        assert strip_html_tags('<img src="a.jpg" />') is None
        assert strip_html_tags(None) is None


class TestURLValidator:
    def test_normalizes_scheme_and_host(self):
        assert URLValidator.validate_feed_url("HTTPS://TuoiTre.VN/rss/tin-moi.rss#top") == (
            "https://tuoitre.vn/rss/tin-moi.rss"
        )

    @pytest.mark.parametrize("url", [None, "", "ftp://tuoitre.vn/feed", "https://", 42])
    def test_rejects_invalid(self, url):
        with pytest.raises(ValidationError):
            URLValidator.validate_feed_url(url)
        assert URLValidator.is_valid_feed_url(url) is False


class TestValidatePagination:
    def test_defaults(self):
        assert validate_pagination(None, None) == (1, 10)

    def test_caps_limit(self):
        assert validate_pagination("2", "500", max_limit=100) == (2, 100)

    @pytest.mark.parametrize("page,limit", [("x", "10"), ("0", "10"), ("1", "-1")])
    def test_rejects_bad_values(self, page, limit):
        with pytest.raises(ValidationError):
            validate_pagination(page, limit)
