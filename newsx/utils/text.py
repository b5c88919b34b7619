"""
Text helpers shared by the crawler and the storage layer.
"""

import re
import html
import unicodedata
from typing import Iterable, Optional

from slugify import slugify

TAG_PATTERN = re.compile(r"<[^>]+>")
WHITESPACE_PATTERN = re.compile(r"\s+")
# Combining diacritical marks left behind by NFD decomposition
COMBINING_MARKS_PATTERN = re.compile("[\u0300-\u036f]")

DEFAULT_SLUG = "post"


def create_slug(text: str) -> str:
    """Build a lowercase, URL-safe slug from a (Vietnamese) title.

    Diacritics are transliterated ("Đà Nẵng" -> "da-nang"); anything that is
    not a latin letter or digit becomes a single hyphen.
    """
    if not text:
        return ""
    # đ/Đ are standalone letters, not composed characters
    text = text.replace("đ", "d").replace("Đ", "D")
    return slugify(text, lowercase=True)


def ensure_unique_slug(base_slug: str, existing_slugs: Iterable[str]) -> str:
    """Return base_slug, or base_slug-N with the lowest free N >= 1."""
    base_slug = base_slug or DEFAULT_SLUG
    taken = set(existing_slugs)

    candidate = base_slug
    counter = 1
    while candidate in taken:
        candidate = f"{base_slug}-{counter}"
        counter += 1
    return candidate


def normalize_vietnamese(text: str) -> str:
    """Fold a string for accent-insensitive search.

    Decomposes to NFD, drops combining marks, maps đ/Đ, lowercases and trims.
    """
    if not text:
        return ""
    folded = unicodedata.normalize("NFD", text)
    folded = COMBINING_MARKS_PATTERN.sub("", folded)
    folded = folded.replace("đ", "d").replace("Đ", "D")
    return folded.lower().strip()


def strip_html_tags(value: Optional[str]) -> Optional[str]:
    """Remove markup from a feed description; None when nothing is left."""
    if value is None:
        return None
    text = TAG_PATTERN.sub("", value)
    text = html.unescape(text)
    text = WHITESPACE_PATTERN.sub(" ", text).strip()
    return text or None
