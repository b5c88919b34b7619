"""
Article HTML Extractor
======================

Pulls the article body and author block out of a news page and sanitizes
the body for re-publishing.

Extraction targets the tuoitre.vn article layout:
- body: ``div.detail-content.afcbc-body``
- author: ``div.detail-author.oneauthor``

Unknown layouts produce sentinel values, never exceptions.
"""

from typing import Iterable, Optional, Union

from bs4 import BeautifulSoup, Tag

from ..database.models import (
    AuthorDiagnostic,
    AuthorProfile,
    ScrapedArticle,
    NO_AUTHOR_MESSAGE,
    NO_AVATAR_MARKER,
    NO_CONTENT_MESSAGE,
    UNKNOWN_AUTHOR_NAME,
)
from ..utils.logging import get_logger_for_component


CONTENT_SELECTOR = "div.detail-content.afcbc-body"
AUTHOR_SELECTOR = "div.detail-author.oneauthor"
AUTHOR_NAME_SELECTOR = ".author-info a"
AUTHOR_AVATAR_SELECTOR = ".groupavtauthor a img"

# Removed together with their content
NOISE_TAGS = ("script", "style", "iframe", "ins", "object", "embed", "form")

# Matched against individual class tokens, never substrings
NOISE_CLASSES = frozenset(
    {
        "ad",
        "ads",
        "adv",
        "box-ads",
        "banner-ads",
        "VCSortableInPreviewMode",
        "relate-container",
        "box-relate",
        "related-news",
        "read-more",
        "readmore",
        "xem-them",
    }
)

# Lazy-load source attributes in order of preference
LAZY_SOURCE_ATTRS = ("data-src", "data-original", "data-lazy-src")
SRCSET_ATTRS = ("data-srcset", "srcset")
LAZY_ATTRS = LAZY_SOURCE_ATTRS + SRCSET_ATTRS + ("data-sizes",)

LINK_REL_TOKENS = ("noopener", "noreferrer")


def _usable_source(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    value = value.strip()
    if not value or value.startswith("data:"):
        return None
    return value


def _first_srcset_candidate(value: Optional[str]) -> Optional[str]:
    """First URL of a ``srcset`` list ("a.jpg 1x, b.jpg 2x" -> "a.jpg")."""
    if not value:
        return None
    first = value.split(",")[0].strip()
    if not first:
        return None
    return _usable_source(first.split()[0])


def fix_protocol_relative(url: str) -> str:
    """``//host/x`` -> ``https://host/x``; other URLs unchanged."""
    if url.startswith("//"):
        return "https:" + url
    return url


def resolve_image_source(img: Tag) -> Optional[str]:
    """First usable image source, honoring lazy-load attributes."""
    for attr in LAZY_SOURCE_ATTRS:
        source = _usable_source(img.get(attr))
        if source:
            return fix_protocol_relative(source)

    for attr in SRCSET_ATTRS:
        source = _first_srcset_candidate(img.get(attr))
        if source:
            return fix_protocol_relative(source)

    source = _usable_source(img.get("src"))
    if source:
        return fix_protocol_relative(source)
    return None


def _has_noise_class(tag: Tag) -> bool:
    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    return any(token in NOISE_CLASSES for token in classes)


def expand_noscript(root: Tag) -> None:
    """Replace each <noscript> holding markup with that markup; drop the rest."""
    for noscript in list(root.find_all("noscript")):
        if noscript.decomposed:
            continue
        # html.parser keeps the children as tags; other parsers keep raw text
        if noscript.find(True):
            markup = noscript.decode_contents()
        else:
            markup = noscript.get_text()

        fragment = BeautifulSoup(markup, "html.parser")
        if fragment.find(True) is None:
            noscript.decompose()
            continue

        for child in list(fragment.contents):
            noscript.insert_before(child)
        noscript.decompose()


def strip_noise(root: Tag) -> None:
    """Remove scripts, embeds, ad markers and boilerplate widgets."""
    for element in root.find_all(list(NOISE_TAGS)):
        if not element.decomposed:
            element.decompose()

    for element in list(root.find_all(True)):
        if element.decomposed:
            continue
        if element.name in ("figure", "figcaption"):
            continue
        if _has_noise_class(element):
            element.decompose()


def normalize_images(root: Tag) -> None:
    """Give every <img> a real source, an alt text and deferred loading.

    Images without any usable source are removed.
    """
    for img in list(root.find_all("img")):
        source = resolve_image_source(img)
        if source is None:
            img.decompose()
            continue

        for attr in LAZY_ATTRS:
            if attr in img.attrs:
                del img[attr]

        img["src"] = source
        img.attrs.setdefault("alt", "")
        img["loading"] = "lazy"
        img["decoding"] = "async"


def _rel_tokens(value: Union[None, str, Iterable[str]]) -> list:
    if not value:
        return []
    if isinstance(value, str):
        return value.split()
    return list(value)


def normalize_links(root: Tag) -> None:
    """Open links in a new tab without leaking the opener or referrer."""
    for anchor in root.find_all("a"):
        anchor["target"] = "_blank"
        tokens = _rel_tokens(anchor.get("rel"))
        for token in LINK_REL_TOKENS:
            if token not in tokens:
                tokens.append(token)
        anchor["rel"] = " ".join(tokens)


class ArticleExtractor:
    """Extracts sanitized body HTML and author metadata from article pages."""

    def __init__(self, parser: str = "html.parser"):
        self.parser = parser
        self.logger = get_logger_for_component("html_extractor")

    def extract(self, html: str) -> ScrapedArticle:
        """Extract content and author from one page, parsing it once."""
        try:
            soup = BeautifulSoup(html or "", self.parser)
        except Exception as e:
            self.logger.warning(f"Failed to parse article page: {e}")
            return ScrapedArticle(
                content=f"Error when extracting article content: {e}",
                author=AuthorDiagnostic(message=f"Error when extracting article author: {e}"),
            )

        # Author first: content cleaning mutates the tree
        author = self._author_from_soup(soup)
        content = self._content_from_soup(soup)
        return ScrapedArticle(content=content, author=author)

    def extract_content(self, html: str) -> str:
        """Sanitized inner HTML of the article body, or a sentinel string."""
        try:
            soup = BeautifulSoup(html or "", self.parser)
        except Exception as e:
            self.logger.warning(f"Failed to parse article page: {e}")
            return f"Error when extracting article content: {e}"
        return self._content_from_soup(soup)

    def extract_author(self, html: str) -> Union[AuthorProfile, AuthorDiagnostic]:
        """Author profile of the page, or a diagnostic explaining its absence."""
        try:
            soup = BeautifulSoup(html or "", self.parser)
        except Exception as e:
            self.logger.warning(f"Failed to parse article page: {e}")
            return AuthorDiagnostic(message=f"Error when extracting article author: {e}")
        return self._author_from_soup(soup)

    def _content_from_soup(self, soup: BeautifulSoup) -> str:
        try:
            container = soup.select_one(CONTENT_SELECTOR)
            if container is None:
                return NO_CONTENT_MESSAGE

            expand_noscript(container)
            strip_noise(container)
            normalize_images(container)
            normalize_links(container)

            content = container.decode_contents().strip()
            return content or NO_CONTENT_MESSAGE

        except Exception as e:
            self.logger.warning(f"Content extraction failed: {e}")
            return f"Error when extracting article content: {e}"

    def _author_from_soup(self, soup: BeautifulSoup) -> Union[AuthorProfile, AuthorDiagnostic]:
        try:
            block = soup.select_one(AUTHOR_SELECTOR)
            if block is None:
                return AuthorDiagnostic(message=NO_AUTHOR_MESSAGE)

            name_tag = block.select_one(AUTHOR_NAME_SELECTOR)
            name = name_tag.get_text(strip=True) if name_tag else ""

            avatar_tag = block.select_one(AUTHOR_AVATAR_SELECTOR)
            avatar = resolve_image_source(avatar_tag) if avatar_tag else None

            if not name and not avatar:
                return AuthorDiagnostic(message=NO_AUTHOR_MESSAGE)

            return AuthorProfile(
                name=name or UNKNOWN_AUTHOR_NAME,
                avatar_url=avatar or NO_AVATAR_MARKER,
            )

        except Exception as e:
            self.logger.warning(f"Author extraction failed: {e}")
            return AuthorDiagnostic(message=f"Error when extracting article author: {e}")
