"""
Text helpers shared by the source adapters.

Covers image URL discovery in free-text descriptions, unwrapping of Google
tracking links, title normalization for duplicate detection and
order-preserving de-duplication.
"""

import re
from collections.abc import Iterable
from urllib.parse import unquote

IMAGE_URL_RE = re.compile(
    r"(https?://[^\s\"<>]+?\.(?:jpg|jpeg|png|gif|bmp|svg|webp))", re.IGNORECASE
)
IMGUR_DIRECT_RE = re.compile(
    r"i\.imgur\.com/([a-zA-Z0-9]+)\.(jpg|jpeg|png|gif|webp)", re.IGNORECASE
)
GOOGLE_TRACKING_LINK_RE = re.compile(
    r'<a href="https://www\.google\.com/url\?q=(https[^&]+)&[^"]+"([^>]*)>'
)
HTML_TAG_RE = re.compile(r"<[^>]*>")
NON_ALPHANUMERIC_RE = re.compile(r"[^a-z0-9]")


def unique_preserving_order(items: Iterable[str | None]) -> list[str]:
    """Drop empty and repeated entries, keeping the first occurrence of each."""
    seen: set[str] = set()
    result: list[str] = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            result.append(item)
    return result


def _to_direct_imgur_link(url: str) -> str:
    if "imgur.com/" in url and "i.imgur.com/" not in url:
        return url.replace("imgur.com/", "i.imgur.com/", 1)
    match = IMGUR_DIRECT_RE.search(url)
    if match:
        image_id, extension = match.groups()
        return f"https://i.imgur.com/{image_id}.{extension}"
    return url


def find_image_urls(text: str | None) -> list[str]:
    """
    Return the distinct image URLs embedded in ``text``, in order of appearance.

    Imgur page links are rewritten to their direct ``i.imgur.com`` form so the
    calendar can render them.
    """
    if not text:
        return []
    matches = unique_preserving_order(IMAGE_URL_RE.findall(text))
    return unique_preserving_order(_to_direct_imgur_link(url) for url in matches)


def replace_google_tracking_urls(description: str) -> str:
    """Replace ``google.com/url?q=...`` redirect anchors with the real target URL."""

    def _unwrap(match: re.Match) -> str:
        return f'<a href="{unquote(match.group(1))}"{match.group(2)}>'

    return GOOGLE_TRACKING_LINK_RE.sub(_unwrap, description)


def strip_html(text: str | None) -> str:
    if not text:
        return ""
    return HTML_TAG_RE.sub("", text)


def normalize_title(title: str | None) -> str:
    """Lowercase and drop everything but ASCII letters and digits."""
    if not title:
        return ""
    return NON_ALPHANUMERIC_RE.sub("", title.lower())


def titles_related(first: str | None, second: str | None) -> bool:
    """True when one normalized title contains the other. Empty titles never relate."""
    a = normalize_title(first)
    b = normalize_title(second)
    if not a or not b:
        return False
    return a in b or b in a


def truncate(text: str, limit: int, suffix: str = "...") -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + suffix
