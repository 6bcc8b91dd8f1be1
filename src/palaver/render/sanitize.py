"""Allow-list sanitizing for HTML embedded in generated text."""

from __future__ import annotations

import html
import re
from dataclasses import dataclass

import bleach

__all__ = [
    "ALLOWED_ATTRIBUTES",
    "ALLOWED_PROTOCOLS",
    "ALLOWED_TAGS",
    "DROP_CONTENT_TAGS",
    "HtmlTag",
    "html_to_text",
    "is_safe_url",
    "parse_tag",
    "sanitize_html",
]

ALLOWED_TAGS = frozenset({
    "a",
    "abbr",
    "b",
    "blockquote",
    "br",
    "code",
    "dd",
    "del",
    "details",
    "div",
    "dl",
    "dt",
    "em",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "hr",
    "i",
    "ins",
    "kbd",
    "li",
    "mark",
    "ol",
    "p",
    "pre",
    "s",
    "samp",
    "span",
    "strike",
    "strong",
    "sub",
    "summary",
    "sup",
    "table",
    "tbody",
    "td",
    "th",
    "thead",
    "tr",
    "u",
    "ul",
})
ALLOWED_ATTRIBUTES = {
    "a": ["href", "title"],
    "abbr": ["title"],
    "code": ["class"],
    "td": ["align"],
    "th": ["align"],
}
ALLOWED_PROTOCOLS = frozenset({"http", "https", "mailto"})
# Content of these elements is dropped along with the tags.
DROP_CONTENT_TAGS = frozenset({"script", "style", "iframe", "object", "embed", "template", "noscript", "textarea"})

_TAG_RE = re.compile(r"^<\s*(/?)\s*([A-Za-z][A-Za-z0-9-]*)\b([^>]*?)(/?)\s*>$", re.DOTALL)
_DROP_CONTENT_RE = re.compile(
    r"<\s*(" + "|".join(sorted(DROP_CONTENT_TAGS)) + r")\b[^>]*>.*?(<\s*/\s*\1\s*>|\Z)",
    re.IGNORECASE | re.DOTALL,
)
_SCHEME_RE = re.compile(r"^\s*([A-Za-z][A-Za-z0-9+.\-]*):")


@dataclass(frozen=True)
class HtmlTag:
    """One inline tag such as ``<b>`` or ``</b>``."""

    name: str
    closing: bool
    self_closing: bool


def parse_tag(raw: str) -> HtmlTag | None:
    """Parse a single inline HTML tag; comments and declarations return None."""
    match = _TAG_RE.match(raw.strip())
    if match is None:
        return None
    closing, name, _attrs, self_closing = match.groups()
    return HtmlTag(name=name.lower(), closing=bool(closing), self_closing=bool(self_closing))


def sanitize_html(value: str) -> str:
    """Return HTML with tags and attributes outside the allow-list stripped."""
    if not value:
        return ""
    value = _DROP_CONTENT_RE.sub("", value)
    return bleach.clean(
        value,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
        strip_comments=True,
    )


def html_to_text(value: str) -> str:
    """Strip every tag and unescape entities."""
    if not value:
        return ""
    value = _DROP_CONTENT_RE.sub("", value)
    return html.unescape(bleach.clean(value, tags=set(), attributes={}, strip=True, strip_comments=True))


def is_safe_url(url: str) -> bool:
    match = _SCHEME_RE.match(url)
    if match is None:
        return True
    return match.group(1).lower() in ALLOWED_PROTOCOLS
