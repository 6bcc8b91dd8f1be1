"""Presentation-neutral display tree for assistant messages."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TypeAlias


class HtmlPolicy(str, Enum):
    """How raw HTML embedded in generated markdown is treated."""

    SANITIZE = "sanitize"
    ESCAPE = "escape"
    PASSTHROUGH = "passthrough"


class SpanKind(str, Enum):
    TEXT = "text"
    CODE = "code"
    LINK = "link"
    HTML = "html"
    BREAK = "break"


@dataclass(frozen=True)
class Span:
    """A run of inline content with uniform styling."""

    text: str
    kind: SpanKind = SpanKind.TEXT
    bold: bool = False
    italic: bool = False
    strike: bool = False
    underline: bool = False
    href: str | None = None


@dataclass(frozen=True)
class Paragraph:
    spans: tuple[Span, ...]


@dataclass(frozen=True)
class Heading:
    level: int
    spans: tuple[Span, ...]


@dataclass(frozen=True)
class CodeBlock:
    """Literal code; `code` keeps the exact whitespace of the source."""

    code: str
    language: str | None = None


@dataclass(frozen=True)
class ListBlock:
    ordered: bool
    items: tuple[tuple[Block, ...], ...]
    start: int = 1


@dataclass(frozen=True)
class BlockQuote:
    children: tuple[Block, ...]


@dataclass(frozen=True)
class Table:
    header: tuple[tuple[Span, ...], ...]
    rows: tuple[tuple[tuple[Span, ...], ...], ...]


@dataclass(frozen=True)
class Rule:
    pass


@dataclass(frozen=True)
class HtmlBlock:
    """Raw HTML from the source after the policy has been applied to it."""

    content: str
    policy: HtmlPolicy


@dataclass(frozen=True)
class PlainText:
    """Unparsed text, used when rendering had to give up."""

    text: str


Block: TypeAlias = Paragraph | Heading | CodeBlock | ListBlock | BlockQuote | Table | Rule | HtmlBlock | PlainText


@dataclass(frozen=True)
class Document:
    blocks: tuple[Block, ...]
    degraded: bool = False

    def code_blocks(self) -> list[CodeBlock]:
        found: list[CodeBlock] = []
        _collect_code(self.blocks, found)
        return found


def _collect_code(blocks: tuple[Block, ...], found: list[CodeBlock]) -> None:
    for block in blocks:
        if isinstance(block, CodeBlock):
            found.append(block)
        elif isinstance(block, BlockQuote):
            _collect_code(block.children, found)
        elif isinstance(block, ListBlock):
            for item in block.items:
                _collect_code(item, found)
