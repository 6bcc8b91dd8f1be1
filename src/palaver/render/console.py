"""Rich renderables for display trees, with Pygments code highlighting."""

from __future__ import annotations

from loguru import logger
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound
from rich import box
from rich.console import Group, RenderableType
from rich.padding import Padding
from rich.rule import Rule as RichRule
from rich.style import Style
from rich.syntax import Syntax
from rich.table import Table as RichTable
from rich.text import Text

from palaver.render.sanitize import html_to_text
from palaver.render.tree import (
    Block,
    BlockQuote,
    CodeBlock,
    Document,
    Heading,
    HtmlBlock,
    HtmlPolicy,
    ListBlock,
    Paragraph,
    PlainText,
    Rule,
    Span,
    SpanKind,
    Table,
)

DEFAULT_CODE_THEME = "monokai"


def highlight_code(code: str, language: str | None, *, theme: str = DEFAULT_CODE_THEME) -> RenderableType:
    """Highlight a code block, falling back to plain text on any failure."""
    lexer = "text"
    if language:
        try:
            get_lexer_by_name(language)
            lexer = language
        except ClassNotFound:
            logger.debug("render.highlight.unknown_language language={}", language)
    try:
        syntax = Syntax(code.rstrip("\n"), lexer, theme=theme, word_wrap=False, padding=(0, 1))
        syntax.highlight(syntax.code)
    except Exception:
        logger.opt(exception=True).debug("render.highlight.failed language={}", language)
        return Text(code, style="markdown.code_block", no_wrap=True)
    return syntax


class ConsoleRenderer:
    """Convert a `Document` into a rich renderable."""

    def __init__(self, *, code_theme: str = DEFAULT_CODE_THEME) -> None:
        self.code_theme = code_theme

    def to_renderable(self, document: Document) -> RenderableType:
        return Group(*self._blocks(document.blocks))

    def _blocks(self, blocks: tuple[Block, ...]) -> list[RenderableType]:
        out: list[RenderableType] = []
        for index, block in enumerate(blocks):
            if index:
                out.append(Text())
            out.append(self._block(block))
        return out

    def _block(self, block: Block) -> RenderableType:  # noqa: C901
        if isinstance(block, Paragraph):
            return spans_to_text(block.spans)
        if isinstance(block, Heading):
            text = spans_to_text(block.spans)
            text.stylize(f"markdown.h{min(block.level, 6)}")
            return text
        if isinstance(block, CodeBlock):
            return highlight_code(block.code, block.language, theme=self.code_theme)
        if isinstance(block, ListBlock):
            return self._list(block)
        if isinstance(block, BlockQuote):
            return Padding(Group(*self._blocks(block.children)), (0, 0, 0, 2), style="markdown.block_quote")
        if isinstance(block, Table):
            return self._table(block)
        if isinstance(block, Rule):
            return RichRule(style="markdown.hr")
        if isinstance(block, HtmlBlock):
            if block.policy is HtmlPolicy.ESCAPE:
                return Text(block.content)
            return Text(html_to_text(block.content))
        if isinstance(block, PlainText):
            return Text(block.text)
        raise TypeError(f"unknown block: {type(block).__name__}")

    def _list(self, block: ListBlock) -> RenderableType:
        grid = RichTable.grid(padding=(0, 1))
        grid.add_column(no_wrap=True)
        grid.add_column(ratio=1)
        for offset, item in enumerate(block.items):
            marker = f"{block.start + offset}." if block.ordered else "•"
            style = "markdown.item.number" if block.ordered else "markdown.item.bullet"
            grid.add_row(Text(marker, style=style), Group(*self._blocks(item)))
        return grid

    def _table(self, block: Table) -> RenderableType:
        table = RichTable(box=box.SIMPLE_HEAVY, show_edge=False)
        for cell in block.header:
            table.add_column(spans_to_text(cell))
        for row in block.rows:
            table.add_row(*(spans_to_text(cell) for cell in row))
        return table


def spans_to_text(spans: tuple[Span, ...]) -> Text:
    """Build one wrapping `Text`; inline code is a styled run inside it."""
    text = Text()
    for span in spans:
        if span.kind is SpanKind.BREAK:
            text.append("\n")
            continue
        style = Style(
            bold=span.bold or None,
            italic=span.italic or None,
            strike=span.strike or None,
            underline=span.underline or None,
        )
        if span.kind is SpanKind.CODE:
            text.append(span.text, style="markdown.code")
            if style:
                text.stylize(style, len(text) - len(span.text))
        elif span.kind is SpanKind.LINK and span.href:
            text.append(span.text, style=style + Style(color="bright_blue", underline=True, link=span.href))
        else:
            text.append(span.text, style=style)
    return text
