"""Markdown to display tree conversion with HTML sanitizing."""

from __future__ import annotations

from dataclasses import dataclass, replace

from loguru import logger
from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode

from palaver.errors import RenderError
from palaver.render.sanitize import ALLOWED_TAGS, DROP_CONTENT_TAGS, is_safe_url, parse_tag, sanitize_html
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

_STYLE_TAGS: dict[str, str] = {
    "b": "bold",
    "strong": "bold",
    "i": "italic",
    "em": "italic",
    "s": "strike",
    "del": "strike",
    "strike": "strike",
    "u": "underline",
    "ins": "underline",
}
_CODE_TAGS = frozenset({"code", "kbd", "samp"})


@dataclass
class _InlineState:
    bold: int = 0
    italic: int = 0
    strike: int = 0
    underline: int = 0
    code: int = 0
    dropped: int = 0
    href: str | None = None

    def span(self, text: str, kind: SpanKind = SpanKind.TEXT) -> Span:
        if kind is SpanKind.TEXT and self.code:
            kind = SpanKind.CODE
        if kind is SpanKind.TEXT and self.href is not None:
            kind = SpanKind.LINK
        return Span(
            text=text,
            kind=kind,
            bold=self.bold > 0,
            italic=self.italic > 0,
            strike=self.strike > 0,
            underline=self.underline > 0,
            href=self.href if kind is SpanKind.LINK else None,
        )


def build_parser() -> MarkdownIt:
    """CommonMark with raw HTML recognised, plus tables and strikethrough."""
    return MarkdownIt("commonmark", {"html": True}).enable(["table", "strikethrough"])


class MarkdownRenderer:
    """Turn assistant markdown into a `Document`.

    Raw HTML is handled according to `policy`: sanitized against an
    allow-list (default), shown as literal text, or passed through
    untouched. The renderer holds no session state and can be called on
    every growing prefix of a streamed message.
    """

    def __init__(self, policy: HtmlPolicy = HtmlPolicy.SANITIZE) -> None:
        self.policy = policy
        self._parser = build_parser()

    def render(self, text: str) -> Document:
        try:
            root = SyntaxTreeNode(self._parser.parse(text))
            return Document(blocks=self._blocks(root.children))
        except Exception as exc:
            raise RenderError(f"cannot render markdown: {exc}") from exc

    def render_safe(self, text: str) -> Document:
        """Like `render`, but falls back to the raw text instead of raising."""
        try:
            return self.render(text)
        except RenderError:
            logger.opt(exception=True).warning("render.degraded chars={}", len(text))
            return Document(blocks=(PlainText(text),), degraded=True)

    def _blocks(self, nodes: list[SyntaxTreeNode]) -> tuple[Block, ...]:
        blocks: list[Block] = []
        for node in nodes:
            block = self._block(node)
            if block is not None:
                blocks.append(block)
        return tuple(blocks)

    def _block(self, node: SyntaxTreeNode) -> Block | None:  # noqa: C901
        kind = node.type
        if kind == "paragraph":
            spans = self._inline_of(node)
            return Paragraph(spans) if spans else None
        if kind == "heading":
            return Heading(level=int(node.tag[1:]), spans=self._inline_of(node))
        if kind == "fence":
            info = node.info.strip()
            return CodeBlock(code=node.content, language=info.split()[0] if info else None)
        if kind == "code_block":
            return CodeBlock(code=node.content)
        if kind in ("bullet_list", "ordered_list"):
            start = node.attrs.get("start", 1)
            items = tuple(self._blocks(item.children) for item in node.children)
            return ListBlock(ordered=kind == "ordered_list", items=items, start=int(start))
        if kind == "blockquote":
            return BlockQuote(self._blocks(node.children))
        if kind == "hr":
            return Rule()
        if kind == "table":
            return self._table(node)
        if kind == "html_block":
            return self._html_block(node.content)
        logger.debug("render.unknown_block type={}", kind)
        return PlainText(node.content) if node.content else None

    def _table(self, node: SyntaxTreeNode) -> Table:
        header: tuple[tuple[Span, ...], ...] = ()
        rows: list[tuple[tuple[Span, ...], ...]] = []
        for section in node.children:
            for row in section.children:
                cells = tuple(self._inline_of(cell) for cell in row.children)
                if section.type == "thead":
                    header = cells
                else:
                    rows.append(cells)
        return Table(header=header, rows=tuple(rows))

    def _html_block(self, content: str) -> HtmlBlock | None:
        if self.policy is HtmlPolicy.SANITIZE:
            content = sanitize_html(content)
            if not content.strip():
                return None
        return HtmlBlock(content=content, policy=self.policy)

    def _inline_of(self, node: SyntaxTreeNode) -> tuple[Span, ...]:
        spans: list[Span] = []
        state = _InlineState()
        for child in node.children:
            if child.type == "inline":
                self._inline(child.children, state, spans)
        return tuple(_merge(spans))

    def _inline(self, nodes: list[SyntaxTreeNode], state: _InlineState, out: list[Span]) -> None:  # noqa: C901
        for node in nodes:
            kind = node.type
            if kind == "html_inline":
                self._html_inline(node.content, state, out)
                continue
            if state.dropped:
                continue
            if kind == "text":
                if node.content:
                    out.append(state.span(node.content))
            elif kind == "code_inline":
                out.append(state.span(node.content, SpanKind.CODE))
            elif kind in ("softbreak", "hardbreak"):
                out.append(state.span("\n", SpanKind.BREAK))
            elif kind in ("strong", "em", "s"):
                attr = {"strong": "bold", "em": "italic", "s": "strike"}[kind]
                setattr(state, attr, getattr(state, attr) + 1)
                self._inline(node.children, state, out)
                setattr(state, attr, getattr(state, attr) - 1)
            elif kind == "link":
                self._link(node, state, out)
            elif kind == "image":
                src = str(node.attrs.get("src", ""))
                if self.policy is not HtmlPolicy.PASSTHROUGH and not is_safe_url(src):
                    out.append(state.span(f"[image: {node.content or 'image'}]"))
                    continue
                alt = node.content or src
                out.append(replace(state.span(f"[image: {alt}]"), kind=SpanKind.LINK, href=src))
            else:
                self._inline(node.children, state, out)

    def _link(self, node: SyntaxTreeNode, state: _InlineState, out: list[Span]) -> None:
        href = str(node.attrs.get("href", ""))
        if self.policy is not HtmlPolicy.PASSTHROUGH and not is_safe_url(href):
            self._inline(node.children, state, out)
            return
        previous = state.href
        state.href = href
        self._inline(node.children, state, out)
        state.href = previous

    def _html_inline(self, raw: str, state: _InlineState, out: list[Span]) -> None:
        if self.policy is HtmlPolicy.ESCAPE:
            if not state.dropped:
                out.append(state.span(raw))
            return
        if self.policy is HtmlPolicy.PASSTHROUGH:
            out.append(state.span(raw, SpanKind.HTML))
            return

        tag = parse_tag(raw)
        if tag is None:
            return
        if tag.name in DROP_CONTENT_TAGS:
            if tag.closing:
                state.dropped = max(0, state.dropped - 1)
            elif not tag.self_closing:
                state.dropped += 1
            return
        if state.dropped or tag.name not in ALLOWED_TAGS:
            return
        if tag.name == "br":
            out.append(state.span("\n", SpanKind.BREAK))
            return
        if tag.self_closing:
            return
        step = -1 if tag.closing else 1
        if tag.name in _CODE_TAGS:
            state.code = max(0, state.code + step)
        elif tag.name in _STYLE_TAGS:
            attr = _STYLE_TAGS[tag.name]
            setattr(state, attr, max(0, getattr(state, attr) + step))


def _merge(spans: list[Span]) -> list[Span]:
    """Join neighbouring text spans that share the same styling."""
    merged: list[Span] = []
    for span in spans:
        if merged and span.kind is SpanKind.TEXT and _same_style(merged[-1], span):
            merged[-1] = replace(merged[-1], text=merged[-1].text + span.text)
        else:
            merged.append(span)
    return merged


def _same_style(left: Span, right: Span) -> bool:
    return left.kind is right.kind and replace(left, text="") == replace(right, text="")
