"""Serialise a display tree to HTML."""

from __future__ import annotations

from html import escape

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


def render_html(document: Document) -> str:
    return "\n".join(_block(block) for block in document.blocks)


def _block(block: Block) -> str:  # noqa: C901
    if isinstance(block, Paragraph):
        return f"<p>{_spans(block.spans)}</p>"
    if isinstance(block, Heading):
        return f"<h{block.level}>{_spans(block.spans)}</h{block.level}>"
    if isinstance(block, CodeBlock):
        css = f' class="language-{escape(block.language)}"' if block.language else ""
        return f"<pre><code{css}>{escape(block.code)}</code></pre>"
    if isinstance(block, ListBlock):
        tag = "ol" if block.ordered else "ul"
        start = f' start="{block.start}"' if block.ordered and block.start != 1 else ""
        items = "".join(f"<li>{''.join(_block(child) for child in item)}</li>" for item in block.items)
        return f"<{tag}{start}>{items}</{tag}>"
    if isinstance(block, BlockQuote):
        return f"<blockquote>{''.join(_block(child) for child in block.children)}</blockquote>"
    if isinstance(block, Table):
        head = "".join(f"<th>{_spans(cell)}</th>" for cell in block.header)
        body = "".join("<tr>" + "".join(f"<td>{_spans(cell)}</td>" for cell in row) + "</tr>" for row in block.rows)
        return f"<table><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>"
    if isinstance(block, Rule):
        return "<hr>"
    if isinstance(block, HtmlBlock):
        # sanitized and passthrough content is emitted as markup
        if block.policy is HtmlPolicy.ESCAPE:
            return f"<pre>{escape(block.content)}</pre>"
        return block.content
    if isinstance(block, PlainText):
        return f'<pre class="plain">{escape(block.text)}</pre>'
    raise TypeError(f"unknown block: {type(block).__name__}")


def _spans(spans: tuple[Span, ...]) -> str:
    return "".join(_span(span) for span in spans)


def _span(span: Span) -> str:
    if span.kind is SpanKind.BREAK:
        return "<br>"
    if span.kind is SpanKind.HTML:
        return span.text
    out = escape(span.text)
    if span.kind is SpanKind.CODE:
        out = f"<code>{out}</code>"
    if span.bold:
        out = f"<strong>{out}</strong>"
    if span.italic:
        out = f"<em>{out}</em>"
    if span.strike:
        out = f"<s>{out}</s>"
    if span.underline:
        out = f"<u>{out}</u>"
    if span.kind is SpanKind.LINK and span.href is not None:
        out = f'<a href="{escape(span.href)}">{out}</a>'
    return out
