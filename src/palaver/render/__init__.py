"""Rendering of assistant text."""

from palaver.render.console import ConsoleRenderer, highlight_code
from palaver.render.html import render_html
from palaver.render.markdown import MarkdownRenderer
from palaver.render.tree import Document, HtmlPolicy

__all__ = [
    "ConsoleRenderer",
    "Document",
    "HtmlPolicy",
    "MarkdownRenderer",
    "highlight_code",
    "render_html",
]
