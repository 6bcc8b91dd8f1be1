from rich.console import Console
from rich.syntax import Syntax
from rich.text import Text

from palaver.render import ConsoleRenderer, MarkdownRenderer, highlight_code
from palaver.render.console import spans_to_text
from palaver.render.tree import Document, PlainText, Span, SpanKind


def _export(renderable) -> str:
    console = Console(record=True, width=80, color_system=None)
    console.print(renderable)
    return console.export_text()


def test_unknown_language_falls_back_to_plain_lexer() -> None:
    renderable = highlight_code("x = 1\n", "no-such-language")

    assert isinstance(renderable, Syntax)
    assert "x = 1" in _export(renderable)


def test_highlighting_failure_returns_plain_text(monkeypatch) -> None:
    def broken(self, code, line_range=None):
        raise RuntimeError("lexer crashed")

    monkeypatch.setattr(Syntax, "highlight", broken)

    renderable = highlight_code("print('hi')\n", "python")

    assert isinstance(renderable, Text)
    assert renderable.plain == "print('hi')\n"


def test_document_renders_headings_lists_and_code() -> None:
    document = MarkdownRenderer().render("# Title\n\n- one\n- two\n\n2. second\n\n```python\nprint('hi')\n```")

    output = _export(ConsoleRenderer().to_renderable(document))

    assert "Title" in output
    assert "• one" in output
    assert "• two" in output
    assert "2. second" in output
    assert "print('hi')" in output


def test_html_blocks_show_their_text_only() -> None:
    document = MarkdownRenderer().render("<div><b>Important</b></div>")

    output = _export(ConsoleRenderer().to_renderable(document))

    assert "Important" in output
    assert "<b>" not in output


def test_inline_code_is_a_styled_run_of_the_same_text() -> None:
    text = spans_to_text((Span("call "), Span("f()", kind=SpanKind.CODE), Span(" now")))

    assert text.plain == "call f() now"
    assert any(span.style == "markdown.code" and (span.start, span.end) == (5, 8) for span in text.spans)


def test_links_carry_their_target() -> None:
    text = spans_to_text((Span("site", kind=SpanKind.LINK, href="https://example.com"),))

    assert text.plain == "site"
    assert text.spans[0].style.link == "https://example.com"


def test_degraded_document_prints_raw_text() -> None:
    document = Document((PlainText("**raw** <b>"),), degraded=True)

    assert _export(ConsoleRenderer().to_renderable(document)).strip() == "**raw** <b>"
