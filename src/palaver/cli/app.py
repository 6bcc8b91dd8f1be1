"""CLI main module for palaver."""

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError

from palaver.cli.interactive import InteractiveCli
from palaver.cli.render import Renderer
from palaver.config import Settings, get_settings
from palaver.errors import ConfigurationError
from palaver.integrations.republic_client import RepublicConnector
from palaver.logging_utils import configure_logging
from palaver.render import HtmlPolicy, MarkdownRenderer, render_html
from palaver.session import SessionEngine, TurnStatus

app = typer.Typer(
    name="palaver",
    help="Chat with a streaming model from the terminal.",
    add_completion=False,
    rich_markup_mode="rich",
)

ModelOption = Annotated[Optional[str], typer.Option("--model", "-m", help="Model as provider:model.")]
MaxTokensOption = Annotated[Optional[int], typer.Option("--max-tokens", help="Maximum output tokens.")]
HtmlPolicyOption = Annotated[
    Optional[HtmlPolicy], typer.Option("--html-policy", help="How raw HTML in replies is treated.")
]


@app.callback(invoke_without_command=True)
def main_callback(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        chat(model=None, max_tokens=None, html_policy=None)


def build_engine(settings: Settings) -> SessionEngine:
    """Create a session wired to the configured backend."""
    return SessionEngine(
        RepublicConnector.from_settings(settings),
        config=settings.generation_config(),
        error_text=settings.error_text,
        cancelled_text=settings.cancelled_text,
    )


def _build_renderer(settings: Settings) -> Renderer:
    return Renderer(MarkdownRenderer(settings.html_policy), code_theme=settings.code_theme)


def _settings(**overrides: object) -> Settings:
    try:
        return get_settings(**overrides)
    except ValidationError as exc:
        Renderer(MarkdownRenderer()).error(f"Invalid configuration: {exc}")
        raise typer.Exit(1) from exc


def _load(**overrides: object) -> tuple[Settings, SessionEngine, Renderer]:
    settings = _settings(**overrides)
    renderer = _build_renderer(settings)
    try:
        engine = build_engine(settings)
    except ConfigurationError as exc:
        renderer.error(str(exc))
        raise typer.Exit(1) from exc
    return settings, engine, renderer


@app.command()
def chat(
    model: ModelOption = None,
    max_tokens: MaxTokensOption = None,
    html_policy: HtmlPolicyOption = None,
) -> None:
    """Start interactive chat."""
    settings, engine, renderer = _load(model=model, max_tokens=max_tokens, html_policy=html_policy)
    configure_logging(profile="chat", level=settings.log_level, console=renderer.console)
    asyncio.run(InteractiveCli(engine, renderer, model=settings.model).run())


@app.command()
def ask(
    text: Annotated[str, typer.Argument(help="Message to send.")],
    model: ModelOption = None,
    max_tokens: MaxTokensOption = None,
    html_policy: HtmlPolicyOption = None,
) -> None:
    """Send a single message and print the reply."""
    settings, engine, renderer = _load(model=model, max_tokens=max_tokens, html_policy=html_policy)
    configure_logging(level=settings.log_level)
    result = asyncio.run(engine.submit(text))
    if result.status is TurnStatus.REJECTED_INVALID:
        renderer.error("Message is empty.")
        raise typer.Exit(1)
    renderer.assistant_message(result.assistant_text)
    if not result.ok:
        renderer.error(result.error or "turn failed")
        raise typer.Exit(1)


@app.command()
def render(
    path: Annotated[Path, typer.Argument(exists=True, dir_okay=False, readable=True, help="Markdown file.")],
    html: Annotated[bool, typer.Option("--html", help="Print sanitized HTML instead of terminal output.")] = False,
    html_policy: HtmlPolicyOption = None,
) -> None:
    """Render a markdown file the way assistant replies are rendered."""
    settings = _settings(html_policy=html_policy)
    configure_logging(level=settings.log_level)
    renderer = _build_renderer(settings)
    content = path.read_text(encoding="utf-8")
    if html:
        document = MarkdownRenderer(settings.html_policy).render_safe(content)
        typer.echo(render_html(document))
        return
    renderer.console.print(renderer.markdown(content))


if __name__ == "__main__":
    app()
