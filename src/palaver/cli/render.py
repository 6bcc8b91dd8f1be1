"""CLI renderer for palaver."""

from __future__ import annotations

from prompt_toolkit import PromptSession
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.patch_stdout import patch_stdout
from rich.console import Console, RenderableType
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.spinner import Spinner
from rich.table import Table

from palaver.render import ConsoleRenderer, MarkdownRenderer
from palaver.session.models import Role, SessionSnapshot

REFRESH_PER_SECOND = 12
ASSISTANT_TITLE = "[bold green]Assistant[/bold green]"


def _prompt_bindings() -> KeyBindings:
    bindings = KeyBindings()

    @bindings.add("escape", "enter")
    def _newline(event) -> None:  # type: ignore[no-untyped-def]
        event.current_buffer.insert_text("\n")

    return bindings


class Renderer:
    """CLI renderer using Rich for terminal output."""

    def __init__(
        self,
        markdown: MarkdownRenderer,
        *,
        console: Console | None = None,
        code_theme: str = "monokai",
    ) -> None:
        self.console: Console = console or Console()
        self._markdown = markdown
        self._blocks = ConsoleRenderer(code_theme=code_theme)
        self._prompt_session: PromptSession[str] | None = None

    def info(self, message: str) -> None:
        """Render an info message."""
        self.console.print(message)

    def error(self, message: str) -> None:
        """Render an error message."""
        self.console.print(f"[bold red]Error:[/bold red] {escape(message)}", highlight=False)

    def welcome(self, model: str) -> None:
        """Render welcome message."""
        self.console.print("[bold blue]palaver[/bold blue] - talk it through.")
        if model:
            self.console.print(f"[bold]Model:[/bold] [magenta]{escape(model)}[/magenta]")
        self.console.print("[dim]Enter sends, Esc+Enter adds a line. /help lists commands.[/dim]")

    def help(self) -> None:
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Command", style="bold green", width=12)
        table.add_column("Description", style="dim")
        table.add_row("/quit /exit", "End the session")
        table.add_row("/reset", "Clear conversation history")
        table.add_row("/help", "Show this help")
        table.add_row("Ctrl+C", "Cancel a streaming reply")
        self.console.print(table)

    def markdown(self, content: str) -> RenderableType:
        return self._blocks.to_renderable(self._markdown.render_safe(content))

    def assistant_panel(self, content: str) -> Panel:
        return Panel(
            self.markdown(content),
            title=ASSISTANT_TITLE,
            title_align="left",
            border_style="green",
            padding=(0, 1),
        )

    def assistant_message(self, content: str) -> None:
        """Render a finished assistant message."""
        self.console.print(self.assistant_panel(content))

    def turn_view(self) -> TurnView:
        return TurnView(self)

    async def get_user_input(self) -> str:
        """Prompt user for input."""
        if self._prompt_session is None:
            self._prompt_session = PromptSession(key_bindings=_prompt_bindings())
        with patch_stdout(raw=True):
            return await self._prompt_session.prompt_async("> ")


class TurnView:
    """Live view of the assistant message of the running turn."""

    def __init__(self, renderer: Renderer) -> None:
        self._renderer = renderer
        self._live = Live(
            Spinner("dots", text="Thinking..."),
            console=renderer.console,
            refresh_per_second=REFRESH_PER_SECOND,
            transient=False,
        )

    def __enter__(self) -> TurnView:
        self._live.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._live.stop()

    def update(self, snapshot: SessionSnapshot) -> None:
        message = snapshot.last_message
        if message is None or message.role is not Role.ASSISTANT:
            return
        if snapshot.awaiting_response and not message.content:
            self._live.update(Spinner("dots", text="Thinking..."))
            return
        self._live.update(self._renderer.assistant_panel(message.content), refresh=True)
