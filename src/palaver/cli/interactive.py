"""Interactive chat loop."""

from __future__ import annotations

import asyncio
import contextlib
import signal
from collections.abc import Iterator

from loguru import logger

from palaver.cli.render import Renderer
from palaver.errors import BusyError
from palaver.session import SessionEngine, TurnResult, TurnStatus

QUIT_COMMANDS = frozenset({"/quit", "/exit", "/q"})


class InteractiveCli:
    """Reads user input and streams replies until the user quits."""

    def __init__(self, engine: SessionEngine, renderer: Renderer, *, model: str = "") -> None:
        self._engine = engine
        self._renderer = renderer
        self._model = model

    async def run(self) -> None:
        self._renderer.welcome(self._model)
        while True:
            try:
                raw = await self._renderer.get_user_input()
            except (KeyboardInterrupt, EOFError):
                self._renderer.info("Goodbye!")
                return
            text = raw.strip()
            if not text:
                continue
            if text.startswith("/"):
                if self._handle_command(text):
                    self._renderer.info("Goodbye!")
                    return
                continue
            await self.run_turn(text)

    async def run_turn(self, text: str) -> TurnResult:
        with self._renderer.turn_view() as view:
            unsubscribe = self._engine.subscribe(view.update)
            try:
                with self._cancel_on_interrupt():
                    result = await self._engine.submit(text)
            finally:
                unsubscribe()
        if result.status is TurnStatus.FAILED and result.error:
            self._renderer.error(result.error)
        return result

    def _handle_command(self, command: str) -> bool:
        """Run a slash command. Returns True when the session should end."""
        name = command.split()[0].lower()
        if name in QUIT_COMMANDS:
            return True
        if name == "/reset":
            try:
                self._engine.reset()
            except BusyError as exc:
                self._renderer.error(str(exc))
            else:
                self._renderer.info("[yellow]Conversation history cleared.[/yellow]")
            return False
        if name == "/help":
            self._renderer.help()
            return False
        self._renderer.error(f"Unknown command: {name}")
        return False

    @contextlib.contextmanager
    def _cancel_on_interrupt(self) -> Iterator[None]:
        loop = asyncio.get_running_loop()
        installed = True
        try:
            loop.add_signal_handler(signal.SIGINT, self._engine.cancel)
        except (NotImplementedError, RuntimeError, ValueError):
            logger.debug("cli.sigint.unsupported")
            installed = False
        try:
            yield
        finally:
            if installed:
                loop.remove_signal_handler(signal.SIGINT)
