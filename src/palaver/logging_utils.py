"""Loguru setup for the command-line entry points."""

from __future__ import annotations

import sys
from logging import Handler
from typing import Literal

import loguru
from loguru import logger
from rich.console import Console
from rich.logging import RichHandler

from palaver.session.engine import current_session

LogProfile = Literal["default", "chat"]

_FORMATS: dict[LogProfile, str] = {
    "chat": "{extra[session]} | {message}",
    "default": "{time:HH:mm:ss.SSS} | {level:<7} | {extra[session]} | {name}:{line} | {message}",
}
_active: tuple[LogProfile, str] | None = None


def _bind_session(record: loguru.Record) -> None:
    record["extra"]["session"] = current_session()


def _stderr_sink(message: loguru.Message) -> None:
    sys.stderr.write(message)


def _chat_handler(console: Console | None) -> Handler:
    # Records printed through the Live console are placed above the live region.
    return RichHandler(
        console=console or Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )


def configure_logging(*, profile: LogProfile = "default", level: str = "WARNING", console: Console | None = None) -> bool:
    """Route loguru records for one CLI profile.

    ``chat`` logs through rich on the console that owns the live view;
    ``default`` writes plain lines to stderr so stdout stays clean for
    piped output. Returns False when the same profile and level are
    already in place.
    """
    global _active
    level = level.upper()
    if _active == (profile, level) and console is None:
        return False

    logger.remove()
    sink = _chat_handler(console) if profile == "chat" else _stderr_sink
    logger.add(sink, level=level, format=_FORMATS[profile], backtrace=False, diagnose=False)
    logger.configure(patcher=_bind_session)
    _active = (profile, level)
    return True
