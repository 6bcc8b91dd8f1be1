"""Visible message transcript."""

from __future__ import annotations

from palaver.errors import InvalidInputError, NoOpenTurnError, TurnAlreadyOpenError
from palaver.session.models import Message, Role


class TranscriptStore:
    """Ordered list of visible messages with at most one open assistant entry.

    Closed messages are immutable. The open assistant entry is a list of
    chunk parts; readers always get a joined `Message` snapshot.
    """

    def __init__(self) -> None:
        self._closed: list[Message] = []
        self._open_parts: list[str] | None = None

    @property
    def has_open_turn(self) -> bool:
        return self._open_parts is not None

    @property
    def open_content(self) -> str:
        if self._open_parts is None:
            raise NoOpenTurnError("no assistant turn is open")
        return "".join(self._open_parts)

    def append_user(self, text: str) -> Message:
        if not text.strip():
            raise InvalidInputError("message is empty")
        message = Message(Role.USER, text)
        self._closed.append(message)
        return message

    def open_assistant_turn(self) -> None:
        if self._open_parts is not None:
            raise TurnAlreadyOpenError("an assistant turn is already open")
        self._open_parts = []

    def append_chunk(self, text: str) -> None:
        if self._open_parts is None:
            raise NoOpenTurnError("no assistant turn is open")
        self._open_parts.append(text)

    def close_turn(self) -> Message | None:
        if self._open_parts is None:
            return None
        message = Message(Role.ASSISTANT, "".join(self._open_parts))
        self._closed.append(message)
        self._open_parts = None
        return message

    def replace_open_turn(self, text: str) -> Message:
        if self._open_parts is None:
            raise NoOpenTurnError("no assistant turn is open")
        self._open_parts = [text]
        message = self.close_turn()
        assert message is not None
        return message

    def clear(self) -> None:
        if self._open_parts is not None:
            raise TurnAlreadyOpenError("cannot clear while an assistant turn is open")
        self._closed.clear()

    def messages(self) -> tuple[Message, ...]:
        if self._open_parts is None:
            return tuple(self._closed)
        return (*self._closed, Message(Role.ASSISTANT, "".join(self._open_parts)))

    def last(self) -> Message | None:
        if self._open_parts is not None:
            return Message(Role.ASSISTANT, "".join(self._open_parts))
        return self._closed[-1] if self._closed else None

    def __len__(self) -> int:
        return len(self._closed) + (1 if self._open_parts is not None else 0)
