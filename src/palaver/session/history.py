"""Backend-facing context history."""

from __future__ import annotations

from palaver.session.models import ContextRole, ContextTurn


class ContextHistoryStore:
    """Completed turns used to build prompts.

    The history is held as a tuple and replaced wholesale on commit, so a
    reader sees either both halves of a turn or neither.
    """

    def __init__(self) -> None:
        self._turns: tuple[ContextTurn, ...] = ()

    def commit(self, user_text: str, assistant_text: str) -> None:
        self._turns = (
            *self._turns,
            ContextTurn(ContextRole.USER, user_text),
            ContextTurn(ContextRole.MODEL, assistant_text),
        )

    def snapshot_for_prompt(self, next_user_text: str) -> tuple[ContextTurn, ...]:
        return (*self._turns, ContextTurn(ContextRole.USER, next_user_text))

    def turns(self) -> tuple[ContextTurn, ...]:
        return self._turns

    def clear(self) -> None:
        self._turns = ()

    def __len__(self) -> int:
        return len(self._turns)
