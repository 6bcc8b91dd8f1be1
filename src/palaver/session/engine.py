"""Session façade for the presentation layer."""

from __future__ import annotations

import uuid
from collections.abc import Callable
from contextvars import ContextVar

from loguru import logger

from palaver.errors import BusyError, InvalidInputError
from palaver.session.controller import DEFAULT_CANCELLED_TEXT, DEFAULT_ERROR_TEXT, StreamingTurnController
from palaver.session.history import ContextHistoryStore
from palaver.session.models import ContextTurn, Message, SessionSnapshot, TurnResult, TurnState, TurnStatus
from palaver.session.transcript import TranscriptStore
from palaver.types import GenerationConfig, GenerationConnector, SnapshotListener

_session_context: ContextVar[str] = ContextVar("session")


def current_session() -> str:
    """Get the id of the session whose turn is running in this context."""
    return _session_context.get("-")


class SessionEngine:
    """Owns one chat session: transcript, context history and turn controller.

    Callers only get `SessionSnapshot` values back; all mutation goes
    through `submit`, `cancel` and `reset`.
    """

    def __init__(
        self,
        connector: GenerationConnector,
        *,
        config: GenerationConfig | None = None,
        error_text: str = DEFAULT_ERROR_TEXT,
        cancelled_text: str = DEFAULT_CANCELLED_TEXT,
        session_id: str | None = None,
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self._transcript = TranscriptStore()
        self._history = ContextHistoryStore()
        self._listeners: list[SnapshotListener] = []
        self._controller = StreamingTurnController(
            transcript=self._transcript,
            history=self._history,
            connector=connector,
            config=config or GenerationConfig(),
            error_text=error_text,
            cancelled_text=cancelled_text,
            on_change=self._publish,
        )

    @property
    def transcript(self) -> tuple[Message, ...]:
        return self._transcript.messages()

    @property
    def history(self) -> tuple[ContextTurn, ...]:
        return self._history.turns()

    @property
    def state(self) -> TurnState:
        return self._controller.state

    @property
    def awaiting_response(self) -> bool:
        return self._controller.awaiting_response

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.session_id,
            transcript=self._transcript.messages(),
            history=self._history.turns(),
            state=self._controller.state,
            awaiting_response=self._controller.awaiting_response,
            last_error=self._controller.last_error,
        )

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a snapshot listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def submit(self, text: str) -> TurnResult:
        """Run one turn. Rejections and failures come back as a `TurnResult`."""
        token = _session_context.set(self.session_id)
        try:
            return await self._controller.run_turn(text)
        except InvalidInputError:
            logger.debug("turn.rejected reason=blank")
            return TurnResult(TurnStatus.REJECTED_INVALID, error="message is empty")
        except BusyError as exc:
            logger.debug("turn.rejected reason=busy")
            return TurnResult(TurnStatus.REJECTED_BUSY, user_text=text.strip(), error=str(exc))
        finally:
            _session_context.reset(token)

    def cancel(self) -> bool:
        return self._controller.cancel()

    def reset(self) -> None:
        """Forget the conversation. Only allowed between turns."""
        if self._controller.busy:
            raise BusyError("cannot reset while a turn is in progress")
        self._transcript.clear()
        self._history.clear()
        self._controller.last_error = None
        logger.info("session.reset session={}", self.session_id)
        self._publish()

    def _publish(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("session.listener.error")
