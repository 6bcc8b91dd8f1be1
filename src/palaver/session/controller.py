"""Streaming turn controller."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from typing import Any

from loguru import logger

from palaver.errors import BusyError, ConnectorError, InvalidInputError
from palaver.session.history import ContextHistoryStore
from palaver.session.models import TurnResult, TurnState, TurnStatus
from palaver.session.transcript import TranscriptStore
from palaver.types import GenerationConfig, GenerationConnector

DEFAULT_ERROR_TEXT = "Sorry, there was an error processing your request."
DEFAULT_CANCELLED_TEXT = "Response cancelled."


class _TurnCancelled(Exception):
    pass


class StreamingTurnController:
    """Runs one turn at a time against a generation connector.

    The transcript is updated on every chunk. The context history is only
    committed once the stream has completed, so a failed or cancelled turn
    never leaks partial text into the next prompt.
    """

    def __init__(
        self,
        *,
        transcript: TranscriptStore,
        history: ContextHistoryStore,
        connector: GenerationConnector,
        config: GenerationConfig,
        error_text: str = DEFAULT_ERROR_TEXT,
        cancelled_text: str = DEFAULT_CANCELLED_TEXT,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._transcript = transcript
        self._history = history
        self._connector = connector
        self._config = config
        self._error_text = error_text
        self._cancelled_text = cancelled_text
        self._on_change = on_change
        self._state = TurnState.IDLE
        self._cancel_event: asyncio.Event | None = None
        self._chunks = 0
        self.last_error: str | None = None

    @property
    def state(self) -> TurnState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state is not TurnState.IDLE

    @property
    def awaiting_response(self) -> bool:
        return self._state in (TurnState.AWAITING_FIRST_CHUNK, TurnState.STREAMING)

    def cancel(self) -> bool:
        """Request cancellation of the in-flight turn. Returns False when idle."""
        if self._cancel_event is None or not self.busy:
            return False
        self._cancel_event.set()
        return True

    async def run_turn(self, text: str) -> TurnResult:
        user_text = text.strip()
        if not user_text:
            raise InvalidInputError("message is empty")
        if self.busy:
            raise BusyError(f"turn in progress: state={self._state.value}")

        self._transcript.append_user(user_text)
        self._transcript.open_assistant_turn()
        prompt = self._history.snapshot_for_prompt(user_text)
        self._cancel_event = asyncio.Event()
        self._chunks = 0
        self.last_error = None
        self._state = TurnState.AWAITING_FIRST_CHUNK
        logger.info("turn.start history={} chars={}", len(prompt) - 1, len(user_text))

        try:
            self._notify()
            await self._consume(self._connector.stream(prompt, self._config))
        except _TurnCancelled:
            return self._fail(user_text, TurnStatus.CANCELLED, "cancelled", self._cancelled_text)
        except asyncio.CancelledError:
            self._fail(user_text, TurnStatus.CANCELLED, "cancelled", self._cancelled_text)
            raise
        except Exception as exc:
            logger.exception("turn.connector.error")
            return self._fail(user_text, TurnStatus.FAILED, _describe(exc), self._error_text)
        else:
            if self._chunks == 0:
                empty = ConnectorError("stream completed without text", kind="empty_response")
                return self._fail(user_text, TurnStatus.FAILED, str(empty), self._error_text)
            return self._finalize(user_text)
        finally:
            self._cancel_event = None
            self._state = TurnState.IDLE

    async def _consume(self, stream: AsyncIterator[str]) -> None:
        try:
            while True:
                has_chunk, chunk = await self._next_chunk(stream)
                if not has_chunk:
                    return
                self._apply_chunk(chunk)
        finally:
            await _close_stream(stream)

    async def _next_chunk(self, stream: AsyncIterator[str]) -> tuple[bool, str]:
        assert self._cancel_event is not None
        if self._cancel_event.is_set():
            raise _TurnCancelled
        pull = asyncio.ensure_future(_pull(stream))
        cancel = asyncio.ensure_future(self._cancel_event.wait())
        try:
            done, _ = await asyncio.wait({pull, cancel}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancel.cancel()
            if not pull.done():
                pull.cancel()
                await asyncio.gather(pull, return_exceptions=True)
        if pull not in done:
            raise _TurnCancelled
        return pull.result()

    def _apply_chunk(self, chunk: str) -> None:
        if not isinstance(chunk, str):
            raise ConnectorError(f"chunk must be str, got {type(chunk).__name__}", kind="invalid_chunk")
        self._transcript.append_chunk(chunk)
        self._chunks += 1
        if self._state is TurnState.AWAITING_FIRST_CHUNK:
            self._state = TurnState.STREAMING
        self._notify()

    def _finalize(self, user_text: str) -> TurnResult:
        message = self._transcript.close_turn()
        assert message is not None
        self._history.commit(user_text, message.content)
        self._state = TurnState.FINALIZED
        logger.info("turn.finish chunks={} chars={}", self._chunks, len(message.content))
        self._notify()
        return TurnResult(
            TurnStatus.COMPLETED,
            user_text=user_text,
            assistant_text=message.content,
            chunks=self._chunks,
        )

    def _fail(self, user_text: str, status: TurnStatus, error: str, visible_text: str) -> TurnResult:
        partial = self._transcript.open_content
        self._transcript.replace_open_turn(visible_text)
        self._state = TurnState.FAILED
        self.last_error = error
        if status is TurnStatus.CANCELLED:
            logger.info("turn.cancelled chunks={} partial_chars={}", self._chunks, len(partial))
        else:
            logger.warning("turn.failed chunks={} error={}", self._chunks, error)
        self._notify()
        return TurnResult(status, user_text=user_text, assistant_text=visible_text, chunks=self._chunks, error=error)

    def _notify(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change()
        except Exception:
            logger.exception("turn.listener.error")


async def _pull(stream: AsyncIterator[str]) -> tuple[bool, str]:
    try:
        return True, await anext(stream)
    except StopAsyncIteration:
        return False, ""


async def _close_stream(stream: Any) -> None:
    aclose = getattr(stream, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception:
        logger.opt(exception=True).warning("turn.stream.close_failed")


def _describe(exc: BaseException) -> str:
    if isinstance(exc, ConnectorError):
        return str(exc)
    message = str(exc)
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__
