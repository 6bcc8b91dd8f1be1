"""Republic-backed generation connector."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence
from typing import Any

from loguru import logger
from republic import LLM

from palaver.config import Settings
from palaver.errors import ConnectorError
from palaver.session.models import ContextRole, ContextTurn
from palaver.types import GenerationConfig

_ROLE_NAMES: dict[ContextRole, str] = {
    ContextRole.USER: "user",
    ContextRole.MODEL: "assistant",
}
_JSON_MODES = frozenset({"application/json", "json"})


def build_llm(settings: Settings) -> LLM:
    """Build Republic LLM client configured for palaver."""

    return LLM(
        settings.require_model(),
        api_key=settings.resolved_api_key,
        api_base=settings.api_base,
    )


def to_messages(turns: Sequence[ContextTurn]) -> list[dict[str, str]]:
    return [{"role": _ROLE_NAMES[turn.role], "content": turn.content} for turn in turns]


def request_params(config: GenerationConfig) -> dict[str, Any]:
    params: dict[str, Any] = {
        "max_tokens": config.max_output_tokens,
        "temperature": config.temperature,
        "top_p": config.top_p,
    }
    if config.top_k is not None:
        params["top_k"] = config.top_k
    if config.output_mode.casefold() in _JSON_MODES:
        params["response_format"] = {"type": "json_object"}
    return params


class RepublicConnector:
    """Streams text deltas from a Republic `LLM`.

    Error events, a missing final event and `stream.error` are all raised as
    `ConnectorError`. `timeout_seconds` bounds the wait for each event, not
    the whole reply.
    """

    def __init__(self, llm: LLM, *, timeout_seconds: float | None = None) -> None:
        self._llm = llm
        self._timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> RepublicConnector:
        return cls(build_llm(settings), timeout_seconds=settings.timeout_seconds)

    async def stream(self, turns: Sequence[ContextTurn], config: GenerationConfig) -> AsyncIterator[str]:
        messages = to_messages(turns)
        logger.debug("connector.request messages={}", len(messages))
        try:
            async with asyncio.timeout(self._timeout_seconds):
                stream = await self._llm.stream_events_async(messages=messages, **request_params(config))
        except TimeoutError as exc:
            raise self._timeout_error() from exc

        events = aiter(stream)
        final_event: dict[str, Any] | None = None
        while True:
            try:
                async with asyncio.timeout(self._timeout_seconds):
                    event = await anext(events)
            except StopAsyncIteration:
                break
            except TimeoutError as exc:
                raise self._timeout_error() from exc

            kind = getattr(event, "kind", None)
            data = getattr(event, "data", None)
            if not isinstance(data, dict):
                continue
            if kind == "text":
                delta = data.get("delta")
                if isinstance(delta, str) and delta:
                    yield delta
            elif kind == "error":
                raise _error_from_event(data)
            elif kind == "final":
                final_event = data

        stream_error = getattr(stream, "error", None)
        if stream_error is not None:
            raise _error_from_stream(stream_error)
        if final_event is None:
            raise ConnectorError("missing final event", kind="stream_events_error")
        if final_event.get("ok") is False:
            raise ConnectorError("model reported failure", kind="stream_events_error")

    def _timeout_error(self) -> ConnectorError:
        return ConnectorError(f"no response within {self._timeout_seconds}s", kind="model_timeout")


def _error_from_event(data: dict[str, Any]) -> ConnectorError:
    kind = data.get("kind")
    message = data.get("message")
    return ConnectorError(
        message if isinstance(message, str) else "unknown",
        kind=kind if isinstance(kind, str) else "stream_error",
    )


def _error_from_stream(error: object) -> ConnectorError:
    kind = getattr(error, "kind", None)
    message = getattr(error, "message", None)
    kind_value = getattr(kind, "value", kind)
    return ConnectorError(
        message if isinstance(message, str) else str(error),
        kind=kind_value if isinstance(kind_value, str) else "stream_error",
    )
