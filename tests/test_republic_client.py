import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest

from palaver.config import Settings
from palaver.errors import ConnectorError, InvalidModelFormatError
from palaver.integrations import republic_client
from palaver.integrations.republic_client import RepublicConnector, build_llm, request_params, to_messages
from palaver.session import ContextRole, ContextTurn, Message, Role, SessionEngine, TurnStatus
from palaver.types import GenerationConfig


@dataclass(frozen=True)
class FakeStreamEvent:
    kind: str
    data: dict[str, Any]


@dataclass(frozen=True)
class FakeStreamError:
    kind: str
    message: str


@dataclass
class FakeAsyncStreamEvents:
    events: list[FakeStreamEvent]
    error: object | None = None
    delay: float = 0.0

    def __aiter__(self):
        async def _iterator():
            for event in self.events:
                if self.delay:
                    await asyncio.sleep(self.delay)
                yield event

        return _iterator()


@dataclass
class FakeLLM:
    outputs: list[FakeAsyncStreamEvents]
    calls: list[dict[str, Any]] = field(default_factory=list)

    async def stream_events_async(self, **kwargs: Any) -> FakeAsyncStreamEvents:
        self.calls.append(kwargs)
        return self.outputs.pop(0)


def _text_stream(*deltas: str, ok: bool = True) -> FakeAsyncStreamEvents:
    events = [FakeStreamEvent("text", {"delta": delta}) for delta in deltas]
    events.append(FakeStreamEvent("final", {"text": "".join(deltas), "ok": ok}))
    return FakeAsyncStreamEvents(events=events)


async def _collect(connector: RepublicConnector, turns: tuple[ContextTurn, ...]) -> list[str]:
    return [chunk async for chunk in connector.stream(turns, GenerationConfig())]


def test_model_turns_are_sent_as_assistant_messages() -> None:
    turns = (
        ContextTurn(ContextRole.USER, "hello"),
        ContextTurn(ContextRole.MODEL, "Hi"),
        ContextTurn(ContextRole.USER, "next"),
    )

    assert to_messages(turns) == [
        {"role": "user", "content": "hello"},
        {"role": "assistant", "content": "Hi"},
        {"role": "user", "content": "next"},
    ]


def test_request_params_follow_generation_config() -> None:
    assert request_params(GenerationConfig()) == {
        "max_tokens": 8192,
        "temperature": 1.0,
        "top_p": 0.95,
        "top_k": 40,
    }
    json_params = request_params(GenerationConfig(top_k=None, output_mode="application/json"))
    assert "top_k" not in json_params
    assert json_params["response_format"] == {"type": "json_object"}


@pytest.mark.asyncio
async def test_stream_yields_text_deltas_in_order() -> None:
    llm = FakeLLM([_text_stream("Hi", "", " there")])
    connector = RepublicConnector(llm)  # type: ignore[arg-type]

    chunks = await _collect(connector, (ContextTurn(ContextRole.USER, "hello"),))

    assert chunks == ["Hi", " there"]
    assert llm.calls[0]["messages"] == [{"role": "user", "content": "hello"}]
    assert llm.calls[0]["max_tokens"] == 8192


@pytest.mark.asyncio
async def test_error_event_is_raised_after_partial_text() -> None:
    stream = FakeAsyncStreamEvents(
        events=[
            FakeStreamEvent("text", {"delta": "par"}),
            FakeStreamEvent("error", {"kind": "provider", "message": "quota exceeded"}),
            FakeStreamEvent("final", {"ok": False}),
        ]
    )
    connector = RepublicConnector(FakeLLM([stream]))  # type: ignore[arg-type]
    chunks: list[str] = []

    with pytest.raises(ConnectorError) as exc_info:
        async for chunk in connector.stream((ContextTurn(ContextRole.USER, "x"),), GenerationConfig()):
            chunks.append(chunk)

    assert chunks == ["par"]
    assert exc_info.value.kind == "provider"
    assert str(exc_info.value) == "provider: quota exceeded"


@pytest.mark.asyncio
async def test_stream_error_attribute_is_raised() -> None:
    stream = _text_stream("done")
    stream.error = FakeStreamError(kind="invalid_input", message="bad request")
    connector = RepublicConnector(FakeLLM([stream]))  # type: ignore[arg-type]

    with pytest.raises(ConnectorError, match="invalid_input: bad request"):
        await _collect(connector, (ContextTurn(ContextRole.USER, "x"),))


@pytest.mark.asyncio
async def test_missing_or_failed_final_event_is_an_error() -> None:
    missing = FakeAsyncStreamEvents(events=[FakeStreamEvent("text", {"delta": "a"})])
    failed = _text_stream("a", ok=False)
    connector = RepublicConnector(FakeLLM([missing, failed]))  # type: ignore[arg-type]
    turns = (ContextTurn(ContextRole.USER, "x"),)

    with pytest.raises(ConnectorError, match="missing final event"):
        await _collect(connector, turns)
    with pytest.raises(ConnectorError, match="model reported failure"):
        await _collect(connector, turns)


@pytest.mark.asyncio
async def test_slow_event_times_out() -> None:
    slow = FakeAsyncStreamEvents(events=[FakeStreamEvent("text", {"delta": "late"})], delay=1.0)
    connector = RepublicConnector(FakeLLM([slow]), timeout_seconds=0.01)  # type: ignore[arg-type]

    with pytest.raises(ConnectorError) as exc_info:
        await _collect(connector, (ContextTurn(ContextRole.USER, "x"),))

    assert exc_info.value.kind == "model_timeout"


@pytest.mark.asyncio
async def test_engine_reports_provider_errors_and_keeps_history_clean() -> None:
    failing = FakeAsyncStreamEvents(
        events=[
            FakeStreamEvent("text", {"delta": "par"}),
            FakeStreamEvent("error", {"kind": "provider", "message": "boom"}),
        ]
    )
    llm = FakeLLM([_text_stream("Hi"), failing, _text_stream("ok")])
    engine = SessionEngine(RepublicConnector(llm))  # type: ignore[arg-type]

    assert (await engine.submit("hello")).ok
    failed = await engine.submit("fail please")
    assert failed.status is TurnStatus.FAILED
    assert failed.error == "provider: boom"
    assert (await engine.submit("next")).ok

    assert engine.transcript[-1] == Message(Role.ASSISTANT, "ok")
    assert llm.calls[-1]["messages"] == [
        {"role": "user", "content": "hello"},
        {"role": "assistant", "content": "Hi"},
        {"role": "user", "content": "next"},
    ]


def test_build_llm_passes_model_and_credentials(monkeypatch) -> None:
    created: list[tuple[tuple[Any, ...], dict[str, Any]]] = []

    def fake_llm(*args: Any, **kwargs: Any) -> object:
        created.append((args, kwargs))
        return object()

    monkeypatch.setattr(republic_client, "LLM", fake_llm)

    build_llm(Settings(model="openai:gpt-4o-mini", api_key="sk-test", api_base="http://localhost:8080"))

    assert created == [
        (("openai:gpt-4o-mini",), {"api_key": "sk-test", "api_base": "http://localhost:8080"}),
    ]


def test_build_llm_rejects_malformed_model(monkeypatch) -> None:
    monkeypatch.setattr(republic_client, "LLM", lambda *args, **kwargs: object())

    with pytest.raises(InvalidModelFormatError):
        build_llm(Settings(model="gpt-4o-mini", api_key="sk-test"))
