import io

import pytest
from fakes import FakeConnector, Script
from loguru import logger
from rich.console import Console

from palaver import logging_utils
from palaver.logging_utils import configure_logging
from palaver.session import SessionEngine


@pytest.fixture(autouse=True)
def _reset_logging(monkeypatch) -> None:
    monkeypatch.setattr(logging_utils, "_active", None)
    yield
    logger.remove()


def test_same_profile_and_level_is_configured_once() -> None:
    assert configure_logging(level="info") is True
    assert configure_logging(level="INFO") is False
    assert configure_logging(level="debug") is True
    assert configure_logging(profile="chat", level="debug") is True


def test_default_profile_writes_to_current_stderr(capsys) -> None:
    configure_logging(level="INFO")

    logger.info("hello from test")

    assert "hello from test" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_chat_profile_tags_records_with_the_session() -> None:
    output = io.StringIO()
    configure_logging(profile="chat", level="INFO", console=Console(file=output, width=200))
    engine = SessionEngine(FakeConnector(scripts=[Script(["ok"])]), session_id="sess42")

    await engine.submit("hello")
    logger.info("outside")

    lines = output.getvalue().splitlines()
    assert any("sess42 | turn.start" in line for line in lines)
    assert any("- | outside" in line for line in lines)
