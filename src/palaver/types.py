"""Boundary contracts shared by the session core and its collaborators."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, TypeAlias

if TYPE_CHECKING:
    from palaver.session.models import ContextTurn, SessionSnapshot

SnapshotListener: TypeAlias = "Callable[[SessionSnapshot], None]"


@dataclass(frozen=True)
class GenerationConfig:
    """Sampling parameters passed to the generation connector."""

    temperature: float = 1.0
    top_p: float = 0.95
    top_k: int | None = 40
    max_output_tokens: int = 8192
    output_mode: str = "text/plain"


class GenerationConnector(Protocol):
    """Produces text chunks for one prompt.

    The returned iterator completes normally, raises `ConnectorError`, or is
    closed early by the consumer through `aclose()`.
    """

    def stream(self, turns: Sequence[ContextTurn], config: GenerationConfig) -> AsyncIterator[str]: ...
