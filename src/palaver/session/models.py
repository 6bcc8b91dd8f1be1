"""Session data model."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ContextRole(str, Enum):
    USER = "user"
    MODEL = "model"


class TurnState(str, Enum):
    """Lifecycle of one turn inside the controller."""

    IDLE = "idle"
    AWAITING_FIRST_CHUNK = "awaiting_first_chunk"
    STREAMING = "streaming"
    FINALIZED = "finalized"
    FAILED = "failed"


class TurnStatus(str, Enum):
    """How a submission ended, as reported to the presentation layer."""

    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REJECTED_INVALID = "rejected_invalid"
    REJECTED_BUSY = "rejected_busy"


@dataclass(frozen=True)
class Message:
    """One visible transcript entry."""

    role: Role
    content: str


@dataclass(frozen=True)
class ContextTurn:
    """One backend-facing history entry."""

    role: ContextRole
    content: str


@dataclass(frozen=True)
class TurnResult:
    """Outcome of one `submit` call."""

    status: TurnStatus
    user_text: str = ""
    assistant_text: str = ""
    chunks: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is TurnStatus.COMPLETED

    @property
    def rejected(self) -> bool:
        return self.status in (TurnStatus.REJECTED_INVALID, TurnStatus.REJECTED_BUSY)


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of a session handed to the presentation layer."""

    session_id: str
    transcript: tuple[Message, ...]
    history: tuple[ContextTurn, ...]
    state: TurnState
    awaiting_response: bool
    last_error: str | None = None

    @property
    def last_message(self) -> Message | None:
        return self.transcript[-1] if self.transcript else None
