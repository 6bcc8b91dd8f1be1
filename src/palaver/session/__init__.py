"""Conversational session engine."""

from palaver.session.controller import StreamingTurnController
from palaver.session.engine import SessionEngine, current_session
from palaver.session.history import ContextHistoryStore
from palaver.session.models import (
    ContextRole,
    ContextTurn,
    Message,
    Role,
    SessionSnapshot,
    TurnResult,
    TurnState,
    TurnStatus,
)
from palaver.session.transcript import TranscriptStore

__all__ = [
    "ContextHistoryStore",
    "ContextRole",
    "ContextTurn",
    "Message",
    "Role",
    "SessionEngine",
    "SessionSnapshot",
    "StreamingTurnController",
    "TranscriptStore",
    "TurnResult",
    "TurnState",
    "TurnStatus",
    "current_session",
]
