"""palaver - chat with a streaming model from the terminal."""

from palaver.render import HtmlPolicy, MarkdownRenderer
from palaver.session import SessionEngine, TurnResult, TurnStatus
from palaver.types import GenerationConfig, GenerationConnector

__version__ = "0.1.0"

__all__ = [
    "GenerationConfig",
    "GenerationConnector",
    "HtmlPolicy",
    "MarkdownRenderer",
    "SessionEngine",
    "TurnResult",
    "TurnStatus",
]
