"""Command-line interface."""

from palaver.cli.app import app
from palaver.cli.interactive import InteractiveCli
from palaver.cli.render import Renderer

__all__ = ["InteractiveCli", "Renderer", "app"]
