"""Terminal presentation for ollama-cli."""

from .terminal import TerminalUI

__all__ = ["TerminalUI"]
