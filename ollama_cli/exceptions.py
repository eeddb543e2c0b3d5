"""Exception types shared across ollama-cli."""

from typing import Optional


class OllamaCliError(Exception):
    """Base class for all ollama-cli errors."""


class ProviderError(OllamaCliError):
    """The model endpoint could not be reached or answered with a failure."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StreamError(ProviderError):
    """The endpoint reported an error inside the response stream."""


class UnknownCapabilityError(OllamaCliError, KeyError):
    """A tool name that is not part of the capability registry."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown tool: {self.name}"


class ShellCommandError(OllamaCliError):
    """A shell command exited non-zero or could not be run."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr
