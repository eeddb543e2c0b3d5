"""
LLM Providers - Abstract interface for chat backends

Supported:
- Ollama (local or remote /api/chat)
"""

from .base import BaseProvider, Message, ToolCallRequest
from .ollama import OllamaProvider

PROVIDERS = {
    "ollama": OllamaProvider,
}


def get_provider(name: str, **kwargs) -> BaseProvider:
    """Get a provider instance by name."""
    if name not in PROVIDERS:
        raise ValueError(f"Unknown provider: {name}. Available: {list_providers()}")
    return PROVIDERS[name](**kwargs)


def list_providers() -> list[str]:
    """List available provider names."""
    return list(PROVIDERS.keys())


__all__ = [
    "BaseProvider",
    "Message",
    "ToolCallRequest",
    "OllamaProvider",
    "get_provider",
    "list_providers",
]
