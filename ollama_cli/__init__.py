"""
ollama-cli - Tool-calling chat agent for Ollama models

Lets a local model read and write files, list directories and run
shell commands while it answers:
- Streaming chat over Ollama's /api/chat endpoint
- Native tool calling with a fixed capability set
- Direct tool commands that bypass the model
"""

__version__ = "0.1.0"

from pathlib import Path


# User data directory (for config)
def get_data_dir() -> Path:
    """Get the user data directory for ollama-cli."""
    import os

    # Check for custom data dir
    custom_dir = os.environ.get("OLLAMA_CLI_DATA_DIR")
    if custom_dir:
        return Path(custom_dir)

    # Default to ~/.ollama-cli
    return Path.home() / ".ollama-cli"


def ensure_data_dir() -> Path:
    """Ensure the data directory exists with required structure."""
    data_dir = get_data_dir()
    (data_dir / "config").mkdir(parents=True, exist_ok=True)
    return data_dir
