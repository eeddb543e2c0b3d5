"""Core agent loop: capabilities, tool execution, stream decoding, orchestration."""

from .capabilities import Capability, CapabilityDescriptor, CAPABILITIES, tool_schemas
from .tool_executor import ToolExecutor, ToolResult
from .stream import StreamDecoder, TextDelta, ToolCallsDelta
from .orchestrator import (
    Conversation,
    ConversationOrchestrator,
    ConversationResult,
    OrchestratorState,
)

__all__ = [
    "Capability",
    "CapabilityDescriptor",
    "CAPABILITIES",
    "tool_schemas",
    "ToolExecutor",
    "ToolResult",
    "StreamDecoder",
    "TextDelta",
    "ToolCallsDelta",
    "Conversation",
    "ConversationOrchestrator",
    "ConversationResult",
    "OrchestratorState",
]
