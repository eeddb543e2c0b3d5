"""Base provider interface and conversation message types."""

import json
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import AsyncIterator, Optional, List, Dict, Any, Union


@dataclass(frozen=True)
class ToolCallRequest:
    """A model-issued request to invoke one capability."""
    id: str
    name: str
    arguments: Union[str, Dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_wire(cls, call: dict) -> "ToolCallRequest":
        """Build from a stream entry: {id, function: {name, arguments}}."""
        func = call.get("function") or {}
        arguments = func.get("arguments")
        if arguments is None:
            arguments = {}
        call_id = call.get("id") or f"call_{uuid.uuid4().hex[:12]}"
        return cls(id=str(call_id), name=func.get("name", ""), arguments=arguments)

    def parse_arguments(self) -> Dict[str, Any]:
        """Decode the argument payload into a dict.

        Raises:
            ValueError: if the payload is not a JSON object
        """
        args = self.arguments
        if isinstance(args, str):
            if not args.strip():
                return {}
            try:
                args = json.loads(args)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON arguments for {self.name}: {e}") from e
        if not isinstance(args, dict):
            raise ValueError(f"Arguments for {self.name} must be an object, got {type(args).__name__}")
        return dict(args)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass
class Message:
    """A chat message."""
    role: str  # "user", "assistant", "tool", "system"
    content: Optional[str] = None
    tool_calls: List[ToolCallRequest] = field(default_factory=list)
    tool_call_id: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: Optional[str] = None, tool_calls: List[ToolCallRequest] = None) -> "Message":
        return cls(role="assistant", content=content or None, tool_calls=list(tool_calls or []))

    @classmethod
    def tool_result(cls, call: ToolCallRequest, content: str) -> "Message":
        return cls(role="tool", content=content, tool_call_id=call.id, name=call.name)

    def to_dict(self) -> dict:
        """Serialize to the /api/chat wire shape, omitting absent fields."""
        data: Dict[str, Any] = {"role": self.role}
        if self.content is not None:
            data["content"] = self.content
        elif self.role != "assistant":
            data["content"] = ""
        if self.tool_calls:
            data["tool_calls"] = [c.to_dict() for c in self.tool_calls]
        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id
        if self.name is not None:
            data["name"] = self.name
        return data


class BaseProvider(ABC):
    """Abstract base class for streaming chat endpoints."""

    name: str = "base"

    def __init__(self, model: str = None, **kwargs):
        self.model = model
        self.kwargs = kwargs

    @abstractmethod
    def stream_chat(
        self,
        messages: List[Message],
        tools: List[dict] = None,
    ) -> AsyncIterator[bytes]:
        """
        Send the full conversation and stream back the raw response body.

        Args:
            messages: Conversation history
            tools: Tool schemas the model may call

        Yields:
            Raw body chunks as they arrive (line-delimited JSON)

        Raises:
            ProviderError: on connection failure or non-success status
        """

    @abstractmethod
    async def list_models(self) -> List[str]:
        """List available models for this provider."""

    async def is_configured(self) -> bool:
        """Check if provider is reachable."""
        return True

    def get_config_help(self) -> str:
        """Get help text for configuring this provider."""
        return f"{self.name} provider"

    async def aclose(self):
        """Release any network resources."""
