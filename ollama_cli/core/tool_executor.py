"""
Async tool executor with progress events.

Runs capability handlers one at a time, wrapping the synchronous
handlers with asyncio.to_thread(). Every failure (unknown tool, bad
arguments, I/O error, failing shell command) becomes an error result;
nothing raises past execute() except task cancellation.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Any, List, Union, Dict
from enum import Enum

from .capabilities import Capability, HANDLERS, get_descriptor, lookup
from ..exceptions import UnknownCapabilityError
from ..providers.base import ToolCallRequest

logger = logging.getLogger(__name__)

DECLINED_MESSAGE = "Tool call declined by user"


class EventType(Enum):
    """Types of events emitted during tool execution."""
    TOOL_START = "tool_start"
    TOOL_COMPLETE = "tool_complete"


@dataclass
class ToolResult:
    """Result of a single tool execution; exactly one of output/error is set."""
    tool_name: str
    args: dict
    output: Optional[str] = None
    error: Optional[str] = None
    duration: float = 0.0
    tool_call_id: Optional[str] = None

    def __post_init__(self):
        if (self.output is None) == (self.error is None):
            raise ValueError("ToolResult needs exactly one of output or error")

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def content(self) -> str:
        """Text fed back to the model."""
        return self.output if self.success else self.error

    def to_dict(self) -> dict:
        return {"output": self.output} if self.success else {"error": self.error}


@dataclass
class ToolEvent:
    """Event emitted during tool execution."""
    event_type: EventType
    tool_name: str
    args: dict = field(default_factory=dict)
    result: Optional[ToolResult] = None
    tool_call_id: Optional[str] = None
    display: str = ""


def format_tool_display(tool_name: str, args: dict) -> str:
    """Short one-line description of a tool call."""
    args_str = ", ".join(f"{k}={repr(v)[:50]}" for k, v in (args or {}).items())
    return f"{tool_name}({args_str})"


class ToolExecutor:
    """
    Executes capability calls with progress callbacks.

    Usage:
        executor = ToolExecutor(shell_timeout=60)
        executor.on_tool_start(lambda e: print(f"Starting {e.tool_name}"))
        results = await executor.execute_all(tool_calls)
    """

    def __init__(
        self,
        shell_timeout: Optional[float] = 60.0,
        approve: Callable[[ToolCallRequest], Any] = None,
        handlers: Dict[Capability, Callable[..., str]] = None,
    ):
        self.shell_timeout = shell_timeout
        self.approve = approve
        self.handlers = dict(handlers or HANDLERS)
        self._on_start: Optional[Callable] = None
        self._on_complete: Optional[Callable] = None

    def on_tool_start(self, callback: Callable[[ToolEvent], Any]):
        """Register callback for tool start events."""
        self._on_start = callback

    def on_tool_complete(self, callback: Callable[[ToolEvent], Any]):
        """Register callback for tool completion events."""
        self._on_complete = callback

    async def _emit(self, callback: Optional[Callable], event: ToolEvent):
        if callback:
            result = callback(event)
            if asyncio.iscoroutine(result):
                await result

    def _options_for(self, capability: Capability) -> dict:
        """Host-side keyword options that the model never sets."""
        if capability is Capability.RUN_SHELL_COMMAND:
            return {"timeout": self.shell_timeout}
        return {}

    @staticmethod
    def _check_arguments(name: str, args: dict):
        descriptor = get_descriptor(name)
        missing = [p for p in descriptor.required if args.get(p) is None]
        if missing:
            raise TypeError(f"{name}: missing required argument(s): {', '.join(missing)}")
        unexpected = [k for k in args if k not in descriptor.parameter_names]
        if unexpected:
            raise TypeError(f"{name}: unexpected argument(s): {', '.join(unexpected)}")

    async def _is_approved(self, request: ToolCallRequest) -> bool:
        if self.approve is None or request.name != Capability.RUN_SHELL_COMMAND.value:
            return True
        answer = self.approve(request)
        if asyncio.iscoroutine(answer):
            answer = await answer
        return bool(answer)

    async def execute(
        self,
        tool_name: str,
        args: Union[dict, str, None] = None,
        tool_call_id: Optional[str] = None,
    ) -> ToolResult:
        """Execute one capability call; never raises on tool failure."""
        request = ToolCallRequest(id=tool_call_id or "", name=tool_name, arguments=args or {})
        return await self.execute_request(request, tool_call_id=tool_call_id)

    async def execute_request(
        self,
        request: ToolCallRequest,
        tool_call_id: Optional[str] = None,
    ) -> ToolResult:
        """Execute a ToolCallRequest captured from the model stream."""
        call_id = tool_call_id if tool_call_id is not None else (request.id or None)
        start = time.time()

        try:
            args = request.parse_arguments()
        except ValueError as e:
            args = {}
            parse_error = str(e)
        else:
            parse_error = None

        await self._emit(self._on_start, ToolEvent(
            event_type=EventType.TOOL_START,
            tool_name=request.name,
            args=args,
            tool_call_id=call_id,
            display=format_tool_display(request.name, args),
        ))

        try:
            if parse_error:
                raise ValueError(parse_error)
            capability = lookup(request.name)
            handler = self.handlers[capability]
            self._check_arguments(capability.value, args)
            if not await self._is_approved(request):
                result = ToolResult(request.name, args, error=DECLINED_MESSAGE, tool_call_id=call_id)
            else:
                logger.debug(f"Calling {format_tool_display(request.name, args)}")
                output = await asyncio.to_thread(handler, **args, **self._options_for(capability))
                result = ToolResult(
                    request.name, args,
                    output=str(output) if output is not None else "",
                    tool_call_id=call_id,
                )
        except UnknownCapabilityError as e:
            logger.warning(str(e))
            result = ToolResult(request.name, args, error=str(e), tool_call_id=call_id)
        except Exception as e:
            logger.debug(f"{request.name} failed: {e}")
            result = ToolResult(request.name, args, error=str(e) or type(e).__name__, tool_call_id=call_id)

        result.duration = time.time() - start

        await self._emit(self._on_complete, ToolEvent(
            event_type=EventType.TOOL_COMPLETE,
            tool_name=request.name,
            args=args,
            result=result,
            tool_call_id=call_id,
            display=format_tool_display(request.name, args),
        ))
        return result

    async def execute_all(self, tool_calls: List[ToolCallRequest]) -> List[ToolResult]:
        """
        Execute tool calls sequentially, in the order given.

        Later calls may depend on the side effects of earlier ones
        (write then read), so calls are never run concurrently.
        """
        results = []
        for call in tool_calls:
            results.append(await self.execute_request(call))
        return results
