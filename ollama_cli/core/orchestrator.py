"""
Conversation orchestrator: the tool-calling chat loop.

Flow per round:
1. Send the full history plus the tool schemas to the model (AWAITING_MODEL)
2. Decode the streamed reply, echoing text as it arrives
3. Commit the assistant turn (APPLYING_RESULT)
4. Run each requested tool in arrival order, one tool message per call
   (DISPATCHING_TOOLS), then go back to 1

The loop ends when the model answers without tool calls (DONE), returns
nothing at all (STALLED), the endpoint fails (FAILED) or the round cap is
reached (EXHAUSTED).
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .capabilities import tool_schemas
from .stream import StreamDecoder, TextDelta, decode_stream
from .tool_executor import ToolExecutor, ToolResult, ToolEvent
from ..config import Settings
from ..exceptions import ProviderError
from ..providers.base import BaseProvider, Message, ToolCallRequest

logger = logging.getLogger(__name__)


class OrchestratorState(Enum):
    AWAITING_MODEL = "awaiting_model"
    APPLYING_RESULT = "applying_result"
    DISPATCHING_TOOLS = "dispatching_tools"
    DONE = "done"
    STALLED = "stalled"
    FAILED = "failed"
    EXHAUSTED = "exhausted"

    @property
    def is_terminal(self) -> bool:
        return self in (
            OrchestratorState.DONE,
            OrchestratorState.STALLED,
            OrchestratorState.FAILED,
            OrchestratorState.EXHAUSTED,
        )


@dataclass
class Conversation:
    """Ordered, append-only message history for one top-level request."""
    messages: List[Message] = field(default_factory=list)

    def append(self, message: Message):
        self.messages.append(message)

    def extend(self, messages: List[Message]):
        self.messages.extend(messages)

    def to_wire(self) -> List[dict]:
        return [m.to_dict() for m in self.messages]

    def __len__(self) -> int:
        return len(self.messages)


@dataclass
class ConversationResult:
    """Final state of one orchestrator run."""
    state: OrchestratorState
    messages: List[Message]
    rounds: int
    final_text: str = ""
    error: Optional[str] = None
    tool_results: List[ToolResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state is OrchestratorState.DONE


class ConversationOrchestrator:
    """
    Drives one conversation between the model and the local tools.

    Usage:
        orchestrator = ConversationOrchestrator(provider, settings=settings, ui=ui)
        result = await orchestrator.run("What is in README.md?")
        if result.state is OrchestratorState.FAILED:
            print(result.error)
    """

    def __init__(
        self,
        provider: BaseProvider,
        executor: ToolExecutor = None,
        settings: Settings = None,
        ui=None,
    ):
        self.provider = provider
        self.settings = settings or Settings()
        self.ui = ui
        self.executor = executor or ToolExecutor(
            shell_timeout=self.settings.shell_timeout,
            approve=self._approve_shell if (self.settings.confirm_shell and ui) else None,
        )
        if ui is not None:
            self.executor.on_tool_complete(self._report_tool)
        self.tools = tool_schemas()
        self.state: Optional[OrchestratorState] = None

    def new_conversation(self, message: str) -> Conversation:
        conversation = Conversation()
        if self.settings.system_prompt:
            conversation.append(Message.system(self.settings.system_prompt))
        conversation.append(Message.user(message))
        return conversation

    async def run(self, message: str) -> ConversationResult:
        """Start a conversation from one user message and run it to completion."""
        return await self.run_conversation(self.new_conversation(message))

    async def run_conversation(self, conversation: Conversation) -> ConversationResult:
        """Run the loop on an existing conversation until a terminal state."""
        rounds = 0
        tool_results: List[ToolResult] = []
        max_rounds = self.settings.max_rounds

        def finish(state: OrchestratorState, text: str = "", error: str = None) -> ConversationResult:
            self.state = state
            return ConversationResult(
                state=state,
                messages=list(conversation.messages),
                rounds=rounds,
                final_text=text,
                error=error,
                tool_results=tool_results,
            )

        while True:
            if max_rounds and rounds >= max_rounds:
                logger.warning(f"Stopping after {rounds} rounds (max_rounds={max_rounds})")
                if self.ui:
                    self.ui.print_warning(f"Stopped after {rounds} rounds of tool calls (max rounds reached).")
                return finish(OrchestratorState.EXHAUSTED)

            rounds += 1
            self.state = OrchestratorState.AWAITING_MODEL
            logger.debug(f"Round {rounds}: sending {len(conversation)} messages")

            try:
                decoder = await self._stream_round(conversation)
            except ProviderError as e:
                logger.error(f"Round {rounds} failed: {e}")
                if self.ui:
                    self.ui.print_error(str(e))
                    self.ui.print_info(self.provider.get_config_help())
                return finish(OrchestratorState.FAILED, error=str(e))

            self.state = OrchestratorState.APPLYING_RESULT
            text = decoder.text
            calls = list(decoder.tool_calls)

            if not calls:
                if text:
                    conversation.append(Message.assistant(text))
                    return finish(OrchestratorState.DONE, text=text)
                logger.warning(f"Round {rounds}: model returned no text and no tool calls")
                if self.ui:
                    self.ui.print_warning("The model did not provide a text response or tool call.")
                return finish(OrchestratorState.STALLED)

            self.state = OrchestratorState.DISPATCHING_TOOLS
            logger.info(f"Round {rounds}: {len(calls)} tool call(s): {', '.join(c.name for c in calls)}")

            results = await self.executor.execute_all(calls)
            tool_results.extend(results)
            # Committed together so a cancelled round never leaves tool calls without results
            staged = [Message.assistant(text, calls)]
            staged.extend(Message.tool_result(call, result.content) for call, result in zip(calls, results))
            conversation.extend(staged)

    async def _stream_round(self, conversation: Conversation) -> StreamDecoder:
        decoder = StreamDecoder()
        chunks = self.provider.stream_chat(conversation.messages, tools=self.tools)
        streamed = False
        try:
            async for event in decode_stream(chunks, decoder):
                if isinstance(event, TextDelta) and self.ui:
                    self.ui.stream_text(event.text)
                    streamed = True
        finally:
            if streamed:
                self.ui.stream_done()
            aclose = getattr(chunks, "aclose", None)
            if aclose is not None:
                await aclose()
        if decoder.malformed_lines:
            logger.info(f"Skipped {decoder.malformed_lines} malformed stream line(s)")
        return decoder

    def _report_tool(self, event: ToolEvent):
        result = event.result
        self.ui.print_tool(event.display, success=result.success if result else True)
        if result is not None and not result.success:
            self.ui.print_tool_error(result.error)

    async def _approve_shell(self, call: ToolCallRequest) -> bool:
        try:
            command = call.parse_arguments().get("command", "")
        except ValueError:
            command = str(call.arguments)
        return await asyncio.to_thread(self.ui.confirm, f"Run shell command: {command}?")
