"""
Decoder for Ollama's streaming chat response.

The response body is one JSON object per line, e.g.

    {"message": {"role": "assistant", "content": "Hel"}, "done": false}
    {"message": {"content": "", "tool_calls": [{"function": {...}}]}}

Chunks from the transport do not respect line boundaries, so input is
buffered and split on newlines before parsing. A bad line is logged and
skipped; it never ends the stream. The stream ends when the transport
is exhausted, regardless of any "done" flag.
"""

import codecs
import json
import logging
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator, List, Optional, Tuple, Union

from ..exceptions import StreamError
from ..providers.base import ToolCallRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextDelta:
    """Incremental assistant text."""
    text: str


@dataclass(frozen=True)
class ToolCallsDelta:
    """Tool calls carried by one stream line."""
    calls: Tuple[ToolCallRequest, ...]


StreamEvent = Union[TextDelta, ToolCallsDelta]


class StreamDecoder:
    """Accumulates text and tool calls from a line-delimited JSON stream."""

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._text_parts: List[str] = []
        self.tool_calls: List[ToolCallRequest] = []
        self.lines = 0
        self.malformed_lines = 0
        self.finished = False

    @property
    def text(self) -> str:
        return "".join(self._text_parts)

    def feed(self, chunk: Union[bytes, str]) -> List[StreamEvent]:
        """Add a chunk and decode every line it completes."""
        if self.finished:
            raise RuntimeError("StreamDecoder.feed() called after finish()")
        if isinstance(chunk, (bytes, bytearray)):
            chunk = self._decoder.decode(bytes(chunk))
        self._buffer += chunk

        *complete, self._buffer = self._buffer.split("\n")
        events: List[StreamEvent] = []
        for line in complete:
            events.extend(self._decode_line(line))
        return events

    def finish(self) -> List[StreamEvent]:
        """Decode whatever is left once the transport signals end-of-stream."""
        if self.finished:
            return []
        self._buffer += self._decoder.decode(b"", final=True)
        rest, self._buffer = self._buffer, ""
        self.finished = True
        events: List[StreamEvent] = []
        for line in rest.split("\n"):
            events.extend(self._decode_line(line))
        return events

    def _decode_line(self, line: str) -> List[StreamEvent]:
        line = line.strip()
        if not line:
            return []

        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            self.malformed_lines += 1
            logger.warning(f"Could not JSON parse stream message {line[:200]!r}: {e}")
            return []

        if not isinstance(data, dict):
            self.malformed_lines += 1
            logger.warning(f"Ignoring stream message that is not an object: {line[:200]!r}")
            return []

        self.lines += 1

        if data.get("error"):
            raise StreamError(f"Ollama reported an error: {data['error']}")

        message = data.get("message")
        if not isinstance(message, dict):
            return []

        events: List[StreamEvent] = []

        content = message.get("content")
        if isinstance(content, str) and content:
            self._text_parts.append(content)
            events.append(TextDelta(content))

        raw_calls = message.get("tool_calls")
        if isinstance(raw_calls, list) and raw_calls:
            calls = []
            for raw in raw_calls:
                if not isinstance(raw, dict) or not isinstance(raw.get("function", {}), dict):
                    logger.warning(f"Ignoring malformed tool call entry: {raw!r}")
                    continue
                calls.append(ToolCallRequest.from_wire(raw))
            if calls:
                self.tool_calls.extend(calls)
                events.append(ToolCallsDelta(tuple(calls)))

        return events


async def decode_stream(
    chunks: AsyncIterable[Union[bytes, str]],
    decoder: Optional[StreamDecoder] = None,
) -> AsyncIterator[StreamEvent]:
    """Yield stream events as chunks arrive, flushing at end-of-stream.

    Pass a decoder to read the accumulated text and tool calls afterwards.
    """
    decoder = decoder or StreamDecoder()
    async for chunk in chunks:
        for event in decoder.feed(chunk):
            yield event
    for event in decoder.finish():
        yield event
