"""Tests for ollama_cli/core/stream.py — StreamDecoder and decode_stream."""

import asyncio
import json
import logging

import pytest

from ollama_cli.core.stream import StreamDecoder, TextDelta, ToolCallsDelta, decode_stream
from ollama_cli.exceptions import StreamError


# ──────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────

def _line(content=None, tool_calls=None, done=False) -> str:
    message = {"role": "assistant"}
    if content is not None:
        message["content"] = content
    if tool_calls is not None:
        message["tool_calls"] = tool_calls
    return json.dumps({"model": "m", "message": message, "done": done}) + "\n"


def _call(name, arguments, call_id=None) -> dict:
    call = {"function": {"name": name, "arguments": arguments}}
    if call_id:
        call["id"] = call_id
    return call


async def _agen(chunks):
    for c in chunks:
        yield c


async def _collect(chunks, decoder=None):
    return [e async for e in decode_stream(_agen(chunks), decoder)]


# ──────────────────────────────────────────────
# Text accumulation
# ──────────────────────────────────────────────

class TestTextAccumulation:

    def test_text_is_concatenated_in_order(self):
        decoder = StreamDecoder()
        parts = ["The ", "answer ", "is ", "42."]
        for p in parts:
            decoder.feed(_line(p).encode())
        decoder.finish()
        assert decoder.text == "The answer is 42."

    def test_feed_returns_text_events(self):
        decoder = StreamDecoder()
        events = decoder.feed(_line("Hi") + _line(" there"))
        assert events == [TextDelta("Hi"), TextDelta(" there")]

    def test_empty_content_yields_no_event(self):
        decoder = StreamDecoder()
        events = decoder.feed(_line("", done=True))
        assert events == []
        assert decoder.lines == 1

    def test_accepts_str_chunks(self):
        decoder = StreamDecoder()
        decoder.feed(_line("plain str"))
        assert decoder.text == "plain str"

    def test_no_input_gives_empty_result(self):
        decoder = StreamDecoder()
        assert decoder.finish() == []
        assert decoder.text == ""
        assert decoder.tool_calls == []


# ──────────────────────────────────────────────
# Line buffering across chunks
# ──────────────────────────────────────────────

class TestLineBuffering:

    def test_line_split_across_chunks(self):
        decoder = StreamDecoder()
        data = _line("split me").encode()
        first = decoder.feed(data[:10])
        second = decoder.feed(data[10:])
        assert first == []
        assert second == [TextDelta("split me")]

    def test_many_lines_in_one_chunk(self):
        decoder = StreamDecoder()
        data = "".join(_line(str(i)) for i in range(5)).encode()
        events = decoder.feed(data)
        assert [e.text for e in events] == ["0", "1", "2", "3", "4"]

    def test_byte_by_byte(self):
        decoder = StreamDecoder()
        data = (_line("a") + _line("b")).encode()
        for i in range(len(data)):
            decoder.feed(data[i:i + 1])
        decoder.finish()
        assert decoder.text == "ab"

    def test_multibyte_character_split_across_chunks(self):
        decoder = StreamDecoder()
        data = json.dumps({"message": {"content": "héllo ✓"}}, ensure_ascii=False).encode() + b"\n"
        cut = data.index("✓".encode()) + 1  # inside the 3-byte sequence
        decoder.feed(data[:cut])
        decoder.feed(data[cut:])
        assert decoder.text == "héllo ✓"

    def test_unterminated_final_line_is_decoded_on_finish(self):
        decoder = StreamDecoder()
        decoder.feed(_line("first") + _line("last").rstrip("\n"))
        assert decoder.text == "first"
        events = decoder.finish()
        assert events == [TextDelta("last")]
        assert decoder.text == "firstlast"

    def test_crlf_line_endings(self):
        decoder = StreamDecoder()
        decoder.feed(_line("a").replace("\n", "\r\n") + _line("b").replace("\n", "\r\n"))
        assert decoder.text == "ab"

    def test_feed_after_finish_raises(self):
        decoder = StreamDecoder()
        decoder.finish()
        with pytest.raises(RuntimeError):
            decoder.feed(b"{}\n")


# ──────────────────────────────────────────────
# Malformed and blank lines
# ──────────────────────────────────────────────

class TestMalformedLines:

    def test_malformed_lines_are_skipped(self):
        decoder = StreamDecoder()
        decoder.feed(_line("Hello"))
        decoder.feed("{not json}\n")
        decoder.feed(_line(", world"))
        decoder.feed("[1, 2\n")
        decoder.finish()
        assert decoder.text == "Hello, world"
        assert decoder.malformed_lines == 2

    def test_malformed_line_is_logged(self, caplog):
        decoder = StreamDecoder()
        with caplog.at_level(logging.WARNING, logger="ollama_cli.core.stream"):
            decoder.feed("garbage\n")
        assert "Could not JSON parse" in caplog.text

    def test_blank_lines_ignored_silently(self, caplog):
        decoder = StreamDecoder()
        with caplog.at_level(logging.WARNING, logger="ollama_cli.core.stream"):
            decoder.feed("\n   \n\t\n" + _line("ok") + "\n")
            decoder.finish()
        assert decoder.text == "ok"
        assert decoder.malformed_lines == 0
        assert caplog.text == ""

    def test_non_object_json_is_skipped(self):
        decoder = StreamDecoder()
        decoder.feed('"just a string"\n42\n' + _line("x"))
        assert decoder.text == "x"
        assert decoder.malformed_lines == 2

    def test_missing_message_field(self):
        decoder = StreamDecoder()
        events = decoder.feed(json.dumps({"done": True}) + "\n")
        assert events == []

    def test_error_line_raises_stream_error(self):
        decoder = StreamDecoder()
        with pytest.raises(StreamError, match="model not found"):
            decoder.feed(json.dumps({"error": "model not found"}) + "\n")


# ──────────────────────────────────────────────
# Tool calls
# ──────────────────────────────────────────────

class TestToolCalls:

    def test_tool_calls_collected_in_order(self):
        decoder = StreamDecoder()
        decoder.feed(_line(tool_calls=[_call("read_file", {"file_path": "a"}, "c1")]))
        decoder.feed(_line(tool_calls=[
            _call("list_directory", {}, "c2"),
            _call("run_shell_command", '{"command": "ls"}', "c3"),
        ]))
        decoder.finish()
        assert [c.id for c in decoder.tool_calls] == ["c1", "c2", "c3"]
        assert [c.name for c in decoder.tool_calls] == ["read_file", "list_directory", "run_shell_command"]

    def test_tool_call_event(self):
        decoder = StreamDecoder()
        events = decoder.feed(_line(tool_calls=[_call("read_file", {"file_path": "a"}, "c1")]))
        assert len(events) == 1
        assert isinstance(events[0], ToolCallsDelta)
        assert events[0].calls[0].parse_arguments() == {"file_path": "a"}

    def test_string_arguments_kept_until_parsed(self):
        decoder = StreamDecoder()
        decoder.feed(_line(tool_calls=[_call("run_shell_command", '{"command": "pwd"}', "c1")]))
        call = decoder.tool_calls[0]
        assert call.arguments == '{"command": "pwd"}'
        assert call.parse_arguments() == {"command": "pwd"}

    def test_missing_id_gets_generated(self):
        decoder = StreamDecoder()
        decoder.feed(_line(tool_calls=[_call("list_directory", {})]))
        assert decoder.tool_calls[0].id.startswith("call_")

    def test_text_and_tool_calls_in_same_line(self):
        decoder = StreamDecoder()
        events = decoder.feed(_line("Let me look.", tool_calls=[_call("list_directory", {}, "c1")]))
        assert isinstance(events[0], TextDelta)
        assert isinstance(events[1], ToolCallsDelta)
        assert decoder.text == "Let me look."
        assert len(decoder.tool_calls) == 1

    def test_non_dict_tool_call_entry_skipped(self):
        decoder = StreamDecoder()
        decoder.feed(_line(tool_calls=["bogus", _call("list_directory", {}, "c1")]))
        assert [c.id for c in decoder.tool_calls] == ["c1"]

    def test_non_object_function_field_skipped(self, caplog):
        decoder = StreamDecoder()
        with caplog.at_level(logging.WARNING, logger="ollama_cli.core.stream"):
            events = decoder.feed(_line("hi ", tool_calls=[{"id": "x", "function": "read_file"}]))
            decoder.feed(_line("there"))
        assert events == [TextDelta("hi ")]
        assert decoder.tool_calls == []
        assert decoder.text == "hi there"
        assert "malformed tool call" in caplog.text


# ──────────────────────────────────────────────
# decode_stream
# ──────────────────────────────────────────────

class TestDecodeStream:

    def test_yields_events_and_flushes(self):
        decoder = StreamDecoder()
        chunks = [_line("a").encode(), b"garbage\n", _line("b").rstrip("\n").encode()]
        events = asyncio.run(_collect(chunks, decoder))
        assert events == [TextDelta("a"), TextDelta("b")]
        assert decoder.text == "ab"
        assert decoder.finished

    def test_ignores_done_flag(self):
        chunks = [_line("a", done=True), _line("b")]
        events = asyncio.run(_collect(chunks))
        assert [e.text for e in events] == ["a", "b"]
