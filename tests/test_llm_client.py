"""Unit tests for the model stream client: text accumulation and tool-call assembly."""
from __future__ import annotations

import unittest
from typing import Any

from agent_loop.errors import LLMProviderError
from agent_loop.llm_client import ModelStreamClient, ToolCallAssembler, parse_arguments, repair_arguments
from agent_loop.models import Message
from agent_loop.providers.base import LLMProvider, ProviderEvent, ToolCallDelta
from agent_loop.tools import FunctionTool
from agent_loop.trace import TraceLogger


class ScriptedProvider(LLMProvider):
    """Replays one scripted list of events per call; an exception in the script is raised."""

    default_model = "scripted"

    def __init__(self, *turns: list[Any]) -> None:
        self.turns = list(turns)
        self.requests: list[dict[str, Any]] = []

    async def stream(self, messages, *, tools=None, model=None, max_tokens=None, temperature=None):
        self.requests.append({"messages": list(messages), "tools": tools, "model": model})
        for event in self.turns.pop(0):
            if isinstance(event, BaseException):
                raise event
            yield event


def delta(index: int = 0, id: str | None = None, name: str | None = None, arguments: str = "") -> ProviderEvent:
    return ProviderEvent(tool_call_deltas=[ToolCallDelta(index=index, id=id, name=name, arguments=arguments)])


def make_client(provider: LLMProvider, trace: TraceLogger | None = None) -> ModelStreamClient:
    return ModelStreamClient(provider, trace or TraceLogger(level="debug"))


USER = [Message(role="user", content="hi")]


class TestArgumentHelpers(unittest.TestCase):
    def test_parse_arguments(self) -> None:
        self.assertEqual(parse_arguments('{"a": 1}'), {"a": 1})
        self.assertIsNone(parse_arguments('{"a":'))
        self.assertIsNone(parse_arguments("[1, 2]"))
        self.assertIsNone(parse_arguments(""))

    def test_repair_arguments(self) -> None:
        self.assertEqual(repair_arguments('"a": 1'), '{"a": 1}')
        self.assertEqual(repair_arguments('{"a":\n1}'), '{"a": 1}')
        self.assertEqual(repair_arguments(""), "{}")


class TestToolCallAssembler(unittest.TestCase):
    def test_fragments_without_id_follow_their_index(self) -> None:
        assembler = ToolCallAssembler(TraceLogger())
        assembler.feed(ToolCallDelta(index=0, id="c1", name="calc", arguments='{"a"'))
        assembler.feed(ToolCallDelta(index=0, arguments=": 1}"))
        calls = assembler.take_completed()
        self.assertEqual(len(calls), 1)
        self.assertEqual(calls[0].id, "c1")
        self.assertEqual(calls[0].params, {"a": 1})
        self.assertEqual(assembler.pending_count, 0)

    def test_missing_name_is_not_completed(self) -> None:
        assembler = ToolCallAssembler(TraceLogger())
        assembler.feed(ToolCallDelta(index=0, id="c1", arguments="{}"))
        self.assertEqual(assembler.take_completed(), [])
        self.assertEqual(assembler.finish("tool_calls"), [])


class TestCompletionStream(unittest.IsolatedAsyncioTestCase):
    async def test_text_only(self) -> None:
        provider = ScriptedProvider(
            [ProviderEvent(text="Hel"), ProviderEvent(text="lo"), ProviderEvent(finish_reason="stop")]
        )
        stream = make_client(provider).stream_completion(USER, [])
        chunks = [chunk async for chunk in stream]
        self.assertEqual([c.text for c in chunks], ["Hel", "lo", ""])
        self.assertEqual([c.is_complete for c in chunks], [False, False, True])
        self.assertEqual(stream.text, "Hello")
        self.assertEqual(stream.tool_calls, [])
        self.assertIsNone(provider.requests[0]["tools"])

    async def test_fragmented_arguments_produce_exactly_one_call(self) -> None:
        provider = ScriptedProvider(
            [
                delta(id="c1", name="calc", arguments='{"a":'),
                delta(arguments="1}"),
                ProviderEvent(finish_reason="tool_calls"),
            ]
        )
        stream = make_client(provider).stream_completion(USER, [])
        chunks = [chunk async for chunk in stream]
        self.assertEqual(chunks[0].tool_calls, [])
        self.assertEqual(len(chunks[1].tool_calls), 1)
        self.assertEqual(len(stream.tool_calls), 1)
        call = stream.tool_calls[0]
        self.assertEqual((call.id, call.name, call.params), ("c1", "calc", {"a": 1}))

    async def test_interleaved_calls(self) -> None:
        provider = ScriptedProvider(
            [
                delta(index=0, id="c1", name="first", arguments='{"x"'),
                delta(index=1, id="c2", name="second", arguments='{"y": 2}'),
                delta(index=0, arguments=": 1}"),
                ProviderEvent(finish_reason="tool_calls"),
            ]
        )
        stream = make_client(provider).stream_completion(USER, [])
        await stream.collect()
        calls = {c.id: c for c in stream.tool_calls}
        self.assertEqual(set(calls), {"c1", "c2"})
        self.assertEqual(calls["c1"].params, {"x": 1})
        self.assertEqual(calls["c2"].params, {"y": 2})

    async def test_repair_at_tool_calls_finish(self) -> None:
        provider = ScriptedProvider(
            [
                delta(id="c1", name="calc", arguments='"a": 1'),
                delta(index=1, id="c2", name="get_time"),
                ProviderEvent(finish_reason="tool_calls"),
            ]
        )
        stream = make_client(provider).stream_completion(USER, [])
        await stream.collect()
        self.assertEqual([(c.name, c.params) for c in stream.tool_calls], [("calc", {"a": 1}), ("get_time", {})])

    async def test_incomplete_call_dropped_on_other_finish(self) -> None:
        trace = TraceLogger(level="debug")
        provider = ScriptedProvider(
            [delta(id="c1", name="calc", arguments='{"a": '), ProviderEvent(finish_reason="stop")]
        )
        stream = make_client(provider, trace).stream_completion(USER, [])
        await stream.collect()
        self.assertEqual(stream.tool_calls, [])
        self.assertTrue(any(e.level == "warn" for e in trace.get_logs()))

    async def test_stream_ending_without_finish_reason(self) -> None:
        provider = ScriptedProvider([ProviderEvent(text="partial"), delta(id="c1", name="calc", arguments='{"a"')])
        stream = make_client(provider).stream_completion(USER, [])
        chunks = [chunk async for chunk in stream]
        self.assertTrue(chunks[-1].is_complete)
        self.assertEqual(sum(1 for c in chunks if c.is_complete), 1)
        self.assertEqual(stream.text, "partial")
        self.assertEqual(stream.tool_calls, [])

    async def test_provider_stream_closed_after_finish(self) -> None:
        state = {"closed": False, "drained": False}

        class HoldingProvider(LLMProvider):
            default_model = "holding"

            async def stream(self, messages, *, tools=None, model=None, max_tokens=None, temperature=None):
                try:
                    yield ProviderEvent(text="done", finish_reason="stop")
                    state["drained"] = True
                    yield ProviderEvent(text=" extra")
                finally:
                    state["closed"] = True

        stream = make_client(HoldingProvider()).stream_completion(USER, [])
        self.assertEqual(await stream.collect(), "done")
        self.assertTrue(state["closed"])
        self.assertFalse(state["drained"])

    async def test_provider_error_wrapped(self) -> None:
        provider = ScriptedProvider([ProviderEvent(text="a"), ConnectionError("reset")])
        stream = make_client(provider).stream_completion(USER, [])
        with self.assertRaises(LLMProviderError) as ctx:
            await stream.collect()
        self.assertIn("Error in LLM request", str(ctx.exception))
        self.assertIsInstance(ctx.exception.cause, ConnectionError)

    async def test_provider_error_passes_through(self) -> None:
        original = LLMProviderError("quota")
        provider = ScriptedProvider([original])
        stream = make_client(provider).stream_completion(USER, [])
        with self.assertRaises(LLMProviderError) as ctx:
            await stream.collect()
        self.assertIs(ctx.exception, original)

    async def test_single_use(self) -> None:
        provider = ScriptedProvider([ProviderEvent(finish_reason="stop")])
        stream = make_client(provider).stream_completion(USER, [])
        await stream.collect()
        with self.assertRaises(RuntimeError):
            await stream.collect()

    async def test_lazy_until_iterated(self) -> None:
        provider = ScriptedProvider([ProviderEvent(finish_reason="stop")])
        stream = make_client(provider).stream_completion(USER, [])
        self.assertEqual(provider.requests, [])
        await stream.collect()
        self.assertEqual(len(provider.requests), 1)

    async def test_tool_schemas_sent(self) -> None:
        tool = FunctionTool("noop", "Does nothing", lambda params: None)
        provider = ScriptedProvider([ProviderEvent(finish_reason="stop")])
        await make_client(provider).stream_completion(USER, [tool]).collect()
        self.assertEqual(provider.requests[0]["tools"][0]["function"]["name"], "noop")


if __name__ == "__main__":
    unittest.main()
