"""Model stream client: incremental assembly of text and tool calls from a provider stream."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import aclosing
from dataclasses import dataclass
from typing import Any

from .errors import LLMProviderError
from .models import Message, StreamingChunk, ToolCall
from .providers.base import LLMProvider, ToolCallDelta
from .tools import BaseTool
from .trace import TraceLogger

COMPONENT = "LLMClient"
TOOL_CALLS_FINISH_REASON = "tool_calls"


def parse_arguments(text: str) -> dict[str, Any] | None:
    """Parse argument text into a params object; None unless it is a complete JSON object."""
    try:
        parsed = json.loads(text)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def repair_arguments(text: str) -> str:
    """One corrective pass for argument text left incomplete at the end of a turn."""
    fixed = text.replace("\n", " ").strip()
    if not fixed.startswith("{"):
        fixed = "{" + fixed
    if not fixed.endswith("}"):
        fixed = fixed + "}"
    return fixed


@dataclass
class _PendingCall:
    id: str
    name: str = ""
    arguments: str = ""


class ToolCallAssembler:
    """
    Pending-call table keyed by call id.

    Fragments that arrive without an id are attributed through their stream
    index to the call that index was last seen with.
    """

    def __init__(self, trace: TraceLogger) -> None:
        self._trace = trace
        self._pending: dict[str, _PendingCall] = {}
        self._ids_by_index: dict[int, str] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def feed(self, delta: ToolCallDelta) -> None:
        call_id = delta.id or self._ids_by_index.get(delta.index) or f"call_{delta.index}"
        self._ids_by_index[delta.index] = call_id

        pending = self._pending.get(call_id)
        if pending is None:
            pending = self._pending[call_id] = _PendingCall(id=call_id)
            self._trace.debug(COMPONENT, "Created new pending tool call", {"id": call_id, "name": delta.name})
        if delta.name:
            pending.name = delta.name
        if delta.arguments:
            pending.arguments += delta.arguments

    def take_completed(self) -> list[ToolCall]:
        """Remove and return every pending call whose name and arguments are complete."""
        completed: list[ToolCall] = []
        for call_id, pending in list(self._pending.items()):
            if not pending.name or not pending.arguments:
                continue
            params = parse_arguments(pending.arguments)
            if params is None:
                continue
            del self._pending[call_id]
            completed.append(ToolCall(id=call_id, name=pending.name, params=params))
            self._trace.debug(COMPONENT, f"Completed tool call: {pending.name}", {"id": call_id, "params": params})
        return completed

    def finish(self, finish_reason: str | None) -> list[ToolCall]:
        """
        Resolve what is still pending when the turn ends.

        Only a "tool_calls" finish gets the repair pass; anything that still
        does not parse, or ends under another finish reason, is dropped.
        """
        completed: list[ToolCall] = []
        for call_id, pending in self._pending.items():
            if finish_reason == TOOL_CALLS_FINISH_REASON and pending.name:
                params = parse_arguments(repair_arguments(pending.arguments))
                if params is not None:
                    completed.append(ToolCall(id=call_id, name=pending.name, params=params))
                    self._trace.debug(
                        COMPONENT,
                        f"Completed pending tool call after finish: {pending.name}",
                        {"id": call_id, "params": params},
                    )
                    continue
            self._trace.warn(
                COMPONENT,
                f"Could not complete pending tool call: {pending.name or '<unnamed>'}",
                {"id": call_id, "arguments": pending.arguments, "finish_reason": finish_reason},
            )
        self._pending.clear()
        return completed


class CompletionStream:
    """
    Lazy, single-use async iterator of StreamingChunks for one model turn.

    Every chunk carries the text delta that produced it and the tool calls
    completed so far; the last chunk has `is_complete=True`. After iteration
    `text` holds the full accumulated text and `tool_calls` the completed calls.
    """

    def __init__(
        self,
        client: ModelStreamClient,
        messages: list[Message],
        tools: list[BaseTool],
    ) -> None:
        self._client = client
        self._messages = messages
        self._tools = tools
        self._started = False
        self.text = ""
        self.tool_calls: list[ToolCall] = []

    def __aiter__(self) -> AsyncIterator[StreamingChunk]:
        if self._started:
            raise RuntimeError("CompletionStream can only be iterated once")
        self._started = True
        return self._iterate()

    async def collect(self) -> str:
        """Drain the stream and return the full text."""
        async for _chunk in self:
            pass
        return self.text

    async def _iterate(self) -> AsyncIterator[StreamingChunk]:
        client = self._client
        trace = client.trace
        assembler = ToolCallAssembler(trace)
        trace.debug(
            COMPONENT,
            "Starting stream completion",
            {"messages": len(self._messages), "tools": len(self._tools)},
        )
        try:
            events = client.provider.stream(
                self._messages,
                tools=[t.to_tool_schema() for t in self._tools] or None,
                model=client.model,
                max_tokens=client.max_tokens,
                temperature=client.temperature,
            )
            async with aclosing(events):
                async for event in events:
                    if event.text:
                        self.text += event.text
                    for delta in event.tool_call_deltas:
                        assembler.feed(delta)
                    self.tool_calls.extend(assembler.take_completed())

                    is_complete = event.finish_reason is not None
                    if is_complete:
                        self.tool_calls.extend(assembler.finish(event.finish_reason))

                    yield StreamingChunk(text=event.text, tool_calls=list(self.tool_calls), is_complete=is_complete)
                    if is_complete:
                        break
                else:
                    # Provider ended without a finish reason.
                    self.tool_calls.extend(assembler.finish(None))
                    yield StreamingChunk(text="", tool_calls=list(self.tool_calls), is_complete=True)
        except LLMProviderError:
            raise
        except Exception as e:
            trace.error(COMPONENT, "Error in stream completion", {"error": str(e)})
            raise LLMProviderError(f"Error in LLM request: {e}", e) from e

        trace.info(
            COMPONENT,
            "Stream completed",
            {"content_length": len(self.text), "tool_calls": len(self.tool_calls)},
        )


class ModelStreamClient:
    """Sends a prompt plus tool catalogue to the provider and streams the reply."""

    def __init__(
        self,
        provider: LLMProvider,
        trace: TraceLogger,
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> None:
        self.provider = provider
        self.trace = trace
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.trace.info(COMPONENT, f"Initialized with model: {model or provider.default_model}")

    def stream_completion(self, messages: list[Message], tools: list[BaseTool]) -> CompletionStream:
        return CompletionStream(self, messages, tools)


__all__ = [
    "ModelStreamClient",
    "CompletionStream",
    "ToolCallAssembler",
    "parse_arguments",
    "repair_arguments",
]
