"""Ollama LLM provider implementation."""

from __future__ import annotations

import json
import os
import uuid
from collections.abc import AsyncGenerator
from typing import Any

from ollama import AsyncClient

from ..models import Message
from .base import LLMProvider, ProviderEvent, ToolCallDelta


def _message_to_chat(m: Message) -> list[dict[str, Any]]:
    """Convert our Message to Ollama chat format (tool results become `tool` messages)."""
    if m.role == "system" and m.tool_results:
        out = []
        for tr in m.tool_results:
            content = f"Error: {tr.error}" if tr.error is not None else json.dumps(tr.result, default=str)
            out.append({"role": "tool", "content": f"{tr.tool_call.name}: {content}"})
        return out
    msg: dict[str, Any] = {"role": m.role, "content": m.content or ""}
    if m.tool_calls:
        msg["tool_calls"] = [
            {"function": {"name": tc.name, "arguments": tc.params}}
            for tc in m.tool_calls
        ]
    return [msg]


class OllamaProvider(LLMProvider):
    """Ollama-backed LLM provider.

    Ollama delivers each tool call whole, so every call becomes a single
    delta and the turn ends with a "tool_calls" finish reason.
    """

    def __init__(self, default_model: str = "llama3.2", base_url: str | None = None):
        self.default_model = default_model
        self.base_url = base_url or os.getenv("OLLAMA_HOST") or "http://localhost:11434"

    async def stream(
        self,
        messages: list[Message],
        *,
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> AsyncGenerator[ProviderEvent, None]:
        client = AsyncClient(host=self.base_url)
        chat_messages = [d for m in messages for d in _message_to_chat(m)]
        options: dict[str, Any] = {}
        if max_tokens is not None:
            options["num_predict"] = max_tokens
        if temperature is not None:
            options["temperature"] = temperature

        call_count = 0
        stream = await client.chat(
            model=model or self.default_model,
            messages=chat_messages,
            tools=tools or None,
            options=options or None,
            stream=True,
        )
        async for chunk in stream:
            msg = getattr(chunk, "message", None)
            text = (getattr(msg, "content", None) or "") if msg is not None else ""
            deltas: list[ToolCallDelta] = []
            for tc in (getattr(msg, "tool_calls", None) or []) if msg is not None else []:
                fn = getattr(tc, "function", None)
                if fn is None:
                    continue
                args = getattr(fn, "arguments", None)
                deltas.append(
                    ToolCallDelta(
                        index=call_count,
                        id=str(uuid.uuid4()),
                        name=getattr(fn, "name", "") or "",
                        arguments=args if isinstance(args, str) else json.dumps(args or {}),
                    )
                )
                call_count += 1

            finish_reason = None
            if getattr(chunk, "done", False):
                finish_reason = "tool_calls" if call_count else (getattr(chunk, "done_reason", None) or "stop")
            yield ProviderEvent(text=text, tool_call_deltas=deltas, finish_reason=finish_reason)


__all__ = ["OllamaProvider"]
