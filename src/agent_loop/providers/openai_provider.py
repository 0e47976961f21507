"""OpenAI LLM provider implementation for the agent loop."""

from __future__ import annotations

import json
import os
from collections.abc import AsyncGenerator
from typing import Any

from openai import AsyncOpenAI

from ..models import Message
from .base import LLMProvider, ProviderEvent, ToolCallDelta


def _result_text(tool_result: Any) -> str:
    if tool_result.error is not None:
        return f"Error: {tool_result.error}"
    return json.dumps(tool_result.result, default=str)


class OpenAIProvider(LLMProvider):
    """OpenAI-backed LLM provider using the streaming Chat Completions API."""

    def __init__(
        self,
        default_model: str = "gpt-4.1-nano",
        api_key: str | None = None,
        base_url: str | None = None,
    ) -> None:
        self.default_model = default_model
        self.api_key = api_key or os.getenv("OPENAI_API_KEY") or ""
        self.base_url = base_url or os.getenv("OPENAI_BASE_URL")
        self._client: AsyncOpenAI | None = None

    def _get_client(self) -> AsyncOpenAI:
        if not self._client:
            kwargs: dict[str, Any] = {"api_key": self.api_key}
            if self.base_url:
                kwargs["base_url"] = self.base_url
            self._client = AsyncOpenAI(**kwargs)
        return self._client

    @staticmethod
    def _to_openai_messages(messages: list[Message]) -> list[dict[str, Any]]:
        """
        Convert Messages into OpenAI chat message dicts.

        Tool results recorded on a system message become `tool` messages when
        the assistant message that issued the call is still in the list;
        otherwise (the call was evicted) they stay as plain system text.
        """
        out: list[dict[str, Any]] = []
        announced: set[str] = set()
        for m in messages:
            if m.role == "assistant" and m.tool_calls:
                oa_tool_calls = []
                for tc in m.tool_calls:
                    if not tc.id:
                        continue
                    announced.add(tc.id)
                    oa_tool_calls.append(
                        {
                            "id": tc.id,
                            "type": "function",
                            "function": {"name": tc.name, "arguments": json.dumps(tc.params)},
                        }
                    )
                base: dict[str, Any] = {"role": "assistant", "content": m.content or None}
                if oa_tool_calls:
                    base["tool_calls"] = oa_tool_calls
                out.append(base)
                continue

            if m.role == "system" and m.tool_results:
                orphaned = [tr for tr in m.tool_results if tr.tool_call.id not in announced]
                for tr in m.tool_results:
                    if tr.tool_call.id in announced:
                        out.append(
                            {
                                "role": "tool",
                                "tool_call_id": tr.tool_call.id,
                                "content": _result_text(tr),
                            }
                        )
                if orphaned:
                    out.append({"role": "system", "content": m.content or ""})
                continue

            out.append({"role": m.role, "content": m.content or ""})
        return out

    async def stream(
        self,
        messages: list[Message],
        *,
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> AsyncGenerator[ProviderEvent, None]:
        client = self._get_client()
        params: dict[str, Any] = {
            "model": model or self.default_model,
            "messages": self._to_openai_messages(messages),
            "stream": True,
        }
        if tools:
            params["tools"] = tools
            params["tool_choice"] = "auto"
        if max_tokens is not None:
            params["max_tokens"] = max_tokens
        if temperature is not None:
            params["temperature"] = temperature

        stream = await client.chat.completions.create(**params)
        async for chunk in stream:
            if not chunk.choices:
                continue
            choice = chunk.choices[0]
            delta = getattr(choice, "delta", None)
            text = (getattr(delta, "content", None) or "") if delta is not None else ""

            deltas: list[ToolCallDelta] = []
            for tc in (getattr(delta, "tool_calls", None) or []) if delta is not None else []:
                fn = getattr(tc, "function", None)
                deltas.append(
                    ToolCallDelta(
                        index=getattr(tc, "index", 0) or 0,
                        id=getattr(tc, "id", None),
                        name=getattr(fn, "name", None) if fn is not None else None,
                        arguments=(getattr(fn, "arguments", None) or "") if fn is not None else "",
                    )
                )

            yield ProviderEvent(
                text=text,
                tool_call_deltas=deltas,
                finish_reason=getattr(choice, "finish_reason", None),
            )


__all__ = ["OpenAIProvider"]
