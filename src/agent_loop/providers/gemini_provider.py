"""Google Gemini LLM provider implementation for the agent loop."""

from __future__ import annotations

import json
import os
from collections.abc import AsyncGenerator
from typing import Any

from google import genai
from google.genai import types as genai_types

from ..models import Message
from .base import LLMProvider, ProviderEvent, ToolCallDelta


class GeminiProvider(LLMProvider):
    """Gemini provider using the google-genai SDK."""

    def __init__(
        self,
        default_model: str = "gemini-2.5-flash",
        api_key: str | None = None,
    ) -> None:
        self.default_model = default_model
        self.api_key = api_key or os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY", "")
        self._client: genai.Client | None = None

    def _get_client(self) -> genai.Client:
        if not self._client:
            self._client = genai.Client(
                api_key=self.api_key,
                http_options={"api_version": "v1beta"},
            )
        return self._client

    @staticmethod
    def _to_gemini_contents(messages: list[Message]) -> tuple[list[genai_types.Content], str | None]:
        """
        Convert Messages into Gemini contents and a system instruction.

        The first system message is the instruction; later system messages
        (tool results) are passed as user turns so the model can read them.
        """
        contents: list[genai_types.Content] = []
        system_instruction: str | None = None

        for m in messages:
            if m.role == "system" and system_instruction is None and not m.tool_results:
                system_instruction = (m.content or "").strip() or None
                continue
            role = "model" if m.role == "assistant" else "user"
            parts: list[genai_types.Part] = []
            if m.content:
                parts.append(genai_types.Part(text=m.content))
            for tc in m.tool_calls or []:
                parts.append(
                    genai_types.Part(
                        function_call=genai_types.FunctionCall(name=tc.name, args=tc.params)
                    )
                )
            if parts:
                contents.append(genai_types.Content(role=role, parts=parts))

        return contents, system_instruction

    @staticmethod
    def _to_gemini_tools(tools: list[dict[str, Any]] | None) -> list[genai_types.Tool] | None:
        """Convert function tools into Gemini Tool declarations."""
        if not tools:
            return None
        declarations: list[genai_types.FunctionDeclaration] = []
        for t in tools:
            fn = t.get("function") if "function" in t else t
            if not fn.get("name"):
                continue
            declarations.append(
                genai_types.FunctionDeclaration(
                    name=fn["name"],
                    description=fn.get("description", ""),
                    parameters=fn.get("parameters") or {},
                )
            )
        if not declarations:
            return None
        return [genai_types.Tool(function_declarations=declarations)]

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
        contents, system_instruction = self._to_gemini_contents(messages)

        config_args: dict[str, Any] = {}
        gemini_tools = self._to_gemini_tools(tools)
        if gemini_tools:
            config_args["tools"] = gemini_tools
            config_args["tool_config"] = genai_types.ToolConfig(
                function_calling_config=genai_types.FunctionCallingConfig(
                    mode=genai_types.FunctionCallingConfigMode.AUTO
                )
            )
        if system_instruction:
            config_args["system_instruction"] = system_instruction
        if max_tokens is not None:
            config_args["max_output_tokens"] = max_tokens
        if temperature is not None:
            config_args["temperature"] = temperature

        stream = await client.aio.models.generate_content_stream(
            model=model or self.default_model,
            contents=contents,
            config=genai_types.GenerateContentConfig(**config_args),
        )

        call_count = 0
        async for chunk in stream:
            text_parts: list[str] = []
            deltas: list[ToolCallDelta] = []
            for cand in getattr(chunk, "candidates", None) or []:
                content = getattr(cand, "content", None)
                for part in (getattr(content, "parts", None) or []) if content else []:
                    if getattr(part, "text", None):
                        text_parts.append(part.text)
                    fc = getattr(part, "function_call", None)
                    if not fc:
                        continue
                    deltas.append(
                        ToolCallDelta(
                            index=call_count,
                            id=getattr(fc, "id", None) or f"call_{fc.name}_{call_count}",
                            name=fc.name,
                            arguments=json.dumps(dict(fc.args) if fc.args else {}),
                        )
                    )
                    call_count += 1
            if text_parts or deltas:
                yield ProviderEvent(text="".join(text_parts), tool_call_deltas=deltas)

        yield ProviderEvent(finish_reason="tool_calls" if call_count else "stop")


__all__ = ["GeminiProvider"]
