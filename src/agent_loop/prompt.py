"""Prompt composition: synthesized instruction message plus the budgeted history."""

from __future__ import annotations

import json
import re
import uuid

from .llm_client import parse_arguments
from .models import Message, ToolCall, ToolResult
from .tools import BaseTool
from .trace import TraceLogger

COMPONENT = "PromptManager"

TOOL_CALL_BLOCK = re.compile(r"<tool_call>([\s\S]*?)</tool_call>")

BASE_INSTRUCTIONS = "You are a helpful AI assistant that can use tools to accomplish tasks.\n\n"

CALL_FORMAT = """When you need to use a tool, format your response like this:
<tool_call>
{
  "name": "toolName",
  "params": {
    "param1": "value1",
    "param2": "value2"
  }
}
</tool_call>

You can call multiple tools by using multiple tool_call blocks.
After using tools, summarize what you did and provide a final answer."""


class PromptManager:
    """Builds the message list sent to the model each turn."""

    def __init__(self, trace: TraceLogger) -> None:
        self._trace = trace
        self._trace.info(COMPONENT, "Initialized")

    def create_system_message(self, tools: list[BaseTool]) -> Message:
        """Instruction message with the tool catalogue and the call-format contract."""
        content = BASE_INSTRUCTIONS
        if tools:
            content += "You have access to the following tools:\n\n"
            for tool in tools:
                content += f"Tool: {tool.name}\n"
                content += f"Description: {tool.description}\n"
                content += "Parameters:\n"
                for pname, spec in tool.parameters.items():
                    required = ", required" if spec.required else ""
                    content += f"  - {pname}: {spec.description or 'No description'} ({spec.type}{required})\n"
                content += "\n"
            content += CALL_FORMAT
        return Message(role="system", content=content)

    def create_prompt(
        self,
        initial_prompt: str,
        history: list[Message],
        tools: list[BaseTool],
    ) -> list[Message]:
        """`[system, *history]`; `history` is already the budgeted view of the store."""
        self._trace.debug(
            COMPONENT,
            "Creating prompt",
            {"history_size": len(history), "tool_count": len(tools)},
        )
        messages = [self.create_system_message(tools)]
        if not history:
            messages.append(Message(role="user", content=initial_prompt))
            return messages
        messages.extend(history)
        return messages

    def format_assistant_content(self, content: str) -> str:
        """Drop inline tool-call blocks so history carries them only as structured calls."""
        return TOOL_CALL_BLOCK.sub("", content).strip()

    def extract_inline_tool_calls(self, content: str) -> list[ToolCall]:
        """Tool calls written in the `<tool_call>` text format, for models without native tool use."""
        calls: list[ToolCall] = []
        for block in TOOL_CALL_BLOCK.findall(content):
            payload = parse_arguments(block.strip())
            if payload is None or not isinstance(payload.get("name"), str):
                self._trace.warn(COMPONENT, "Ignoring malformed inline tool call", {"block": block.strip()})
                continue
            params = payload.get("params")
            calls.append(
                ToolCall(
                    id=f"inline_{uuid.uuid4().hex[:12]}",
                    name=payload["name"],
                    params=params if isinstance(params, dict) else {},
                )
            )
        return calls

    def format_tool_results(self, results: list[ToolResult]) -> str:
        """Summary text for the system message that carries tool results."""
        parts = []
        for result in results:
            if result.error is not None:
                data = f"Error: {result.error}"
            else:
                data = json.dumps(result.result, indent=2, default=str)
            parts.append(f"Tool: {result.tool_call.name}\nResult: {data}")
        return "\n\n".join(parts)


__all__ = ["PromptManager", "BASE_INSTRUCTIONS", "CALL_FORMAT"]
