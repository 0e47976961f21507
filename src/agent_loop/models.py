"""Data models for messages, tool calls, results, stream chunks and log entries."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .errors import ToolExecutionError

Role = Literal["user", "system", "assistant"]
LogLevel = Literal["debug", "info", "warn", "error"]


def to_jsonable(value: Any) -> Any:
    """Best-effort conversion of arbitrary tool output into plain JSON data."""
    return json.loads(json.dumps(value, default=str))


# ---------------------------------------------------------------------------
# Tool calls
# ---------------------------------------------------------------------------


class ToolCall(BaseModel):
    """A structured request, emitted by the model, to invoke a named tool."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    name: str
    params: dict[str, Any] = Field(default_factory=dict)

    def to_chat_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "params": self.params}


class ToolResult(BaseModel):
    """Outcome of one tool call. `error` set means the call failed."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    tool_call: ToolCall
    result: Any = None
    error: ToolExecutionError | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_chat_dict(self) -> dict[str, Any]:
        return {
            "tool_call_id": self.tool_call.id,
            "name": self.tool_call.name,
            "result": to_jsonable(self.result),
            "error": str(self.error) if self.error is not None else None,
        }


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


class Message(BaseModel):
    """A single message in a conversation. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str = ""
    tool_calls: list[ToolCall] | None = None
    tool_results: list[ToolResult] | None = None

    def to_chat_dict(self) -> dict[str, Any]:
        """Plain-dict form for provider adapters and JSON responses."""
        out: dict[str, Any] = {"role": self.role, "content": self.content or ""}
        if self.tool_calls:
            out["tool_calls"] = [tc.to_chat_dict() for tc in self.tool_calls]
        if self.tool_results:
            out["tool_results"] = [tr.to_chat_dict() for tr in self.tool_results]
        return out


# ---------------------------------------------------------------------------
# Streaming
# ---------------------------------------------------------------------------


@dataclass
class StreamingChunk:
    """One incremental piece of a model turn."""

    text: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    is_complete: bool = False


# ---------------------------------------------------------------------------
# Diagnostics and responses
# ---------------------------------------------------------------------------


class LogEntry(BaseModel):
    """A leveled diagnostic event recorded by the trace sink."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    level: LogLevel
    component: str
    message: str
    data: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level,
            "component": self.component,
            "message": self.message,
            "data": to_jsonable(self.data) if self.data is not None else None,
        }


class AgentLoopResponse(BaseModel):
    """Final result of AgentLoop.run()."""

    final_answer: str
    history: list[Message] = Field(default_factory=list)
    logs: list[LogEntry] = Field(default_factory=list)


__all__ = [
    "Role",
    "LogLevel",
    "ToolCall",
    "ToolResult",
    "Message",
    "StreamingChunk",
    "LogEntry",
    "AgentLoopResponse",
    "to_jsonable",
]
