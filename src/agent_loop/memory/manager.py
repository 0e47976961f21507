"""Context store: canonical, append-only conversation history with a budgeted view."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from ..models import Message, ToolCall, ToolResult
from ..trace import TraceLogger
from .sliding_window import EvictionStrategy
from .token_counter import TokenCounter

TOOL_RESULTS_CONTENT = "Tool execution results"


class MemorySearchResult(BaseModel):
    messages: list[Message] = Field(default_factory=list)
    score: float = 0.0


class ContextStore(ABC):
    """Interface shared by the local store and its mirroring decorator."""

    @abstractmethod
    async def add_user_message(self, content: str, metadata: dict[str, Any] | None = None) -> Message:
        ...

    @abstractmethod
    async def add_assistant_message(
        self,
        content: str,
        tool_calls: list[ToolCall] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Message:
        ...

    @abstractmethod
    async def add_tool_results(
        self,
        results: list[ToolResult],
        content: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Message:
        ...

    @abstractmethod
    def get_messages_for_prompt(self) -> list[Message]:
        ...

    @property
    @abstractmethod
    def messages(self) -> list[Message]:
        ...

    @abstractmethod
    async def search_memory(self, query: str, limit: int = 10) -> MemorySearchResult:
        ...

    @abstractmethod
    def clear_memory(self) -> None:
        ...

    def __len__(self) -> int:
        return len(self.messages)

    def get_current_token_count(self) -> int:
        return TokenCounter.estimate_messages_tokens(self.messages)

    def close(self) -> None:
        """Release resources held by the store. Local memory holds none."""


class MemoryManager(ContextStore):
    """
    Local conversation memory.

    Writes only ever append. Eviction never touches the stored history; it
    only decides which messages `get_messages_for_prompt()` exposes.
    """

    COMPONENT = "MemoryManager"

    def __init__(self, strategy: EvictionStrategy, trace: TraceLogger) -> None:
        self._strategy = strategy
        self._trace = trace
        self._messages: list[Message] = []

    def _append(self, message: Message) -> Message:
        self._messages.append(message)
        return message

    async def add_user_message(self, content: str, metadata: dict[str, Any] | None = None) -> Message:
        return self._append(Message(role="user", content=content))

    async def add_assistant_message(
        self,
        content: str,
        tool_calls: list[ToolCall] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Message:
        return self._append(Message(role="assistant", content=content, tool_calls=tool_calls or None))

    async def add_tool_results(
        self,
        results: list[ToolResult],
        content: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Message:
        return self._append(
            Message(role="system", content=content or TOOL_RESULTS_CONTENT, tool_results=list(results))
        )

    def get_messages_for_prompt(self) -> list[Message]:
        view = self._strategy.apply(self._messages)
        evicted = len(self._messages) - len(view)
        if evicted > 0:
            self._trace.info(
                self.COMPONENT,
                f"Evicted {evicted} oldest messages to fit context limits",
                {"kept": len(view), "tokens": TokenCounter.estimate_messages_tokens(view)},
            )
        return view

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    async def search_memory(self, query: str, limit: int = 10) -> MemorySearchResult:
        """No semantic index locally: return the most recent messages."""
        return MemorySearchResult(messages=self._messages[-limit:], score=0.5)

    def clear_memory(self) -> None:
        self._messages = []

    def export_memory(self) -> dict[str, Any]:
        return {
            "messages": [m.model_dump() for m in self._messages],
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def import_memory(self, data: Any) -> None:
        if not isinstance(data, dict) or not isinstance(data.get("messages"), list):
            self._trace.error(self.COMPONENT, "Failed to import memory data, invalid format")
            return
        self._messages = [Message.model_validate(m) for m in data["messages"]]
        self._trace.info(self.COMPONENT, "Imported memory data", {"message_count": len(self._messages)})


__all__ = ["ContextStore", "MemoryManager", "MemorySearchResult", "TOOL_RESULTS_CONTENT"]
