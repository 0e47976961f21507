"""Best-effort mirroring of the context store into a durable external memory."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from ..models import Message, ToolCall, ToolResult
from ..trace import TraceLogger
from .manager import ContextStore, MemoryManager, MemorySearchResult
from .sqlite_store import SQLiteMessageStore


class ExternalMemory(ABC):
    """A durable, user-scoped message sink used for cross-session recall."""

    @abstractmethod
    async def add(
        self,
        messages: list[Message],
        *,
        user_id: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        ...

    @abstractmethod
    async def search(self, query: str, *, user_id: str, limit: int = 10) -> list[Message]:
        ...

    def close(self) -> None:
        pass


class SQLiteExternalMemory(ExternalMemory):
    """ExternalMemory on top of SQLiteMessageStore; blocking calls run in a thread."""

    def __init__(self, db_path: Path) -> None:
        self._store = SQLiteMessageStore(db_path)

    async def add(
        self,
        messages: list[Message],
        *,
        user_id: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        for m in messages:
            meta = dict(metadata or {})
            if m.tool_calls:
                meta["tool_calls"] = [tc.to_chat_dict() for tc in m.tool_calls]
            if m.tool_results:
                meta["tool_results"] = [tr.to_chat_dict() for tr in m.tool_results]
            await asyncio.to_thread(
                self._store.insert_message,
                user_id,
                m.role,
                m.content,
                meta or None,
            )

    async def search(self, query: str, *, user_id: str, limit: int = 10) -> list[Message]:
        hits = await asyncio.to_thread(self._store.search_text, user_id, query, limit)
        return [Message(role=row.role, content=row.text) for row, _score in hits]

    def close(self) -> None:
        self._store.close()


class MirroredMemoryManager(ContextStore):
    """
    Decorator around a local MemoryManager that forwards every append to an
    ExternalMemory. Local state stays the source of truth for the run: a
    forwarding failure is logged and never fails the local write.
    """

    COMPONENT = "MemoryManager"

    def __init__(
        self,
        inner: MemoryManager,
        sink: ExternalMemory,
        trace: TraceLogger,
        user_id: str = "default_user",
    ) -> None:
        self._inner = inner
        self._sink = sink
        self._trace = trace
        self.user_id = user_id

    async def _forward(self, message: Message, metadata: dict[str, Any] | None) -> None:
        try:
            await self._sink.add([message], user_id=self.user_id, metadata=metadata)
            self._trace.debug(
                self.COMPONENT,
                f"Mirrored {message.role} message to external memory",
                {"user_id": self.user_id},
            )
        except Exception as e:
            self._trace.error(
                self.COMPONENT,
                f"Failed to mirror {message.role} message to external memory",
                {"user_id": self.user_id, "error": str(e)},
            )

    async def add_user_message(self, content: str, metadata: dict[str, Any] | None = None) -> Message:
        message = await self._inner.add_user_message(content, metadata)
        await self._forward(message, metadata)
        return message

    async def add_assistant_message(
        self,
        content: str,
        tool_calls: list[ToolCall] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Message:
        message = await self._inner.add_assistant_message(content, tool_calls, metadata)
        await self._forward(message, metadata)
        return message

    async def add_tool_results(
        self,
        results: list[ToolResult],
        content: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Message:
        message = await self._inner.add_tool_results(results, content, metadata)
        await self._forward(message, metadata)
        return message

    def get_messages_for_prompt(self) -> list[Message]:
        return self._inner.get_messages_for_prompt()

    @property
    def messages(self) -> list[Message]:
        return self._inner.messages

    async def search_memory(self, query: str, limit: int = 10) -> MemorySearchResult:
        try:
            found = await self._sink.search(query, user_id=self.user_id, limit=limit)
            self._trace.debug(
                self.COMPONENT,
                "Searched external memory",
                {"user_id": self.user_id, "results": len(found)},
            )
            return MemorySearchResult(messages=found, score=1.0 if found else 0.0)
        except Exception as e:
            self._trace.error(self.COMPONENT, "Failed to search external memory", {"error": str(e)})
        return await self._inner.search_memory(query, limit)

    def clear_memory(self) -> None:
        self._inner.clear_memory()
        self._trace.warn(self.COMPONENT, "Local memory cleared, but external memory persists")

    def close(self) -> None:
        self._inner.close()
        self._sink.close()


__all__ = ["ExternalMemory", "SQLiteExternalMemory", "MirroredMemoryManager"]
