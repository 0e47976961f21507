"""Error types raised (or encoded into results) by the agent loop."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ToolCall


class AgentLoopError(Exception):
    """Fatal failure of a run, or misuse of the loop (e.g. re-entrant run)."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class ToolExecutionError(Exception):
    """A tool call that could not be executed. Carried inside a failed ToolResult."""

    def __init__(
        self,
        message: str,
        tool_call: ToolCall,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.tool_call = tool_call
        self.cause = cause


class LLMProviderError(Exception):
    """Transport or API failure while streaming from the model provider."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


__all__ = ["AgentLoopError", "ToolExecutionError", "LLMProviderError"]
