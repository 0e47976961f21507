"""Abstract LLM provider interface for the agent loop."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Any

from ..models import Message


@dataclass
class ToolCallDelta:
    """A fragment of one tool call: a name and/or a piece of its JSON arguments."""

    index: int = 0
    id: str | None = None
    name: str | None = None
    arguments: str = ""


@dataclass
class ProviderEvent:
    """One normalized event from a provider stream."""

    text: str = ""
    tool_call_deltas: list[ToolCallDelta] = field(default_factory=list)
    finish_reason: str | None = None  # "stop" | "tool_calls" | "length" | ...


class LLMProvider(ABC):
    """
    Abstract LLM provider. Implement this to plug in any backend.

    The stream client only depends on this interface: providers translate
    their own wire events into ProviderEvents and leave argument assembly,
    completion detection and error wrapping to the client.
    """

    default_model: str = ""

    @abstractmethod
    def stream(
        self,
        messages: list[Message],
        *,
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> AsyncGenerator[ProviderEvent, None]:
        """
        Stream one completion as ProviderEvents; the last one carries a finish_reason.

        Implement as an async generator: the client closes it as soon as the
        turn completes, which releases the underlying HTTP stream.
        """
        ...


__all__ = ["ToolCallDelta", "ProviderEvent", "LLMProvider"]
