"""Eviction strategies that pick the subset of history sent to the model."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..models import Message
from .token_counter import TokenCounter

DEFAULT_SAFETY_MARGIN = 100


class EvictionStrategy(ABC):
    @abstractmethod
    def apply(self, messages: list[Message]) -> list[Message]:
        ...


class BasicStrategy(EvictionStrategy):
    """Keeps everything."""

    def apply(self, messages: list[Message]) -> list[Message]:
        return list(messages)


class SlidingWindowStrategy(EvictionStrategy):
    """
    Keep the most recent messages that fit the token budget.

    System messages are pinned: they are always kept, even when they alone
    exceed the budget. Non-system messages are admitted newest first while the
    running total stays strictly under `max_tokens - safety_margin`; the first
    one that does not fit ends the walk, so everything older is evicted. The
    kept messages are returned in their original order.
    """

    def __init__(self, max_tokens: int = 4000, safety_margin: int = DEFAULT_SAFETY_MARGIN) -> None:
        self.max_tokens = max_tokens
        self.safety_margin = safety_margin

    def apply(self, messages: list[Message]) -> list[Message]:
        if not messages:
            return []

        if TokenCounter.estimate_messages_tokens(messages) <= self.max_tokens:
            return list(messages)

        keep = [m.role == "system" for m in messages]
        current = TokenCounter.estimate_messages_tokens(m for m in messages if m.role == "system")
        limit = self.max_tokens - self.safety_margin

        for i in range(len(messages) - 1, -1, -1):
            message = messages[i]
            if message.role == "system":
                continue
            tokens = TokenCounter.estimate_message_tokens(message)
            if current + tokens >= limit:
                break
            keep[i] = True
            current += tokens

        return [m for m, kept in zip(messages, keep) if kept]


__all__ = ["EvictionStrategy", "BasicStrategy", "SlidingWindowStrategy"]
