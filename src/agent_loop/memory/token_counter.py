"""Rough, deterministic token estimates for messages."""

from __future__ import annotations

import json
import math
from collections.abc import Iterable
from typing import Any

from ..models import Message

# Chars per token estimate (English text)
AVG_CHARS_PER_TOKEN = 4

MESSAGE_OVERHEAD = 4
TOOL_CALL_OVERHEAD = 3
TOOL_RESULT_OVERHEAD = 3
MESSAGE_LIST_OVERHEAD = 3


def _serialized_length(value: Any) -> int:
    return len(json.dumps(value, default=str))


def _tokens_for_chars(length: int) -> int:
    return math.ceil(length / AVG_CHARS_PER_TOKEN)


class TokenCounter:
    """Not a tokenizer: monotonic in content size and a pure function of the message."""

    @staticmethod
    def estimate_message_tokens(message: Message) -> int:
        total = MESSAGE_OVERHEAD + _tokens_for_chars(len(message.content or ""))

        for call in message.tool_calls or []:
            total += TOOL_CALL_OVERHEAD
            total += _tokens_for_chars(len(call.name) + _serialized_length(call.params))

        for result in message.tool_results or []:
            total += TOOL_RESULT_OVERHEAD
            total += _tokens_for_chars(_serialized_length(result.result))

        return total

    @classmethod
    def estimate_messages_tokens(cls, messages: Iterable[Message]) -> int:
        return MESSAGE_LIST_OVERHEAD + sum(cls.estimate_message_tokens(m) for m in messages)


__all__ = ["TokenCounter", "AVG_CHARS_PER_TOKEN"]
