"""Conversation memory: token estimates, eviction and the context store."""

from .external import ExternalMemory, MirroredMemoryManager, SQLiteExternalMemory
from .factory import create_memory_manager, create_strategy
from .manager import ContextStore, MemoryManager, MemorySearchResult
from .sliding_window import BasicStrategy, EvictionStrategy, SlidingWindowStrategy
from .token_counter import TokenCounter

__all__ = [
    "ContextStore",
    "MemoryManager",
    "MemorySearchResult",
    "ExternalMemory",
    "SQLiteExternalMemory",
    "MirroredMemoryManager",
    "EvictionStrategy",
    "BasicStrategy",
    "SlidingWindowStrategy",
    "TokenCounter",
    "create_memory_manager",
    "create_strategy",
]
