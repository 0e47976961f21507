from __future__ import annotations

from ..config import MemoryConfig
from ..trace import TraceLogger
from .external import ExternalMemory, MirroredMemoryManager, SQLiteExternalMemory
from .manager import ContextStore, MemoryManager
from .sliding_window import BasicStrategy, EvictionStrategy, SlidingWindowStrategy


def create_strategy(config: MemoryConfig) -> EvictionStrategy:
    if config.strategy == "basic":
        return BasicStrategy()
    return SlidingWindowStrategy(config.max_tokens, config.safety_margin)


def create_memory_manager(
    config: MemoryConfig,
    trace: TraceLogger,
    sink: ExternalMemory | None = None,
) -> ContextStore:
    """Local memory, wrapped in a mirroring decorator when a durable sink is configured."""
    local = MemoryManager(create_strategy(config), trace)

    if sink is None and config.store_path is not None:
        try:
            sink = SQLiteExternalMemory(config.store_path)
        except Exception as e:
            trace.error(
                MemoryManager.COMPONENT,
                "Failed to open external memory, using local memory only",
                {"path": str(config.store_path), "error": str(e)},
            )

    if sink is None:
        trace.info(
            MemoryManager.COMPONENT,
            "Initialized (local memory only)",
            {"max_tokens": config.max_tokens, "strategy": config.strategy},
        )
        return local

    trace.info(
        MemoryManager.COMPONENT,
        "Initialized with external memory",
        {"max_tokens": config.max_tokens, "strategy": config.strategy, "user_id": config.user_id},
    )
    return MirroredMemoryManager(local, sink, trace, user_id=config.user_id)


__all__ = ["create_strategy", "create_memory_manager"]
