"""Agent loop: the model decides, tools execute, the model continues."""

from .builtin_tools import CalculatorTool, GetTimeTool, get_builtin_tools
from .config import AgentLoopConfig, LoggingConfig, MemoryConfig, ModelProviderConfig
from .errors import AgentLoopError, LLMProviderError, ToolExecutionError
from .llm_client import CompletionStream, ModelStreamClient
from .loop import AgentLoop, is_likely_final_answer
from .memory import (
    BasicStrategy,
    ContextStore,
    MemoryManager,
    MirroredMemoryManager,
    SlidingWindowStrategy,
    SQLiteExternalMemory,
    TokenCounter,
)
from .models import AgentLoopResponse, LogEntry, Message, StreamingChunk, ToolCall, ToolResult
from .prompt import PromptManager
from .providers import LLMProvider, ProviderEvent, ToolCallDelta, create_provider
from .tools import BaseTool, FunctionTool, ParameterSpec, ToolManager
from .trace import TraceLogger

__all__ = [
    "AgentLoop",
    "AgentLoopConfig",
    "AgentLoopResponse",
    "AgentLoopError",
    "LLMProviderError",
    "ToolExecutionError",
    "ModelProviderConfig",
    "LoggingConfig",
    "MemoryConfig",
    "Message",
    "ToolCall",
    "ToolResult",
    "StreamingChunk",
    "LogEntry",
    "BaseTool",
    "FunctionTool",
    "ParameterSpec",
    "ToolManager",
    "GetTimeTool",
    "CalculatorTool",
    "get_builtin_tools",
    "ContextStore",
    "MemoryManager",
    "MirroredMemoryManager",
    "SQLiteExternalMemory",
    "BasicStrategy",
    "SlidingWindowStrategy",
    "TokenCounter",
    "LLMProvider",
    "ProviderEvent",
    "ToolCallDelta",
    "create_provider",
    "ModelStreamClient",
    "CompletionStream",
    "PromptManager",
    "TraceLogger",
    "is_likely_final_answer",
]
