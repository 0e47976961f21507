"""Agent loop configuration: defaults, paths and construction options."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from .models import LogLevel
from .tools import DEFAULT_TOOL_RETRIES, BaseTool

load_dotenv()

DATA_DIR = Path(os.getenv("AGENT_LOOP_DATA_DIR") or Path.cwd() / "db")
DEFAULT_MEMORY_DB_PATH = DATA_DIR / "memory" / "messages.db"

DEFAULT_MODEL = os.getenv("AGENT_LOOP_MODEL", "openai:gpt-4.1-nano")
DEFAULT_MAX_TOKENS = 4000
DEFAULT_SAFETY_MARGIN = 100
DEFAULT_USER_ID = "default_user"
MAX_TURNS_WITHOUT_TOOLS = 3
DEFAULT_MAX_ITERATIONS: int | None = None


class ModelProviderConfig(BaseModel):
    """Which model to call and how."""

    api_key: str | None = Field(
        default=None,
        description="Provider credentials; falls back to the provider's environment variable.",
    )
    model: str = Field(
        default=DEFAULT_MODEL,
        description="'provider:model' (e.g. 'openai:gpt-4o-mini'); a bare name is an Ollama model.",
    )
    max_tokens: int | None = None
    temperature: float | None = None
    base_url: str | None = None


class LoggingConfig(BaseModel):
    enabled: bool = True
    level: LogLevel = "info"


class MemoryConfig(BaseModel):
    """Context window budget and optional durable mirroring."""

    store_path: Path | None = Field(
        default=None,
        description="SQLite file for durable cross-session memory. None keeps memory local only.",
    )
    user_id: str = DEFAULT_USER_ID
    max_tokens: int = DEFAULT_MAX_TOKENS
    safety_margin: int = DEFAULT_SAFETY_MARGIN
    strategy: Literal["sliding", "basic"] = "sliding"


class AgentLoopConfig(BaseModel):
    """Everything needed to build an AgentLoop."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    initial_prompt: str
    tools: list[BaseTool] = Field(default_factory=list)
    llm_provider: ModelProviderConfig = Field(default_factory=ModelProviderConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    tool_retries: int = DEFAULT_TOOL_RETRIES
    parallel_tool_execution: bool = True
    max_turns_without_tools: int = MAX_TURNS_WITHOUT_TOOLS
    max_iterations: int | None = DEFAULT_MAX_ITERATIONS
    final_answer_detector: Callable[[str], bool] | None = None


__all__ = [
    "DATA_DIR",
    "DEFAULT_MEMORY_DB_PATH",
    "DEFAULT_MODEL",
    "DEFAULT_MAX_TOKENS",
    "DEFAULT_SAFETY_MARGIN",
    "MAX_TURNS_WITHOUT_TOOLS",
    "DEFAULT_MAX_ITERATIONS",
    "ModelProviderConfig",
    "LoggingConfig",
    "MemoryConfig",
    "AgentLoopConfig",
]
