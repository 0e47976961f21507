"""FastAPI router for the agent loop."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from .builtin_tools import get_builtin_tools
from .config import DEFAULT_MEMORY_DB_PATH, DEFAULT_MODEL, AgentLoopConfig, MemoryConfig, ModelProviderConfig
from .loop import AgentLoop

router = APIRouter(prefix="/agent", tags=["agent"])


class AgentRunRequest(BaseModel):
    """Request body for POST /agent/run."""

    prompt: str = Field(..., description="Initial user prompt")
    messages: list[str] = Field(default_factory=list, description="Additional user messages to send first")
    model: str = Field(
        DEFAULT_MODEL,
        description=(
            "LLM model in 'provider:model' format (e.g. 'openai:gpt-4o-mini', "
            "'gemini:gemini-2.5-flash'). If no known provider prefix is present, "
            "the value is treated as an Ollama model name."
        ),
    )
    tools: list[str] | None = Field(None, description="Built-in tool names to enable; all when omitted")
    user_id: str | None = Field(None, description="When set, the conversation is mirrored to durable memory")
    max_iterations: int | None = Field(None, ge=1)


class AgentRunResponse(BaseModel):
    """Response for POST /agent/run."""

    final_answer: str
    history: list[dict[str, Any]]
    logs: list[dict[str, Any]]


def build_config(request: AgentRunRequest) -> AgentLoopConfig:
    memory = MemoryConfig()
    if request.user_id:
        memory = MemoryConfig(store_path=DEFAULT_MEMORY_DB_PATH, user_id=request.user_id)
    config = AgentLoopConfig(
        initial_prompt=request.prompt,
        tools=get_builtin_tools(request.tools),
        llm_provider=ModelProviderConfig(model=request.model),
        memory=memory,
    )
    if request.max_iterations is not None:
        config.max_iterations = request.max_iterations
    return config


@router.post("/run", response_model=AgentRunResponse)
async def run_agent(request: AgentRunRequest) -> AgentRunResponse:
    """Run the agent loop to completion and return the answer, history and trace."""
    try:
        config = build_config(request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    try:
        loop = AgentLoop(config)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e)) from e

    try:
        response = await loop.run(request.messages)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
    finally:
        loop.close()

    return AgentRunResponse(
        final_answer=response.final_answer,
        history=[m.to_chat_dict() for m in response.history],
        logs=[entry.to_dict() for entry in response.logs],
    )


__all__ = ["router", "AgentRunRequest", "AgentRunResponse", "build_config"]
