"""Tool protocol, parameter validation and the tool registry / executor."""

from __future__ import annotations

import asyncio
import inspect
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any, Callable, Literal

from pydantic import BaseModel

from .errors import ToolExecutionError
from .models import ToolCall, ToolResult
from .trace import TraceLogger

DEFAULT_TOOL_RETRIES = 3
DEFAULT_RETRY_DELAY = 0.5
DEFAULT_MAX_RETRY_DELAY = 8.0

ParameterKind = Literal["string", "number", "integer", "boolean", "object", "array", "any"]


class ParameterSpec(BaseModel):
    """Declared shape of one tool parameter."""

    type: ParameterKind = "any"
    description: str = ""
    required: bool = False

    def accepts(self, value: Any) -> bool:
        if self.type == "any":
            return True
        if self.type == "string":
            return isinstance(value, str)
        if self.type == "boolean":
            return isinstance(value, bool)
        if self.type == "integer":
            return isinstance(value, int) and not isinstance(value, bool)
        if self.type == "number":
            return isinstance(value, (int, float)) and not isinstance(value, bool)
        if self.type == "object":
            return isinstance(value, dict)
        return isinstance(value, list)


def validate_params(spec: Mapping[str, ParameterSpec], params: Mapping[str, Any]) -> list[str]:
    """Return a list of problems with `params` against `spec` (empty when valid)."""
    problems: list[str] = []
    for name, param in spec.items():
        value = params.get(name)
        if value is None:
            if param.required:
                problems.append(f"missing required parameter '{name}'")
            continue
        if not param.accepts(value):
            problems.append(f"parameter '{name}' must be of type {param.type}")
    return problems


# ---------------------------------------------------------------------------
# Tool protocol
# ---------------------------------------------------------------------------


class BaseTool(ABC):
    """Base class for tools the model can call."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        ...

    @property
    def parameters(self) -> dict[str, ParameterSpec]:
        """Parameter name -> declared shape."""
        return {}

    @abstractmethod
    async def execute(self, params: dict[str, Any]) -> Any:
        """Run the tool. Raise on failure; the executor handles retries."""
        ...

    def to_tool_schema(self) -> dict[str, Any]:
        """Standard function-calling schema (OpenAI-style) for any LLM provider."""
        properties: dict[str, Any] = {}
        for pname, spec in self.parameters.items():
            prop: dict[str, Any] = {"description": spec.description}
            if spec.type != "any":
                prop["type"] = spec.type
            properties[pname] = prop
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": properties,
                    "required": [n for n, s in self.parameters.items() if s.required],
                },
            },
        }


class FunctionTool(BaseTool):
    """Adapts a plain callable taking a params dict into a tool.

    Coroutine functions are awaited; blocking functions run in a worker thread.
    """

    def __init__(
        self,
        name: str,
        description: str,
        func: Callable[[dict[str, Any]], Any],
        parameters: Mapping[str, ParameterSpec | Mapping[str, Any]] | None = None,
    ) -> None:
        self._name = name
        self._description = description
        self._func = func
        self._parameters = {
            k: v if isinstance(v, ParameterSpec) else ParameterSpec.model_validate(v)
            for k, v in (parameters or {}).items()
        }

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def parameters(self) -> dict[str, ParameterSpec]:
        return dict(self._parameters)

    async def execute(self, params: dict[str, Any]) -> Any:
        if inspect.iscoroutinefunction(self._func):
            return await self._func(params)
        result = await asyncio.to_thread(self._func, params)
        if inspect.isawaitable(result):
            result = await result
        return result


# ---------------------------------------------------------------------------
# Registry and executor
# ---------------------------------------------------------------------------


class ToolManager:
    """
    Name-keyed tool registry that executes tool calls with retry.

    Execution never raises: unknown tools, invalid parameters and exhausted
    retries all come back as failed ToolResults so the model can react.
    """

    COMPONENT = "ToolManager"

    def __init__(
        self,
        tools: Iterable[BaseTool],
        trace: TraceLogger,
        *,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        max_retry_delay: float = DEFAULT_MAX_RETRY_DELAY,
    ) -> None:
        self._trace = trace
        self._tools: dict[str, BaseTool] = {}
        self.retry_delay = retry_delay
        self.max_retry_delay = max_retry_delay
        for tool in tools:
            if tool.name in self._tools:
                raise ValueError(f"Tool '{tool.name}' is already registered.")
            self._tools[tool.name] = tool
        self._trace.info(self.COMPONENT, f"Initialized with {len(self._tools)} tools")

    def get_tools(self) -> list[BaseTool]:
        return list(self._tools.values())

    def get_tool(self, name: str) -> BaseTool | None:
        return self._tools.get(name)

    def _backoff(self, attempt: int) -> float:
        return min(self.retry_delay * (2**attempt), self.max_retry_delay)

    def _failed(self, call: ToolCall, message: str, cause: BaseException | None = None) -> ToolResult:
        return ToolResult(
            tool_call=call,
            result=None,
            error=ToolExecutionError(message, call, cause),
        )

    async def execute_tool(self, call: ToolCall, retries: int = DEFAULT_TOOL_RETRIES) -> ToolResult:
        """Execute one call; on failure retry up to `retries` more times."""
        tool = self._tools.get(call.name)
        if tool is None:
            self._trace.error(self.COMPONENT, f"Tool not found: {call.name}")
            return self._failed(call, f"Tool not found: {call.name}")

        problems = validate_params(tool.parameters, call.params)
        if problems:
            message = f"Invalid parameters for tool {call.name}: {'; '.join(problems)}"
            self._trace.error(self.COMPONENT, message, {"params": call.params})
            return self._failed(call, message)

        self._trace.debug(self.COMPONENT, f"Executing tool: {call.name}", {"params": call.params})

        retries = max(0, retries)
        last_error: Exception | None = None
        for attempt in range(retries + 1):
            try:
                start = time.monotonic()
                result = await tool.execute(call.params)
                self._trace.debug(
                    self.COMPONENT,
                    f"Tool executed successfully: {call.name}",
                    {"duration_ms": int((time.monotonic() - start) * 1000), "attempt": attempt + 1},
                )
                return ToolResult(tool_call=call, result=result)
            except Exception as e:
                last_error = e
                self._trace.warn(
                    self.COMPONENT,
                    f"Error executing tool: {call.name}",
                    {"attempt": attempt + 1, "retries_left": retries - attempt, "error": str(e)},
                )
                if attempt < retries:
                    await asyncio.sleep(self._backoff(attempt))

        self._trace.error(
            self.COMPONENT,
            f"All retry attempts failed for tool: {call.name}",
            {"error": str(last_error)},
        )
        return self._failed(call, f"Failed to execute tool {call.name}: {last_error}", last_error)

    async def execute_tools(
        self,
        calls: list[ToolCall],
        parallel: bool = True,
        retries: int = DEFAULT_TOOL_RETRIES,
    ) -> list[ToolResult]:
        """Execute a batch of calls. Results mirror the order of `calls`."""
        if not calls:
            return []

        self._trace.info(self.COMPONENT, f"Executing {len(calls)} tools, parallel={parallel}")

        if parallel:
            return list(await asyncio.gather(*(self.execute_tool(c, retries) for c in calls)))

        results: list[ToolResult] = []
        for call in calls:
            results.append(await self.execute_tool(call, retries))
        return results


__all__ = [
    "DEFAULT_TOOL_RETRIES",
    "ParameterSpec",
    "validate_params",
    "BaseTool",
    "FunctionTool",
    "ToolManager",
]
