"""Main agent–tool loop: model turn → tool execution → repeat until a final answer."""

from __future__ import annotations

from collections.abc import Sequence

from .config import AgentLoopConfig
from .errors import AgentLoopError
from .llm_client import ModelStreamClient
from .memory import ContextStore, create_memory_manager
from .models import AgentLoopResponse, Message, ToolCall
from .prompt import PromptManager
from .providers import LLMProvider, create_provider
from .tools import DEFAULT_RETRY_DELAY, ToolManager
from .trace import TraceLogger

COMPONENT = "AgentLoop"

FINAL_ANSWER_INDICATORS = (
    "in conclusion",
    "to summarize",
    "final answer",
    "the answer is",
)


def is_likely_final_answer(content: str) -> bool:
    """Heuristic: the turn reads like a conclusion rather than a question or a plan."""
    lower = content.lower()
    if any(indicator in lower for indicator in FINAL_ANSWER_INDICATORS):
        return True
    return len(content) > 100 and "?" not in content


def _seen(calls: list[ToolCall], call: ToolCall) -> bool:
    return any(c is call or (c.id and c.id == call.id) for c in calls)


class AgentLoop:
    """
    Drives the conversation between the model and the registered tools.

    Each turn composes a prompt from the budgeted history, streams the model
    reply, records it, and executes any tool calls it carries. The loop ends
    after too many consecutive turns without tool calls, when a turn reads as a
    final answer, or when an optional `max_iterations` cap is reached.
    """

    def __init__(
        self,
        config: AgentLoopConfig,
        *,
        provider: LLMProvider | None = None,
        memory: ContextStore | None = None,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ) -> None:
        self.config = config
        self._trace = TraceLogger(enabled=config.logging.enabled, level=config.logging.level)
        self._prompt_manager = PromptManager(self._trace)
        self._tool_manager = ToolManager(config.tools, self._trace, retry_delay=retry_delay)

        llm = config.llm_provider
        model: str | None = None
        if provider is None:
            provider, model = create_provider(llm)
        self._llm_client = ModelStreamClient(
            provider,
            self._trace,
            model=model,
            max_tokens=llm.max_tokens,
            temperature=llm.temperature,
        )
        self._memory = memory if memory is not None else create_memory_manager(config.memory, self._trace)
        self._detect_final_answer = config.final_answer_detector or is_likely_final_answer
        self._running = False

        self._trace.info(
            COMPONENT,
            "Initialized",
            {
                "tools": [t.name for t in config.tools],
                "parallel_tool_execution": config.parallel_tool_execution,
                "max_iterations": config.max_iterations,
            },
        )

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def history(self) -> list[Message]:
        return self._memory.messages

    @property
    def memory(self) -> ContextStore:
        return self._memory

    async def run(self, additional_messages: Sequence[str] = ()) -> AgentLoopResponse:
        """
        Run the loop to completion.

        `additional_messages` are appended as user messages first; the initial
        prompt is only seeded when the history is still empty after that.

        Raises:
            AgentLoopError: if a run is already in progress, or on any fatal
                failure (the model call failing, a memory write failing).
        """
        if self._running:
            raise AgentLoopError("Agent loop is already running")
        self._running = True
        if isinstance(additional_messages, str):
            additional_messages = [additional_messages]

        try:
            self._trace.info(COMPONENT, "Starting agent loop", {"additional_messages": len(additional_messages)})
            for content in additional_messages:
                await self._memory.add_user_message(content)
            if len(self._memory) == 0:
                await self._memory.add_user_message(self.config.initial_prompt)

            final_answer = await self._run_turns()

            self._trace.info(COMPONENT, "Agent loop completed", {"history_size": len(self._memory)})
            return AgentLoopResponse(
                final_answer=final_answer,
                history=self._memory.messages,
                logs=self._trace.get_logs(),
            )
        except AgentLoopError:
            raise
        except Exception as e:
            self._trace.error(COMPONENT, "Error in agent loop", {"error": str(e)})
            raise AgentLoopError(f"Error in agent loop: {e}", e) from e
        finally:
            self._running = False

    async def _run_turns(self) -> str:
        turns_without_tools = 0
        iteration = 0
        while True:
            iteration += 1
            tools = self._tool_manager.get_tools()
            prompt = self._prompt_manager.create_prompt(
                self.config.initial_prompt,
                self._memory.get_messages_for_prompt(),
                tools,
            )
            self._trace.debug(COMPONENT, f"Turn {iteration}: sending {len(prompt)} messages")

            stream = self._llm_client.stream_completion(prompt, tools)
            tool_calls: list[ToolCall] = []
            async for chunk in stream:
                for call in chunk.tool_calls:
                    if not _seen(tool_calls, call):
                        tool_calls.append(call)
            content = stream.text

            if not tool_calls:
                tool_calls = self._prompt_manager.extract_inline_tool_calls(content)

            await self._memory.add_assistant_message(
                self._prompt_manager.format_assistant_content(content),
                tool_calls,
            )

            if tool_calls:
                turns_without_tools = 0
                self._trace.info(
                    COMPONENT,
                    f"Executing {len(tool_calls)} tool calls",
                    {"tools": [c.name for c in tool_calls]},
                )
                results = await self._tool_manager.execute_tools(
                    tool_calls,
                    parallel=self.config.parallel_tool_execution,
                    retries=self.config.tool_retries,
                )
                await self._memory.add_tool_results(results, self._prompt_manager.format_tool_results(results))
            else:
                turns_without_tools += 1
                if turns_without_tools >= self.config.max_turns_without_tools:
                    self._trace.info(
                        COMPONENT,
                        f"No tool calls for {turns_without_tools} consecutive turns, finishing",
                    )
                    return content
                if self._detect_final_answer(content):
                    self._trace.info(COMPONENT, "Detected final answer")
                    return content

            max_iterations = self.config.max_iterations
            if max_iterations is not None and iteration >= max_iterations:
                self._trace.warn(COMPONENT, f"Reached max iterations ({max_iterations}), finishing")
                return self._last_answer()

    def _last_answer(self) -> str:
        # Tool-calling turns are intermediate; answer with the latest reply that was not one.
        for message in reversed(self._memory.messages):
            if message.role != "assistant" or message.tool_calls:
                continue
            if not (message.content or "").strip():
                continue
            return message.content
        return ""

    def close(self) -> None:
        """Release the memory store (e.g. the durable sink's database connection)."""
        if self._running:
            raise AgentLoopError("Cannot close while the agent loop is running")
        self._memory.close()

    def reset(self) -> None:
        """Clear conversation history and trace logs."""
        if self._running:
            raise AgentLoopError("Cannot reset while the agent loop is running")
        self._memory.clear_memory()
        self._trace.clear_logs()
        self._trace.info(COMPONENT, "Agent loop reset")


__all__ = ["AgentLoop", "is_likely_final_answer", "FINAL_ANSWER_INDICATORS"]
