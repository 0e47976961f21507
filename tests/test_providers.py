"""Unit tests for provider selection and message conversion (no network)."""
from __future__ import annotations

import unittest

from agent_loop.config import ModelProviderConfig
from agent_loop.models import Message, ToolCall, ToolResult
from agent_loop.providers import GeminiProvider, OllamaProvider, OpenAIProvider, create_provider, parse_model
from agent_loop.providers.ollama import _message_to_chat


def tool_exchange(call_id: str = "c1") -> list[Message]:
    call = ToolCall(id=call_id, name="calculator", params={"expression": "2+2"})
    return [
        Message(role="system", content="instructions"),
        Message(role="user", content="What is 2+2?"),
        Message(role="assistant", content="", tool_calls=[call]),
        Message(role="system", content="Tool: calculator\nResult: 4", tool_results=[ToolResult(tool_call=call, result=4)]),
    ]


class TestParseModel(unittest.TestCase):
    def test_known_prefixes(self) -> None:
        self.assertEqual(parse_model("openai:gpt-4o-mini"), ("openai", "gpt-4o-mini"))
        self.assertEqual(parse_model("gemini:gemini-2.5-flash"), ("gemini", "gemini-2.5-flash"))
        self.assertEqual(parse_model("Google:gemini-2.5-pro"), ("google", "gemini-2.5-pro"))

    def test_bare_names_are_ollama(self) -> None:
        self.assertEqual(parse_model("llama3.2"), ("ollama", "llama3.2"))
        self.assertEqual(parse_model("qwen3:8b"), ("ollama", "qwen3:8b"))
        self.assertEqual(parse_model("ollama:qwen3:8b"), ("ollama", "qwen3:8b"))

    def test_create_provider(self) -> None:
        provider, model = create_provider(ModelProviderConfig(model="openai:gpt-4o-mini", api_key="sk-test"))
        self.assertIsInstance(provider, OpenAIProvider)
        self.assertEqual(model, "gpt-4o-mini")

        provider, model = create_provider(ModelProviderConfig(model="gemini:gemini-2.5-flash", api_key="k"))
        self.assertIsInstance(provider, GeminiProvider)

        provider, model = create_provider(ModelProviderConfig(model="llama3.2", base_url="http://ollama:11434"))
        self.assertIsInstance(provider, OllamaProvider)
        self.assertEqual(provider.base_url, "http://ollama:11434")


class TestMessageConversion(unittest.TestCase):
    def test_openai_tool_results_become_tool_messages(self) -> None:
        out = OpenAIProvider._to_openai_messages(tool_exchange())
        self.assertEqual([m["role"] for m in out], ["system", "user", "assistant", "tool"])
        self.assertEqual(out[2]["tool_calls"][0]["function"]["arguments"], '{"expression": "2+2"}')
        self.assertEqual(out[3], {"role": "tool", "tool_call_id": "c1", "content": "4"})

    def test_openai_orphaned_results_stay_system_text(self) -> None:
        messages = tool_exchange()
        out = OpenAIProvider._to_openai_messages([messages[0], messages[3]])
        self.assertEqual(out[-1], {"role": "system", "content": "Tool: calculator\nResult: 4"})

    def test_ollama_conversion(self) -> None:
        messages = tool_exchange()
        assistant = _message_to_chat(messages[2])[0]
        self.assertEqual(assistant["tool_calls"][0]["function"]["arguments"], {"expression": "2+2"})
        self.assertEqual(_message_to_chat(messages[3]), [{"role": "tool", "content": "calculator: 4"}])

    def test_gemini_system_instruction(self) -> None:
        contents, instruction = GeminiProvider._to_gemini_contents(tool_exchange())
        self.assertEqual(instruction, "instructions")
        self.assertEqual([c.role for c in contents], ["user", "model", "user"])
        self.assertEqual(contents[1].parts[0].function_call.name, "calculator")


if __name__ == "__main__":
    unittest.main()
