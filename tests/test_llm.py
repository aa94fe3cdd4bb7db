"""
Tests for the LLM clients and the client factory.
"""

import pytest

from ghostcode.core.config import LLMConfig, LLMProvider
from ghostcode.llm import MockLLMClient, ModelCallError, OpenAICompatibleClient, create_llm_client
from ghostcode.llm.openai_client import sdk_base_url


class TestSdkBaseUrl:
    @pytest.mark.parametrize("url,expected", [
        ("https://api.openai.com/v1/chat/completions", "https://api.openai.com/v1"),
        ("https://api.anthropic.com/v1/messages", "https://api.anthropic.com/v1"),
        ("http://localhost:11434/api/chat", "http://localhost:11434/v1"),
        ("https://generativelanguage.googleapis.com/v1beta/openai/", "https://generativelanguage.googleapis.com/v1beta/openai"),
        ("http://127.0.0.1:1234/v1", "http://127.0.0.1:1234/v1"),
    ])
    def test_strips_endpoint_suffix(self, url, expected):
        assert sdk_base_url(url) == expected


class TestMockClient:
    @pytest.mark.asyncio
    async def test_echoes_request(self):
        client = MockLLMClient()
        reply = await client.generate_completion([
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "<augment_rules>\nr\n</augment_rules>\n\nUser Request:\nexplain   decorators"},
        ])

        assert reply == 'Mock response (mock-llm, call 1): you asked about "explain decorators".'
        assert client.call_count == 1
        assert len(client.last_messages) == 2

    @pytest.mark.asyncio
    async def test_command_and_tool_replies(self):
        client = MockLLMClient(model="m")

        command = await client.generate_completion([{"role": "user", "content": "/status"}])
        tool = await client.generate_completion([{"role": "user", "content": '<tool_result name="x">{}</tool_result>'}])

        assert command == "Mock mode: the 'status' command was forwarded to m."
        assert tool.startswith("The changes have been applied")

    @pytest.mark.asyncio
    async def test_model_override(self):
        reply = await MockLLMClient().generate_completion([{"role": "user", "content": "hi"}], model="other")
        assert "(other, call 1)" in reply

    @pytest.mark.asyncio
    async def test_stream_joins_to_full_reply(self):
        client = MockLLMClient()
        chunks = []
        content = await client.generate_completion_stream([{"role": "user", "content": "hi"}], chunks.append)

        assert "".join(chunks) == content
        assert len(chunks) > 1

    @pytest.mark.asyncio
    async def test_stream_stops_when_callback_returns_false(self):
        chunks = []

        def callback(chunk):
            chunks.append(chunk)
            return False

        content = await MockLLMClient().generate_completion_stream([{"role": "user", "content": "hi"}], callback)
        assert chunks == [content]

    def test_set_model(self):
        client = MockLLMClient()
        client.set_model("x")
        assert client.get_model_name() == "x"


class TestFactory:
    def test_mock(self):
        client = create_llm_client(LLMConfig(model="gpt-4o"), mock=True)
        assert isinstance(client, MockLLMClient)
        assert client.model == "gpt-4o"

    def test_openai_compatible(self):
        client = create_llm_client(LLMConfig.for_provider(LLMProvider.OLLAMA))

        assert isinstance(client, OpenAICompatibleClient)
        assert client.base_url == "http://localhost:11434/v1"
        assert client.model == "mistral"


class TestModelCallError:
    def test_fields(self):
        error = ModelCallError("429 rate limit", status_code=429)
        assert error.retryable()
        assert error.status_code == 429
        assert str(error) == "429 rate limit"

        assert not ModelCallError("400: bad", status_code=400, retryable=False).retryable()
