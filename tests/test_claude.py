"""Tests for the Claude client with a mocked Anthropic SDK."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from conftest import png
from productshot.errors import AnalysisError, ConfigError, ParseError
from productshot.generators import STRING_ARRAY_SCHEMA
from productshot.generators.claude import ClaudeClient


def reply(text: str):
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)])


@pytest.fixture
def client():
    client = ClaudeClient(api_key="test-key")
    client.client.messages.create = AsyncMock()
    return client


def test_missing_key(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    with pytest.raises(ConfigError):
        ClaudeClient()


@pytest.mark.asyncio
class TestClaudeClient:
    async def test_analyze_sends_image(self, client):
        client.client.messages.create.return_value = reply(" a blue patterned phone case ")
        assert await client.analyze(png("case")) == "a blue patterned phone case"

        kwargs = client.client.messages.create.call_args.kwargs
        image_block = kwargs["messages"][0]["content"][0]
        assert image_block["source"]["data"] == png("case").b64
        assert image_block["source"]["media_type"] == "image/png"

    async def test_analyze_empty(self, client):
        client.client.messages.create.return_value = reply("")
        with pytest.raises(AnalysisError):
            await client.analyze(png("case"))

    async def test_structured_parses_fenced_json(self, client):
        client.client.messages.create.return_value = reply('```json\n["one", "two"]\n```')
        assert await client.generate_structured("prompts", STRING_ARRAY_SCHEMA) == ["one", "two"]
        prompt = client.client.messages.create.call_args.kwargs["messages"][0]["content"]
        assert '"ARRAY"' in prompt

    async def test_structured_invalid(self, client):
        client.client.messages.create.return_value = reply("Sure! Here are some prompts.")
        with pytest.raises(ParseError):
            await client.generate_structured("prompts", STRING_ARRAY_SCHEMA)
