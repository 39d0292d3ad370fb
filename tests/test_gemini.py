"""Tests for the Gemini REST client against a mocked transport."""

import base64
import json

import httpx
import pytest

from conftest import png
from productshot.errors import AnalysisError, ConfigError, GenerationError, ParseError
from productshot.generators import STRING_ARRAY_SCHEMA
from productshot.generators.gemini import GeminiClient


def text_response(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def image_response(data: bytes, mime_type: str = "image/png") -> dict:
    return {"candidates": [{"content": {"parts": [
        {"text": "Here is your image"},
        {"inlineData": {"mimeType": mime_type, "data": base64.b64encode(data).decode()}},
    ]}}]}


class Recorder:
    """Mock transport handler that records requests and replays one response."""

    def __init__(self, body=None, status_code: int = 200):
        self.body = body
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.body, (dict, list)):
            return httpx.Response(self.status_code, json=self.body)
        return httpx.Response(self.status_code, text=self.body or "")

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


def make_client(handler, **kwargs) -> GeminiClient:
    return GeminiClient(api_key="test-key", transport=httpx.MockTransport(handler), **kwargs)


class TestConstruction:
    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with pytest.raises(ConfigError):
            GeminiClient()

    def test_key_from_env(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "env-key")
        assert GeminiClient().api_key == "env-key"


@pytest.mark.asyncio
class TestAnalyze:
    async def test_returns_description(self):
        handler = Recorder(text_response("  a red ceramic coffee mug \n"))
        async with make_client(handler) as client:
            assert await client.analyze(png("mug")) == "a red ceramic coffee mug"

        request = handler.requests[0]
        assert request.url.path.endswith("/gemini-2.5-flash:generateContent")
        assert request.url.params["key"] == "test-key"
        parts = handler.last_json["contents"][0]["parts"]
        assert parts[0]["inlineData"]["mimeType"] == "image/png"
        assert parts[0]["inlineData"]["data"] == png("mug").b64
        assert "product" in parts[1]["text"]

    async def test_empty_response(self):
        async with make_client(Recorder({"candidates": []})) as client:
            with pytest.raises(AnalysisError, match="Could not identify"):
                await client.analyze(png("mug"))

    async def test_api_error_becomes_analysis_error(self):
        async with make_client(Recorder("quota exceeded", status_code=429)) as client:
            with pytest.raises(AnalysisError, match="429"):
                await client.analyze(png("mug"))


@pytest.mark.asyncio
class TestText:
    async def test_generate_text(self):
        handler = Recorder(text_response("A mug at sunrise"))
        async with make_client(handler) as client:
            assert await client.generate_text("rewrite this") == "A mug at sunrise"
        assert handler.last_json["contents"][0]["parts"][0]["text"] == "rewrite this"

    async def test_generate_structured_sends_schema(self):
        handler = Recorder(text_response('["a", "b", "c", "d"]'))
        async with make_client(handler) as client:
            result = await client.generate_structured("four prompts", STRING_ARRAY_SCHEMA)
        assert result == ["a", "b", "c", "d"]
        config = handler.last_json["generationConfig"]
        assert config["responseMimeType"] == "application/json"
        assert config["responseSchema"] == STRING_ARRAY_SCHEMA

    async def test_structured_with_code_fence(self):
        handler = Recorder(text_response('```json\n["a", "b"]\n```'))
        async with make_client(handler) as client:
            assert await client.generate_structured("p", STRING_ARRAY_SCHEMA) == ["a", "b"]

    async def test_structured_malformed(self):
        async with make_client(Recorder(text_response("not json at all"))) as client:
            with pytest.raises(ParseError):
                await client.generate_structured("p", STRING_ARRAY_SCHEMA)

    async def test_error_body(self):
        body = {"error": {"message": "API key not valid"}}
        async with make_client(Recorder(body)) as client:
            with pytest.raises(GenerationError, match="API key not valid"):
                await client.generate_text("hi")

    async def test_non_json_body(self):
        async with make_client(Recorder("<html>oops</html>")) as client:
            with pytest.raises(GenerationError, match="non-JSON"):
                await client.generate_text("hi")


@pytest.mark.asyncio
class TestGenerate:
    async def test_returns_first_image_part(self):
        handler = Recorder(image_response(b"edited", "image/jpeg"))
        async with make_client(handler) as client:
            result = await client.generate(png("mug"), "Hero shot on slate")

        assert result.data == b"edited"
        assert result.mime_type == "image/jpeg"
        assert handler.requests[0].url.path.endswith("/gemini-2.5-flash-image:generateContent")

        body = handler.last_json
        text = body["contents"][0]["parts"][1]["text"]
        assert text == "Hero shot on slate. Ensure the final output image is a square with a 1:1 aspect ratio."
        assert body["generationConfig"]["responseModalities"] == ["IMAGE", "TEXT"]
        assert body["generationConfig"]["imageConfig"] == {"aspectRatio": "1:1"}

    async def test_other_aspect_ratio(self):
        handler = Recorder(image_response(b"wide"))
        async with make_client(handler, aspect_ratio="16:9") as client:
            await client.generate(png("mug"), "Wide banner")
        text = handler.last_json["contents"][0]["parts"][1]["text"]
        assert text.endswith("has a 16:9 aspect ratio.")

    async def test_no_image(self):
        async with make_client(Recorder(text_response("I can't do that"))) as client:
            with pytest.raises(GenerationError, match="No image was generated"):
                await client.generate(png("mug"), "prompt")

    async def test_safety_block(self):
        body = {"candidates": [{"finishReason": "SAFETY", "content": {"parts": []}}]}
        async with make_client(Recorder(body)) as client:
            with pytest.raises(GenerationError, match="safety"):
                await client.generate(png("mug"), "prompt")

    async def test_http_error(self):
        async with make_client(Recorder("server error", status_code=500)) as client:
            with pytest.raises(GenerationError, match="500"):
                await client.generate(png("mug"), "prompt")
