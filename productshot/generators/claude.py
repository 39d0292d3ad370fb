"""
Claude client for ProductShot Studio.

Alternative provider for product analysis and prompt writing. Claude does not
edit images, so image generation always goes through Gemini.
"""

import json
import os
from typing import Any, Optional

from anthropic import APIError, AsyncAnthropic

from . import ANALYSIS_INSTRUCTION, ImageAnalyzer, TextGenerator, parse_json_text
from ..errors import AnalysisError, ConfigError, GenerationError
from ..models import ImagePayload


DEFAULT_CLAUDE_MODEL = "claude-sonnet-4-20250514"


class ClaudeClient(ImageAnalyzer, TextGenerator):
    """Analysis and text generation through the Anthropic Messages API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_CLAUDE_MODEL,
        max_tokens: int = 1024,
        timeout: float = 120.0,
        max_retries: int = 2,
    ):
        """
        Initialize the Claude client.

        Args:
            api_key: Anthropic API key. If not provided, reads from ANTHROPIC_API_KEY env var.
            model: Claude model name
            max_tokens: Response token limit
            timeout: Request timeout in seconds
            max_retries: SDK-level retries for transient failures
        """
        api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise ConfigError(
                "Anthropic API key not provided. Set ANTHROPIC_API_KEY environment variable "
                "or pass api_key parameter."
            )
        self.model = model
        self.max_tokens = max_tokens
        self.client = AsyncAnthropic(api_key=api_key, timeout=timeout, max_retries=max_retries)

    def name(self) -> str:
        return "claude"

    async def _complete(self, content) -> str:
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": content}],
            )
        except APIError as e:
            raise GenerationError(f"Claude API error: {e}") from e

        return "".join(block.text for block in response.content if block.type == "text")

    async def analyze(self, image: ImagePayload) -> str:
        content = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": image.mime_type,
                    "data": image.b64,
                },
            },
            {"type": "text", "text": ANALYSIS_INSTRUCTION},
        ]
        try:
            text = await self._complete(content)
        except GenerationError as e:
            raise AnalysisError(str(e)) from e

        description = text.strip()
        if not description:
            raise AnalysisError("Could not identify the product in the image.")
        return description

    async def generate_text(self, prompt: str) -> str:
        return await self._complete(prompt)

    async def generate_structured(self, prompt: str, schema: dict) -> Any:
        full_prompt = (
            f"{prompt}\n\n"
            f"Respond only with JSON matching this schema:\n{json.dumps(schema, indent=2)}"
        )
        return parse_json_text(await self._complete(full_prompt))

    async def aclose(self):
        await self.client.close()
