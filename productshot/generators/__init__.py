"""
External generation collaborators for ProductShot Studio.
"""

import json
from abc import ABC, abstractmethod
from typing import Any

from ..errors import ParseError
from ..models import ImagePayload


ANALYSIS_INSTRUCTION = (
    "Analyze the image and provide a concise, descriptive name for the product shown. "
    "Focus on what the item is, its color, and any distinct patterns. For example: "
    '"a bottle of red hot sauce with a green cap" or "a blue patterned phone case". '
    "Output only the product name."
)

# Response schemas for structured text generation
STRING_ARRAY_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "STRING",
        "description": "A unique photography prompt variation.",
    },
}

SUGGESTIONS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "suggestions": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
        },
    },
    "required": ["suggestions"],
}


class ImageAnalyzer(ABC):
    """Describes the product shown in an image."""

    @abstractmethod
    async def analyze(self, image: ImagePayload) -> str:
        """Return a short natural-language product description.

        Raises:
            AnalysisError: On an empty or malformed response
        """
        pass


class TextGenerator(ABC):
    """Free-text and structured text generation."""

    @abstractmethod
    async def generate_text(self, prompt: str) -> str:
        """Generate text for a prompt.

        Raises:
            GenerationError: If the call fails
        """
        pass

    @abstractmethod
    async def generate_structured(self, prompt: str, schema: dict) -> Any:
        """Generate a JSON value matching ``schema`` and return it parsed.

        Raises:
            GenerationError: If the call fails
            ParseError: If the response is not valid JSON
        """
        pass


class ImageGenerator(ABC):
    """Edits a source image according to a prompt."""

    @abstractmethod
    async def generate(self, image: ImagePayload, prompt: str) -> ImagePayload:
        """Generate one output image from a source image and a prompt.

        Raises:
            GenerationError: When the response contains no image
        """
        pass

    @abstractmethod
    def name(self) -> str:
        """Return the generator name."""
        pass


# Lazy imports to avoid loading SDKs at startup
def get_gemini_client():
    from .gemini import GeminiClient
    return GeminiClient


def get_claude_client():
    from .claude import ClaudeClient
    return ClaudeClient


def parse_json_text(text: str) -> Any:
    """Parse JSON from model output, tolerating markdown code fences."""
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0]
    elif "```" in text:
        text = text.split("```")[1].split("```")[0]

    try:
        return json.loads(text.strip())
    except json.JSONDecodeError as e:
        raise ParseError(f"Response is not valid JSON: {e}") from e
