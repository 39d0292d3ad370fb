"""
Gemini client for ProductShot Studio.

One client covers all three collaborator roles through the Gemini
``generateContent`` REST endpoint: product analysis, text generation
(free-form and schema-constrained), and image editing.
"""

import base64
import os
from typing import Any, Optional

import httpx

from . import ANALYSIS_INSTRUCTION, ImageAnalyzer, ImageGenerator, TextGenerator, parse_json_text
from ..errors import AnalysisError, ConfigError, GenerationError
from ..models import ImagePayload


GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"

DEFAULT_TEXT_MODEL = "gemini-2.5-flash"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"


class GeminiClient(ImageAnalyzer, TextGenerator, ImageGenerator):
    """
    Gemini API client.

    Text and analysis calls go to a Gemini Flash model. Image calls send the
    source image inline alongside the prompt and read the edited image back
    from the response parts.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        text_model: str = DEFAULT_TEXT_MODEL,
        analysis_model: str = DEFAULT_TEXT_MODEL,
        image_model: str = DEFAULT_IMAGE_MODEL,
        aspect_ratio: str = "1:1",
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Gemini client.

        Args:
            api_key: Google API key. If not provided, reads from GOOGLE_API_KEY
                     or GEMINI_API_KEY env vars.
            text_model: Model for free-form and structured text
            analysis_model: Model for product analysis
            image_model: Model for image editing
            aspect_ratio: Requested output aspect ratio
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.api_key = api_key or os.environ.get("GOOGLE_API_KEY") or os.environ.get("GEMINI_API_KEY")
        if not self.api_key:
            raise ConfigError(
                "Google API key not provided. Set GOOGLE_API_KEY environment variable "
                "or pass api_key parameter."
            )
        self.text_model = text_model
        self.analysis_model = analysis_model
        self.image_model = image_model
        self.aspect_ratio = aspect_ratio
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    def name(self) -> str:
        return "gemini"

    async def _generate_content(self, model: str, payload: dict) -> dict:
        """POST a generateContent request and return the decoded body.

        Network errors (httpx.TransportError) propagate so callers can retry them.
        """
        response = await self._client.post(
            f"{GEMINI_API_BASE}/{model}:generateContent",
            params={"key": self.api_key},
            json=payload,
            headers={"Content-Type": "application/json"},
        )

        if not response.is_success:
            raise GenerationError(f"Gemini API error {response.status_code}: {response.text}")

        try:
            data = response.json()
        except ValueError as e:
            raise GenerationError(f"Gemini API returned a non-JSON body: {e}") from e

        if data.get("error"):
            raise GenerationError(f"Gemini API error: {data['error'].get('message', 'Unknown error')}")

        return data

    @staticmethod
    def _inline(image: ImagePayload) -> dict:
        return {"inlineData": {"mimeType": image.mime_type, "data": image.b64}}

    @staticmethod
    def _response_text(data: dict) -> str:
        """Concatenate the text parts of the first candidate."""
        candidates = data.get("candidates") or []
        if not candidates:
            return ""
        parts = candidates[0].get("content", {}).get("parts", [])
        return "".join(part.get("text", "") for part in parts)

    async def analyze(self, image: ImagePayload) -> str:
        try:
            data = await self._generate_content(self.analysis_model, {
                "contents": [{
                    "parts": [self._inline(image), {"text": ANALYSIS_INSTRUCTION}]
                }],
            })
        except GenerationError as e:
            raise AnalysisError(str(e)) from e

        description = self._response_text(data).strip()
        if not description:
            raise AnalysisError("Could not identify the product in the image.")
        return description

    async def generate_text(self, prompt: str) -> str:
        data = await self._generate_content(self.text_model, {
            "contents": [{"parts": [{"text": prompt}]}],
        })
        return self._response_text(data)

    async def generate_structured(self, prompt: str, schema: dict) -> Any:
        data = await self._generate_content(self.text_model, {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": schema,
            },
        })
        return parse_json_text(self._response_text(data))

    async def generate(self, image: ImagePayload, prompt: str) -> ImagePayload:
        """
        Edit ``image`` according to ``prompt``.

        Args:
            image: Source image sent inline with the request
            prompt: Edit instruction

        Returns:
            The first image part of the response
        """
        if self.aspect_ratio == "1:1":
            final_prompt = f"{prompt}. Ensure the final output image is a square with a 1:1 aspect ratio."
        else:
            final_prompt = f"{prompt}. Ensure the final output image has a {self.aspect_ratio} aspect ratio."

        data = await self._generate_content(self.image_model, {
            "contents": [{
                "parts": [self._inline(image), {"text": final_prompt}]
            }],
            "generationConfig": {
                "responseModalities": ["IMAGE", "TEXT"],
                "imageConfig": {"aspectRatio": self.aspect_ratio},
            },
        })

        # Response format: candidates[].content.parts[].inlineData
        for candidate in data.get("candidates") or []:
            for part in candidate.get("content", {}).get("parts", []):
                inline_data = part.get("inlineData", {})
                if inline_data.get("mimeType", "").startswith("image/") and inline_data.get("data"):
                    return ImagePayload(
                        data=base64.b64decode(inline_data["data"]),
                        mime_type=inline_data["mimeType"],
                    )

        if data.get("candidates") and data["candidates"][0].get("finishReason") == "SAFETY":
            raise GenerationError("Image generation blocked by safety filters")

        raise GenerationError("No image was generated by the API.")

    async def aclose(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
