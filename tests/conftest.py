"""Shared fixtures: a scriptable in-memory backend for all three collaborator roles."""

import asyncio
from typing import Any, Optional

import pytest

from productshot.errors import GenerationError
from productshot.generators import SUGGESTIONS_SCHEMA, ImageAnalyzer, ImageGenerator, TextGenerator
from productshot.models import ImagePayload, SourceImage
from productshot.session import SessionStore


def png(label: str) -> ImagePayload:
    return ImagePayload(data=f"png:{label}".encode(), mime_type="image/png")


def make_source(label: str) -> SourceImage:
    return SourceImage.from_payload(png(label), name=f"{label}.png")


async def eventually(predicate, turns: int = 200):
    """Yield to the loop until ``predicate()`` holds."""
    for _ in range(turns):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition was not reached")


class FakeBackend(ImageAnalyzer, TextGenerator, ImageGenerator):
    """Analyzer, text generator and image generator in one.

    With ``gate_images``/``gate_analysis`` set, calls block until the test
    resolves them, so completion order is chosen by the test.
    """

    def __init__(self):
        self.default_description = "a red ceramic coffee mug"
        self.descriptions: dict[str, Any] = {}
        self.contextual = "A red ceramic coffee mug on dark slate under a single spotlight"
        self.variants: Any = ["angle one", "angle two", "angle three", "angle four"]
        self.suggestions = ["Add steam rising from the mug.", "Use a warmer background."]
        self.text_error: Optional[Exception] = None
        self.structured_error: Optional[Exception] = None
        self.image_failures: set[str] = set()
        self.gate_images = False
        self.gate_analysis = False

        self.analysis_calls: list[ImagePayload] = []
        self.text_calls: list[str] = []
        self.structured_calls: list[tuple[str, dict]] = []
        self.image_calls: list[tuple[ImagePayload, str]] = []

        self._analysis_waiters: dict[str, asyncio.Future] = {}
        self._image_waiters: dict[str, list[asyncio.Future]] = {}

    def name(self) -> str:
        return "fake"

    async def analyze(self, image: ImagePayload) -> str:
        self.analysis_calls.append(image)
        if self.gate_analysis:
            future = asyncio.get_running_loop().create_future()
            self._analysis_waiters[image.digest] = future
            outcome = await future
        else:
            outcome = self.descriptions.get(image.digest, self.default_description)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def resolve_analysis(self, image: ImagePayload, outcome: Any) -> None:
        self._analysis_waiters.pop(image.digest).set_result(outcome)

    async def generate_text(self, prompt: str) -> str:
        self.text_calls.append(prompt)
        if self.text_error:
            raise self.text_error
        return self.contextual

    async def generate_structured(self, prompt: str, schema: dict) -> Any:
        self.structured_calls.append((prompt, schema))
        if self.structured_error:
            raise self.structured_error
        if schema is SUGGESTIONS_SCHEMA:
            return {"suggestions": list(self.suggestions)}
        return list(self.variants) if isinstance(self.variants, list) else self.variants

    async def generate(self, image: ImagePayload, prompt: str) -> ImagePayload:
        self.image_calls.append((image, prompt))
        if self.gate_images:
            future = asyncio.get_running_loop().create_future()
            self._image_waiters.setdefault(prompt, []).append(future)
            outcome = await future
        elif prompt in self.image_failures:
            outcome = GenerationError("No image was generated by the API.")
        else:
            outcome = png(f"edit:{prompt}")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    @property
    def waiting_images(self) -> int:
        return sum(len(waiters) for waiters in self._image_waiters.values())

    def resolve_image(self, prompt: str, outcome: Any = None) -> ImagePayload:
        """Complete the oldest blocked call for ``prompt``. Returns what it resolved with."""
        outcome = outcome if outcome is not None else png(f"edit:{prompt}")
        self._image_waiters[prompt].pop(0).set_result(outcome)
        return outcome

    def fail_image(self, prompt: str, message: str = "No image was generated by the API.") -> None:
        self.resolve_image(prompt, GenerationError(message))


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def store():
    return SessionStore()
