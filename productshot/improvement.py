"""
Single-image improvement for ProductShot Studio.

Re-runs one completed result through image generation with a free-text
instruction. Edits chain: each improvement starts from the item's latest
image, not the original upload. A failed attempt puts the previous image
back.
"""

import logging
from typing import Any, Optional

from .errors import InvalidState, RefinementError
from .generators import SUGGESTIONS_SCHEMA, ImageGenerator, TextGenerator
from .models import ResultItem
from .session import SessionStore
from .tasks import TaskTracker

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 5

SUGGESTIONS_PROMPT = """You are a creative director reviewing a marketing photo of {product}. Suggest up to {count} short, specific edits that would make the photo more compelling, such as a change of background, lighting, props, or mood. Each suggestion must be a single imperative sentence under 15 words.

Return a JSON object of the form {{"suggestions": ["...", "..."]}}."""


def _parse_suggestions(response: Any, limit: int) -> list[str]:
    if not isinstance(response, dict) or not isinstance(response.get("suggestions"), list):
        raise RefinementError("Expected an object with a 'suggestions' array")
    suggestions = [
        s.strip() for s in response["suggestions"] if isinstance(s, str) and s.strip()
    ]
    return suggestions[:limit]


class ImprovementOrchestrator:
    """Resubmits completed items with a user instruction."""

    def __init__(
        self,
        store: SessionStore,
        image_generator: ImageGenerator,
        text_generator: Optional[TextGenerator] = None,
        tasks: Optional[TaskTracker] = None,
        suggestion_count: int = MAX_SUGGESTIONS,
    ):
        self.store = store
        self.image_generator = image_generator
        self.text_generator = text_generator
        self.tasks = tasks or TaskTracker()
        self.suggestion_count = min(suggestion_count, MAX_SUGGESTIONS)

    def improve(self, item_id: str, prompt: str) -> ResultItem:
        """
        Resubmit a completed item with ``prompt`` and schedule the edit.

        Args:
            item_id: Id of a completed result item
            prompt: Free-text edit instruction

        Returns:
            The item in its resubmitted (pending) state

        Raises:
            InvalidState: If the prompt is blank or the item is not completed.
                Nothing is changed in that case.
        """
        prompt = prompt.strip()
        if not prompt:
            raise InvalidState("Describe the changes you'd like to see before regenerating.")

        pending = self.store.resubmit(item_id, prompt)
        logger.info(f"Improving item {item_id} (attempt {pending.attempt})")

        self.tasks.spawn(self._run(pending, prompt), name=f"improve:{item_id}:{pending.attempt}")
        return pending

    async def _run(self, pending: ResultItem, prompt: str) -> None:
        try:
            payload = await self.image_generator.generate(pending.fallback, prompt)
        except Exception as e:
            logger.warning(f"Improvement failed for item {pending.id}, restoring previous image: {e}")
            self.store.settle(pending.id, pending.attempt, None)
            return

        if self.store.settle(pending.id, pending.attempt, payload):
            if self.store.session.active_result_id == pending.id:
                logger.info(f"Refreshed displayed image with improved item {pending.id}")

    async def fetch_suggestions(self, product_description: str = "") -> list[str]:
        """
        Ask for up to five improvement ideas for the current product.

        Never raises. Any failure leaves the session's suggestion list empty.
        """
        suggestions: list[str] = []

        if self.text_generator is not None:
            try:
                response = await self.text_generator.generate_structured(
                    SUGGESTIONS_PROMPT.format(
                        product=product_description.strip() or "a product",
                        count=self.suggestion_count,
                    ),
                    SUGGESTIONS_SCHEMA,
                )
                suggestions = _parse_suggestions(response, self.suggestion_count)
            except Exception as e:
                logger.warning(f"Could not fetch improvement suggestions: {e}")
                suggestions = []

        if self.store.session.product_description != product_description:
            logger.debug("Discarding suggestions for a product that is no longer active")
            return suggestions

        self.store.set_suggestions(suggestions)
        return suggestions
