"""
Batch generation for ProductShot Studio.

One style confirmation becomes one batch:

    placeholders (sync) -> contextualize -> diversify -> 4 x generate (concurrent)

Placeholders are in the session before any collaborator call is issued. Each
generation call settles its own item the moment it resolves, and the first
success of the batch is promoted to the active result.
"""

import asyncio
import logging
from typing import Optional

from .generators import ImageGenerator
from .models import Batch, BatchStage, ImagePayload, ResultItem, StyleDescriptor
from .refinement import VARIANT_COUNT, PromptRefiner
from .session import SessionStore
from .tasks import TaskTracker

logger = logging.getLogger(__name__)

BATCH_SIZE = VARIANT_COUNT


class GenerationOrchestrator:
    """Drives batches from style selection to four settled result items."""

    def __init__(
        self,
        store: SessionStore,
        refiner: PromptRefiner,
        image_generator: ImageGenerator,
        tasks: Optional[TaskTracker] = None,
    ):
        self.store = store
        self.refiner = refiner
        self.image_generator = image_generator
        self.tasks = tasks or TaskTracker()

    def start_batch(
        self,
        style: StyleDescriptor,
        source_image: ImagePayload,
        product_description: str = "",
    ) -> Batch:
        """
        Create a batch of placeholders and schedule its generation.

        Must be called from a running event loop. The four pending items are
        in the session when this returns; everything else happens in a
        background task.

        Args:
            style: Style to generate
            source_image: The product photo to edit
            product_description: Analysis text, or "" if unavailable

        Returns:
            The new Batch (its ``item_ids`` are in call-issue order)
        """
        batch_id = Batch.new_id()
        items = [ResultItem.placeholder(style, batch_id) for _ in range(BATCH_SIZE)]
        batch = Batch(id=batch_id, style=style, item_ids=tuple(item.id for item in items))

        self.store.prepend_batch(batch, items)
        logger.info(f"Started {batch_id} for style '{style.id}'")

        self.tasks.spawn(
            self._run_batch(batch, source_image, product_description),
            name=f"generate:{batch_id}",
        )
        return batch

    async def _run_batch(self, batch: Batch, source_image: ImagePayload, product_description: str) -> None:
        base_prompt = batch.style.base_prompt_template

        if product_description.strip():
            self.store.update_batch(batch.id, stage=BatchStage.CONTEXTUALIZING)
            base_prompt = await self.refiner.contextualize(base_prompt, product_description)

        self.store.update_batch(batch.id, stage=BatchStage.DIVERSIFYING)
        prompts = await self.refiner.diversify(base_prompt)

        self.store.update_batch(batch.id, stage=BatchStage.GENERATING, prompts=prompts)
        await asyncio.gather(*(
            self._generate_item(batch, item_id, source_image, prompt)
            for item_id, prompt in zip(batch.item_ids, prompts)
        ))

        self.store.update_batch(batch.id, stage=BatchStage.SETTLED)
        settled = [self.store.session.find_result(item_id) for item_id in batch.item_ids]
        completed = sum(1 for item in settled if item is not None and item.is_completed)
        logger.info(f"{batch.id} settled: {completed}/{len(batch.item_ids)} completed")

    async def _generate_item(
        self,
        batch: Batch,
        item_id: str,
        source_image: ImagePayload,
        prompt: str,
    ) -> None:
        """Generate one image and settle its item. Failures stay with this item."""
        item = self.store.session.find_result(item_id)
        attempt = item.attempt if item is not None else 0

        try:
            payload = await self.image_generator.generate(source_image, prompt)
        except Exception as e:
            logger.warning(f"Generation failed for item {item_id} in {batch.id}: {e}")
            self.store.settle(item_id, attempt, None, prompt=prompt)
            return

        if not self.store.settle(item_id, attempt, payload, prompt=prompt):
            return

        if self.store.promote_first(batch.id, item_id):
            logger.info(f"Promoted item {item_id} as first success of {batch.id}")
