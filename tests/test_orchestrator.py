"""Tests for batch generation ordering and promotion."""

import pytest

from conftest import eventually, png
from productshot.catalog import get_style
from productshot.models import BatchStage
from productshot.orchestrator import BATCH_SIZE, GenerationOrchestrator
from productshot.refinement import PromptRefiner

SOURCE = png("red-mug")


@pytest.fixture
def orchestrator(store, backend):
    return GenerationOrchestrator(store, PromptRefiner(backend), backend)


@pytest.mark.asyncio
class TestStartBatch:
    async def test_placeholders_exist_before_any_call(self, orchestrator, store, backend):
        batch = orchestrator.start_batch(get_style("hero"), SOURCE, "a red ceramic coffee mug")

        results = store.session.results
        assert len(results) == BATCH_SIZE
        assert [item.id for item in results] == list(batch.item_ids)
        assert all(item.is_pending and item.style_label == "Hero Shot" for item in results)
        assert backend.text_calls == []
        assert backend.image_calls == []

        await orchestrator.tasks.wait_idle()

    async def test_pipeline_runs_stages_in_order(self, orchestrator, store, backend):
        stages = []
        store.subscribe(lambda event, session: stages.append(list(session.batches.values())[-1].stage))
        batch = orchestrator.start_batch(get_style("hero"), SOURCE, "a red ceramic coffee mug")
        await orchestrator.tasks.wait_idle()

        seen = [s for i, s in enumerate(stages) if i == 0 or stages[i - 1] != s]
        assert seen[:4] == [
            BatchStage.PLACED,
            BatchStage.CONTEXTUALIZING,
            BatchStage.DIVERSIFYING,
            BatchStage.GENERATING,
        ]
        assert store.session.batches[batch.id].stage is BatchStage.SETTLED
        assert store.session.batches[batch.id].prompts == backend.variants

    async def test_no_description_skips_contextualizing(self, orchestrator, store, backend):
        batch = orchestrator.start_batch(get_style("hero"), SOURCE, "")
        await orchestrator.tasks.wait_idle()
        assert backend.text_calls == []
        assert get_style("hero").base_prompt_template in backend.structured_calls[0][0]
        assert all(store.session.find_result(i).is_completed for i in batch.item_ids)

    async def test_every_call_uses_source_image_and_variant(self, orchestrator, backend):
        orchestrator.start_batch(get_style("studio"), SOURCE, "a mug")
        await orchestrator.tasks.wait_idle()
        assert len(backend.image_calls) == BATCH_SIZE
        assert all(image == SOURCE for image, _ in backend.image_calls)
        assert sorted(p for _, p in backend.image_calls) == sorted(backend.variants)

    async def test_items_keep_their_own_prompt(self, orchestrator, store, backend):
        batch = orchestrator.start_batch(get_style("hero"), SOURCE, "a mug")
        await orchestrator.tasks.wait_idle()
        prompts = [store.session.find_result(i).prompt for i in batch.item_ids]
        assert prompts == backend.variants


@pytest.mark.asyncio
class TestCompletionOrder:
    async def test_first_success_is_promoted_regardless_of_position(self, orchestrator, store, backend):
        backend.gate_images = True
        batch = orchestrator.start_batch(get_style("hero"), SOURCE, "a mug")
        await eventually(lambda: backend.waiting_images == BATCH_SIZE)

        second = backend.variants[1]
        backend.resolve_image(second)
        await eventually(lambda: store.session.active_result_id is not None)
        assert store.session.active_result_id == batch.item_ids[1]

        for prompt in (backend.variants[0], backend.variants[2]):
            backend.resolve_image(prompt)
        backend.fail_image(backend.variants[3])
        await orchestrator.tasks.wait_idle()

        assert store.session.active_result_id == batch.item_ids[1]
        items = [store.session.find_result(i) for i in batch.item_ids]
        assert [item.is_completed for item in items] == [True, True, True, False]

    async def test_items_settle_independently(self, orchestrator, store, backend):
        backend.gate_images = True
        batch = orchestrator.start_batch(get_style("hero"), SOURCE, "a mug")
        await eventually(lambda: backend.waiting_images == BATCH_SIZE)

        backend.fail_image(backend.variants[0])
        await eventually(lambda: store.session.find_result(batch.item_ids[0]).is_failed)
        assert all(store.session.find_result(i).is_pending for i in batch.item_ids[1:])
        assert store.session.active_result_id is None

        for prompt in backend.variants[1:]:
            backend.resolve_image(prompt)
        await orchestrator.tasks.wait_idle()
        assert store.session.active_result_id == batch.item_ids[1]

    async def test_all_failures_leave_active_result_unchanged(self, orchestrator, store, backend):
        first = orchestrator.start_batch(get_style("hero"), SOURCE, "a mug")
        await orchestrator.tasks.wait_idle()
        active = store.session.active_result_id
        assert active == first.item_ids[0]

        backend.image_failures = set(backend.variants)
        second = orchestrator.start_batch(get_style("closeup"), SOURCE, "a mug")
        await orchestrator.tasks.wait_idle()

        assert all(store.session.find_result(i).is_failed for i in second.item_ids)
        assert store.session.active_result_id == active
        assert not store.session.batches[second.id].promoted

    async def test_concurrent_batches(self, orchestrator, store, backend):
        backend.gate_images = True
        first = orchestrator.start_batch(get_style("hero"), SOURCE, "a mug")
        second = orchestrator.start_batch(get_style("flatlay"), SOURCE, "a mug")
        await eventually(lambda: backend.waiting_images == 2 * BATCH_SIZE)

        assert [item.id for item in store.session.results] == list(second.item_ids) + list(first.item_ids)

        # Both batches use the same variants; the oldest waiter per prompt belongs to the first batch
        backend.resolve_image(backend.variants[2])
        await eventually(lambda: store.session.active_result_id is not None)
        assert store.session.active_result_id == first.item_ids[2]

        backend.resolve_image(backend.variants[0])
        backend.resolve_image(backend.variants[0])
        await eventually(lambda: store.session.active_result_id == second.item_ids[0])

        for prompt in (backend.variants[1], backend.variants[3]):
            backend.resolve_image(prompt)
            backend.resolve_image(prompt)
        backend.resolve_image(backend.variants[2])
        await orchestrator.tasks.wait_idle()

        assert store.session.active_result_id == second.item_ids[0]
        assert all(item.is_completed for item in store.session.results)

    async def test_failed_refinement_still_generates_four(self, orchestrator, store, backend):
        backend.text_error = RuntimeError("text down")
        backend.structured_error = RuntimeError("text down")
        batch = orchestrator.start_batch(get_style("hero"), SOURCE, "a mug")
        await orchestrator.tasks.wait_idle()

        template = get_style("hero").base_prompt_template
        assert [p for _, p in backend.image_calls] == [template] * BATCH_SIZE
        assert all(store.session.find_result(i).is_completed for i in batch.item_ids)
