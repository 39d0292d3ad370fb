"""
Session state reconciliation for ProductShot Studio.

SessionStore owns the Session and is the only code that mutates it. Each
public method is one patch: it runs to completion without awaiting, so on
the event loop no two patches interleave. Result patches locate items by id
and replace them; nothing rebuilds the collection from an older snapshot.
"""

import logging
from dataclasses import replace
from enum import Enum
from typing import Callable, Iterable, Optional

from .errors import InvalidState
from .models import (
    Batch,
    BatchStage,
    ImagePayload,
    ResultItem,
    ResultStatus,
    Session,
    SourceImage,
)

logger = logging.getLogger(__name__)

MAX_SOURCE_IMAGES = 6


class SessionEvent(str, Enum):
    """Notifications delivered to subscribers after a patch takes effect."""

    ITEMS_ADDED = "items-added"
    ITEM_SETTLED = "item-settled"
    ITEM_RESUBMITTED = "item-resubmitted"
    RESULT_SELECTED = "result-selected"
    BATCH_UPDATED = "batch-updated"
    SOURCES_CHANGED = "sources-changed"
    ANALYSIS_STARTED = "analysis-started"
    ANALYSIS_COMPLETED = "analysis-completed"
    ANALYSIS_FAILED = "analysis-failed"
    SUGGESTIONS_UPDATED = "suggestions-updated"


Listener = Callable[[SessionEvent, Session], None]


class SessionStore:
    """Applies patches to a Session and notifies subscribers."""

    def __init__(self, session: Optional[Session] = None, max_source_images: int = MAX_SOURCE_IMAGES):
        self._session = session or Session()
        self.max_source_images = max_source_images
        self._listeners: list[Listener] = []

    @property
    def session(self) -> Session:
        return self._session

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, self._session)
            except Exception:
                logger.exception(f"Session listener failed on {event.value}")

    def _replace_item(self, item: ResultItem) -> None:
        results = self._session.results
        for index, existing in enumerate(results):
            if existing.id == item.id:
                results[index] = item
                return
        raise KeyError(item.id)

    # ── results ────────────────────────────────────────────────

    def prepend_batch(self, batch: Batch, items: list[ResultItem]) -> None:
        """Register ``batch`` and put its placeholders at the front, in order."""
        existing = {item.id for item in self._session.results}
        new_ids = [item.id for item in items]
        if len(set(new_ids)) != len(new_ids) or existing.intersection(new_ids):
            raise InvalidState("Result ids must be unique")

        self._session.results[0:0] = items
        self._session.batches[batch.id] = batch
        self._notify(SessionEvent.ITEMS_ADDED)

    def update_batch(
        self,
        batch_id: str,
        stage: Optional[BatchStage] = None,
        prompts: Optional[list[str]] = None,
    ) -> None:
        batch = self._session.batches[batch_id]
        if stage is not None:
            batch.stage = stage
        if prompts is not None:
            batch.prompts = list(prompts)
        self._notify(SessionEvent.BATCH_UPDATED)

    def settle(
        self,
        item_id: str,
        attempt: int,
        payload: Optional[ImagePayload],
        prompt: Optional[str] = None,
    ) -> bool:
        """Resolve a pending item: ``payload`` means success, ``None`` failure.

        A failed item gets its fallback payload back (``None`` for a fresh
        batch item). Applying the same resolution twice, or resolving an
        attempt that is no longer current, changes nothing.

        Returns:
            True if the item changed
        """
        item = self._session.find_result(item_id)
        if item is None or not item.is_pending or item.attempt != attempt:
            return False

        if payload is not None:
            settled = replace(item, status=ResultStatus.COMPLETED, payload=payload, fallback=None)
        else:
            settled = replace(item, status=ResultStatus.FAILED, payload=item.fallback, fallback=None)
        if prompt is not None:
            settled = replace(settled, prompt=prompt)

        self._replace_item(settled)
        self._notify(SessionEvent.ITEM_SETTLED)
        return True

    def promote_first(self, batch_id: str, item_id: str) -> bool:
        """Make ``item_id`` active if its batch has not promoted an item yet.

        Returns:
            True if this call performed the batch's promotion
        """
        batch = self._session.batches[batch_id]
        if batch.promoted:
            return False

        item = self._session.find_result(item_id)
        if item is None or not item.is_completed:
            return False

        batch.promoted = True
        self._session.active_result_id = item_id
        self._notify(SessionEvent.RESULT_SELECTED)
        return True

    def select_result(self, index: int) -> bool:
        """Make the item at ``index`` active. No-op unless it is completed."""
        results = self._session.results
        if not 0 <= index < len(results):
            return False

        item = results[index]
        if not item.is_completed or item.payload is None:
            return False

        self._session.active_result_id = item.id
        self._notify(SessionEvent.RESULT_SELECTED)
        return True

    def resubmit(self, item_id: str, prompt: str) -> ResultItem:
        """Move a completed item back to pending, keeping its payload as fallback.

        Raises:
            InvalidState: If the item does not exist or is not completed
        """
        item = self._session.find_result(item_id)
        if item is None:
            raise InvalidState(f"No result with id {item_id}")
        if not item.is_completed or item.payload is None:
            raise InvalidState("Please select a completed image to improve.")

        pending = replace(
            item,
            status=ResultStatus.PENDING,
            fallback=item.payload,
            prompt=prompt,
            attempt=item.attempt + 1,
        )
        self._replace_item(pending)
        self._notify(SessionEvent.ITEM_RESUBMITTED)
        return pending

    # ── sources ────────────────────────────────────────────────

    def _activate_source(self, index: int) -> None:
        session = self._session
        session.active_source_index = index
        session.active_result_id = None
        session.product_description = ""
        session.analysis_error = None
        session.analyzing = None
        session.suggestions = []

    def add_sources(self, sources: Iterable[SourceImage]) -> Optional[SourceImage]:
        """Append new source images and activate the first one given.

        Images already present are not duplicated; re-adding one selects it.
        Images beyond capacity are dropped with a warning.

        Returns:
            The newly active source, or None if the active source did not change

        Raises:
            InvalidState: If none of the images could be added or selected
        """
        session = self._session
        known = {source.id: index for index, source in enumerate(session.source_images)}
        first_index: Optional[int] = None
        dropped = 0
        given = 0

        for source in sources:
            given += 1
            if source.id in known:
                index = known[source.id]
            elif len(session.source_images) < self.max_source_images:
                session.source_images.append(source)
                index = len(session.source_images) - 1
                known[source.id] = index
            else:
                dropped += 1
                continue
            if first_index is None:
                first_index = index

        if dropped:
            logger.warning(
                f"Dropped {dropped} source image(s): at most {self.max_source_images} can be uploaded"
            )

        if not given:
            raise InvalidState("No source images given")
        if first_index is None:
            raise InvalidState(f"Source image limit reached ({self.max_source_images})")

        if first_index == session.active_source_index:
            self._notify(SessionEvent.SOURCES_CHANGED)
            return None

        self._activate_source(first_index)
        self._notify(SessionEvent.SOURCES_CHANGED)
        return session.source_images[first_index]

    def replace_sources(self, sources: Iterable[SourceImage]) -> SourceImage:
        """Start over with a new set of source images. Results are kept."""
        session = self._session
        previous = (session.source_images, session.active_source_index)
        session.source_images = []
        session.active_source_index = None
        try:
            return self.add_sources(sources)
        except InvalidState:
            session.source_images, session.active_source_index = previous
            raise

    def select_source(self, index: int) -> Optional[SourceImage]:
        """Switch the active source image.

        Returns:
            The newly active source, or None if it was already active

        Raises:
            InvalidState: If ``index`` is out of range
        """
        session = self._session
        if not 0 <= index < len(session.source_images):
            raise InvalidState(f"No source image at index {index}")
        if index == session.active_source_index:
            return None

        self._activate_source(index)
        self._notify(SessionEvent.SOURCES_CHANGED)
        return session.source_images[index]

    # ── analysis ───────────────────────────────────────────────

    def begin_analysis(self, source_id: str) -> None:
        session = self._session
        session.product_description = ""
        session.analysis_error = None
        session.analyzing = source_id
        self._notify(SessionEvent.ANALYSIS_STARTED)

    def _is_current_source(self, source_id: str) -> bool:
        active = self._session.active_source
        return active is not None and active.id == source_id

    def finish_analysis(self, source_id: str, description: str) -> bool:
        """Record a description unless ``source_id`` is no longer the active source.

        Returns:
            False if the response was stale and discarded
        """
        if not self._is_current_source(source_id):
            return False

        session = self._session
        session.product_description = description
        session.analysis_error = None
        session.analyzing = None
        self._notify(SessionEvent.ANALYSIS_COMPLETED)
        return True

    def fail_analysis(self, source_id: str, message: str) -> bool:
        """Record the session advisory for a failed analysis, unless stale."""
        if not self._is_current_source(source_id):
            return False

        session = self._session
        session.product_description = ""
        session.analysis_error = message
        session.analyzing = None
        self._notify(SessionEvent.ANALYSIS_FAILED)
        return True

    def set_suggestions(self, suggestions: list[str]) -> None:
        self._session.suggestions = list(suggestions)
        self._notify(SessionEvent.SUGGESTIONS_UPDATED)
