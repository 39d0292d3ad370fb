"""
Studio facade for ProductShot Studio.

The host application drives everything through a Studio: uploading and
switching source images (which triggers product analysis), starting style
batches, improving results, and selecting what is displayed.
"""

import asyncio
import logging
from typing import Iterable, Optional, Union

from .catalog import get_style
from .config import Config
from .errors import AnalysisError, InvalidState
from .generators import ImageAnalyzer, ImageGenerator, TextGenerator
from .improvement import ImprovementOrchestrator
from .models import Batch, ResultItem, Session, SourceImage, StyleDescriptor
from .orchestrator import GenerationOrchestrator
from .refinement import PromptRefiner
from .session import MAX_SOURCE_IMAGES, Listener, SessionStore
from .tasks import TaskTracker

logger = logging.getLogger(__name__)

ANALYSIS_FAILED_MESSAGE = (
    "Failed to analyze the product. You can still generate images, "
    "but prompts will be less specific. Error: {error}"
)


class Studio:
    """One editing session over a set of uploaded product photos.

    Usage:
        async with Studio.from_config(Config.load()) as studio:
            studio.add_source_images([load_source_image(path)])
            await studio.wait_idle()           # analysis
            studio.start_batch("hero")
            await studio.wait_idle()           # four generations
            studio.improve("Add a reflection on a glossy black floor.")
    """

    def __init__(
        self,
        analyzer: ImageAnalyzer,
        text_generator: TextGenerator,
        image_generator: ImageGenerator,
        store: Optional[SessionStore] = None,
        max_source_images: int = MAX_SOURCE_IMAGES,
        suggestion_count: int = 5,
    ):
        self.analyzer = analyzer
        self.tasks = TaskTracker()
        self.store = store or SessionStore(max_source_images=max_source_images)
        self.generation = GenerationOrchestrator(
            self.store,
            PromptRefiner(text_generator),
            image_generator,
            tasks=self.tasks,
        )
        self.improvement = ImprovementOrchestrator(
            self.store,
            image_generator,
            text_generator,
            tasks=self.tasks,
            suggestion_count=suggestion_count,
        )
        self.providers = None
        self._owned = []

    @classmethod
    def from_config(cls, config: Config) -> "Studio":
        """Build a studio backed by the configured providers."""
        from .generators.manager import ProviderManager

        providers = ProviderManager(config)
        studio = cls(
            analyzer=providers,
            text_generator=providers,
            image_generator=providers,
            max_source_images=config.defaults.max_source_images,
            suggestion_count=config.defaults.suggestion_count,
        )
        studio.providers = providers
        studio._owned.append(providers)
        return studio

    @property
    def session(self) -> Session:
        return self.store.session

    def subscribe(self, listener: Listener):
        return self.store.subscribe(listener)

    @property
    def can_improve(self) -> bool:
        """Whether the displayed image is a completed result that can be improved."""
        item = self.session.active_result
        return item is not None and item.is_completed

    # ── source images and analysis ─────────────────────────────

    def add_source_images(self, images: Iterable[SourceImage]) -> Optional[SourceImage]:
        """Upload images. The first one becomes active and is analyzed."""
        active = self.store.add_sources(images)
        if active is not None:
            self._analyze(active)
        return active

    def replace_source_images(self, images: Iterable[SourceImage]) -> SourceImage:
        """Start a new product with fresh uploads. Existing results are kept."""
        active = self.store.replace_sources(images)
        self._analyze(active)
        return active

    def select_source(self, index: int) -> Optional[SourceImage]:
        """Switch to another uploaded image and analyze it."""
        active = self.store.select_source(index)
        if active is not None:
            self._analyze(active)
        return active

    def _analyze(self, source: SourceImage) -> None:
        self.store.begin_analysis(source.id)
        self.tasks.spawn(self._run_analysis(source), name=f"analyze:{source.id}")

    async def _run_analysis(self, source: SourceImage) -> None:
        try:
            description = (await self.analyzer.analyze(source.payload)).strip()
            if not description:
                raise AnalysisError("Could not identify the product in the image.")
        except Exception as e:
            logger.warning(f"Analysis failed for source {source.id}: {e}")
            if not self.store.fail_analysis(source.id, ANALYSIS_FAILED_MESSAGE.format(error=e)):
                logger.debug(f"Ignoring analysis failure for inactive source {source.id}")
            return

        if self.store.finish_analysis(source.id, description):
            logger.info(f"Analyzed source {source.id}: {description}")
        else:
            logger.debug(f"Discarding stale analysis for source {source.id}")

    # ── generation ─────────────────────────────────────────────

    def start_batch(self, style: Union[str, StyleDescriptor]) -> Batch:
        """Generate four images of the active source in ``style``.

        Raises:
            InvalidState: If no source image has been uploaded
            KeyError: If ``style`` is an unknown style id
        """
        if isinstance(style, str):
            style = get_style(style)

        source = self.session.active_source
        if source is None:
            raise InvalidState("Upload a product image before choosing a style.")

        return self.generation.start_batch(style, source.payload, self.session.product_description)

    def improve(self, prompt: str, item_id: Optional[str] = None) -> ResultItem:
        """Improve ``item_id``, or the active result when omitted.

        Raises:
            InvalidState: If there is no completed item to improve or the prompt is blank
        """
        item_id = item_id or self.session.active_result_id
        if item_id is None:
            raise InvalidState("Please select a completed image to improve.")
        return self.improvement.improve(item_id, prompt)

    def select_result(self, index: int) -> bool:
        """Display the result at ``index``. Returns False (no-op) unless it is completed."""
        return self.store.select_result(index)

    async def fetch_suggestions(self) -> list[str]:
        return await self.improvement.fetch_suggestions(self.session.product_description)

    def request_suggestions(self) -> asyncio.Task:
        """Fetch suggestions in the background without blocking prompt entry."""
        return self.tasks.spawn(self.fetch_suggestions(), name="suggestions")

    # ── lifecycle ──────────────────────────────────────────────

    async def wait_idle(self) -> None:
        """Wait for every in-flight analysis, generation and improvement."""
        await self.tasks.wait_idle()

    async def aclose(self) -> None:
        await self.tasks.cancel_all()
        for resource in self._owned:
            await resource.aclose()
        self._owned.clear()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
