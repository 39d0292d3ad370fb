"""
Data models for ProductShot Studio.
"""

import base64
import hashlib
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class ImagePayload:
    """Raw image bytes with their MIME type."""

    data: bytes
    mime_type: str = "image/png"

    @property
    def b64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    @property
    def digest(self) -> str:
        """Stable content hash, used as image identity."""
        return hashlib.sha256(self.data).hexdigest()[:16]

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.b64}"

    @classmethod
    def from_data_url(cls, url: str) -> "ImagePayload":
        """Parse a ``data:<mime>;base64,<data>`` URL."""
        header, sep, data = url.partition(";base64,")
        if not sep or not data or not header.startswith("data:"):
            raise ValueError("Invalid base64 image format.")
        mime_type = header[len("data:"):]
        if not mime_type.startswith("image/"):
            raise ValueError(f"Not an image MIME type: {mime_type or '(empty)'}")
        try:
            raw = base64.b64decode(data, validate=True)
        except ValueError as e:
            raise ValueError(f"Invalid base64 image format: {e}")
        return cls(data=raw, mime_type=mime_type)

    def to_dict(self) -> dict:
        return {
            "mime_type": self.mime_type,
            "size": len(self.data),
            "digest": self.digest,
        }


@dataclass(frozen=True)
class SourceImage:
    """An uploaded product photo. Identity is the content digest."""

    id: str
    payload: ImagePayload
    name: str = ""

    @classmethod
    def from_payload(cls, payload: ImagePayload, name: str = "") -> "SourceImage":
        return cls(id=payload.digest, payload=payload, name=name)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "image": self.payload.to_dict(),
        }


class ResultStatus(str, Enum):
    """Lifecycle of a result item."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class StyleDescriptor:
    """A named photographic direction with its base instruction."""

    id: str
    name: str
    description: str
    base_prompt_template: str
    preview_url: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "base_prompt_template": self.base_prompt_template,
            "preview_url": self.preview_url,
        }


@dataclass(frozen=True)
class ResultItem:
    """One generated or in-progress image.

    Items are immutable values. Every change produces a new item with the
    same id which replaces the old one in the session's result collection.
    """

    id: str
    style_label: str
    style_id: str
    batch_id: str = ""
    status: ResultStatus = ResultStatus.PENDING
    payload: Optional[ImagePayload] = None
    fallback: Optional[ImagePayload] = None
    prompt: str = ""
    attempt: int = 0

    @classmethod
    def placeholder(cls, style: StyleDescriptor, batch_id: str) -> "ResultItem":
        return cls(
            id=uuid.uuid4().hex,
            style_label=style.name,
            style_id=style.id,
            batch_id=batch_id,
        )

    @property
    def is_pending(self) -> bool:
        return self.status == ResultStatus.PENDING

    @property
    def is_completed(self) -> bool:
        return self.status == ResultStatus.COMPLETED

    @property
    def is_failed(self) -> bool:
        return self.status == ResultStatus.FAILED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "style_label": self.style_label,
            "style_id": self.style_id,
            "batch_id": self.batch_id,
            "status": self.status.value,
            "payload": self.payload.to_dict() if self.payload else None,
            "has_fallback": self.fallback is not None,
            "prompt": self.prompt,
            "attempt": self.attempt,
        }


class BatchStage(str, Enum):
    """Pipeline stage of a batch."""

    PLACED = "placed"
    CONTEXTUALIZING = "contextualizing"
    DIVERSIFYING = "diversifying"
    GENERATING = "generating"
    SETTLED = "settled"


@dataclass
class Batch:
    """The four sibling items created from one style confirmation.

    ``promoted`` is the batch's own first-success flag. It is never shared
    between batches.
    """

    id: str
    style: StyleDescriptor
    item_ids: tuple[str, ...]
    stage: BatchStage = BatchStage.PLACED
    prompts: list[str] = field(default_factory=list)
    promoted: bool = False
    created: datetime = field(default_factory=datetime.now)

    @staticmethod
    def new_id() -> str:
        return f"batch-{datetime.now().strftime('%Y%m%d-%H%M%S')}-{uuid.uuid4().hex[:6]}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "style_id": self.style.id,
            "item_ids": list(self.item_ids),
            "stage": self.stage.value,
            "prompts": self.prompts,
            "promoted": self.promoted,
            "created": self.created.isoformat(),
        }


@dataclass
class Session:
    """In-memory session state. Mutated only through SessionStore."""

    source_images: list[SourceImage] = field(default_factory=list)
    active_source_index: Optional[int] = None
    active_result_id: Optional[str] = None
    product_description: str = ""
    analysis_error: Optional[str] = None
    analyzing: Optional[str] = None  # source id of the in-flight analysis
    results: list[ResultItem] = field(default_factory=list)
    batches: dict[str, Batch] = field(default_factory=dict)
    suggestions: list[str] = field(default_factory=list)

    @property
    def active_source(self) -> Optional[SourceImage]:
        if self.active_source_index is None:
            return None
        return self.source_images[self.active_source_index]

    @property
    def active_result(self) -> Optional[ResultItem]:
        if self.active_result_id is None:
            return None
        return self.find_result(self.active_result_id)

    @property
    def active_result_index(self) -> Optional[int]:
        """Position of the active item in ``results``.

        Derived from the id because prepending a batch shifts positions.
        """
        if self.active_result_id is None:
            return None
        for index, item in enumerate(self.results):
            if item.id == self.active_result_id:
                return index
        return None

    @property
    def displayed_image(self) -> Optional[ImagePayload]:
        """The image shown large: the active result, else the active source."""
        result = self.active_result
        if result is not None and result.payload is not None:
            return result.payload
        source = self.active_source
        return source.payload if source else None

    def find_result(self, item_id: str) -> Optional[ResultItem]:
        for item in self.results:
            if item.id == item_id:
                return item
        return None

    def to_dict(self) -> dict:
        return {
            "source_images": [s.to_dict() for s in self.source_images],
            "active_source_index": self.active_source_index,
            "active_result_index": self.active_result_index,
            "product_description": self.product_description,
            "analysis_error": self.analysis_error,
            "analyzing": self.analyzing,
            "results": [r.to_dict() for r in self.results],
            "batches": {bid: b.to_dict() for bid, b in self.batches.items()},
            "suggestions": self.suggestions,
        }
