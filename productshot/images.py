"""
Image file helpers for ProductShot Studio hosts.
"""

import mimetypes
from datetime import datetime
from pathlib import Path
from typing import Optional

from .models import ImagePayload, ResultItem, SourceImage

EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "image/heic": ".heic",
}


def load_source_image(path: Path) -> SourceImage:
    """Read an image file into a SourceImage.

    Raises:
        ValueError: If the file is not an image
    """
    mime_type, _ = mimetypes.guess_type(path.name)
    if not mime_type or not mime_type.startswith("image/"):
        raise ValueError(f"Not an image file: {path}")

    payload = ImagePayload(data=path.read_bytes(), mime_type=mime_type)
    return SourceImage.from_payload(payload, name=path.name)


def extension_for(mime_type: str) -> str:
    return EXTENSIONS.get(mime_type) or mimetypes.guess_extension(mime_type) or ".png"


def save_result(item: ResultItem, output_dir: Path, index: Optional[int] = None) -> Path:
    """Write a result's image to ``output_dir`` and return the path.

    Raises:
        ValueError: If the item has no image
    """
    if item.payload is None:
        raise ValueError(f"Result {item.id} has no image to save")

    output_dir.mkdir(parents=True, exist_ok=True)
    if index is None:
        filename = download_name(item.payload)
    else:
        filename = f"{index + 1:02d}-{item.style_id}-{item.id[:8]}{extension_for(item.payload.mime_type)}"
    path = output_dir / filename
    path.write_bytes(item.payload.data)
    return path


def download_name(payload: ImagePayload) -> str:
    """File name for downloading the displayed image."""
    stamp = int(datetime.now().timestamp() * 1000)
    return f"product-image-{stamp}{extension_for(payload.mime_type)}"
