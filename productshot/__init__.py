"""
ProductShot Studio - AI product photography from a single photo.

Upload a product image, pick a photography style, and get four concurrent
variations back. Any finished result can be improved with a free-text edit.
"""

from pathlib import Path

# Read version from VERSION file (single source of truth)
_version_file = Path(__file__).parent.parent / "VERSION"
if _version_file.exists():
    __version__ = _version_file.read_text().strip()
else:
    __version__ = "0.1.0"  # Fallback for installed builds

from productshot.config import Config
from productshot.models import ImagePayload, ResultItem, ResultStatus, Session, SourceImage, StyleDescriptor
from productshot.studio import Studio

__all__ = [
    "__version__",
    "Config",
    "ImagePayload",
    "ResultItem",
    "ResultStatus",
    "Session",
    "SourceImage",
    "StyleDescriptor",
    "Studio",
]
