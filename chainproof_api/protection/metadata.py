"""Best-effort file metadata extraction."""

import logging
from io import BytesIO
from typing import Optional

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


def determine_category(mime_type: Optional[str]) -> str:
    """Map a MIME type onto a catalogue category."""
    mime_type = (mime_type or "").lower()
    if mime_type.startswith("image/"):
        return "art"
    if mime_type.startswith("video/"):
        return "video"
    if mime_type.startswith("audio/"):
        return "music"
    if "pdf" in mime_type or "word" in mime_type:
        return "document"
    return "other"


def image_dimensions(data: bytes) -> Optional[dict]:
    """Return ``{"width", "height"}`` for decodable images, else None."""
    try:
        with Image.open(BytesIO(data)) as img:
            width, height = img.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        logger.warning(f"Failed to read image dimensions: {e}")
        return None
    return {"width": width, "height": height}


def extract_file_metadata(data: bytes, mime_type: str, original_name: str) -> dict:
    """Collect size, type and (for images) dimensions. Never raises."""
    metadata = {
        "original_name": original_name,
        "size": len(data),
        "mime_type": mime_type,
        "dimensions": None,
    }
    if (mime_type or "").lower().startswith("image/"):
        metadata["dimensions"] = image_dimensions(data)
    return metadata
