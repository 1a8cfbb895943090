"""Receipt image intake: upload checks and preprocessing.

Uploads are limited to JPEG, PNG and GIF images of at most
``MAX_UPLOAD_SIZE`` bytes. Before an image is sent to the extraction
provider it is re-oriented according to its EXIF data and downscaled
so that its longest edge fits ``IMAGE_MAX_EDGE``. Pillow is used as
the imaging backend.
"""

from __future__ import annotations

import logging
from io import BytesIO
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from splitter.core.config import settings
from splitter.core.exceptions import ImageRejected

logger = logging.getLogger(__name__)

# Pillow format name -> MIME type accepted by the provider
_FORMAT_MIME = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
}


def sniff_image_type(data: bytes) -> Optional[str]:
    """Return the MIME type of ``data`` if Pillow recognises it, else None."""
    try:
        with Image.open(BytesIO(data)) as img:
            return _FORMAT_MIME.get(img.format or "")
    except (UnidentifiedImageError, OSError):
        return None


def validate_image_upload(data: bytes, content_type: Optional[str]) -> str:
    """Check an uploaded receipt image and return its MIME type.

    :raises ImageRejected: when the declared type is not allowed, the
        payload is empty or too large, or the bytes are not an image.
    """
    declared = (content_type or "").lower()
    if declared not in settings.ALLOWED_IMAGE_TYPES:
        raise ImageRejected("Invalid file type", "Please upload a JPEG, PNG, or GIF image")
    if not data:
        raise ImageRejected("No image file provided", "The uploaded file is empty")
    if len(data) > settings.MAX_UPLOAD_SIZE:
        limit_mb = settings.MAX_UPLOAD_SIZE // (1024 * 1024)
        raise ImageRejected("File too large", f"Please upload an image smaller than {limit_mb}MB")
    detected = sniff_image_type(data)
    if detected is None:
        raise ImageRejected("Invalid file type", "The uploaded file is not a readable image")
    return detected


def preprocess_image(image_data: bytes, max_size: Optional[int] = None) -> bytes:
    """Prepare an image for receipt extraction.

    Applies the EXIF orientation (phone photos are often stored
    rotated), converts to RGB and resizes the longest edge to
    ``max_size`` pixels while maintaining aspect ratio.

    :param image_data: Raw image bytes
    :param max_size: Maximum size of the longest edge in pixels
    :returns: Processed image bytes in JPEG format, or the original
        bytes if Pillow cannot decode them
    """
    max_size = max_size or settings.IMAGE_MAX_EDGE
    try:
        with Image.open(BytesIO(image_data)) as img:
            img = ImageOps.exif_transpose(img)
            img = img.convert("RGB")
            width, height = img.size
            max_dim = max(width, height)
            if max_dim > max_size:
                scale = max_size / float(max_dim)
                img = img.resize((int(width * scale), int(height * scale)))
            buf = BytesIO()
            img.save(buf, format="JPEG", quality=90)
            return buf.getvalue()
    except (UnidentifiedImageError, OSError) as exc:
        logger.warning("[image] preprocessing skipped: %s", exc)
        return image_data
