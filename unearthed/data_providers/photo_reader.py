"""
Photo reading for the export pipeline.

Photos are read concurrently (one worker thread per file) and checked by
signature: only PNG and JPEG can be embedded. Anything unreadable or of
another format is logged and dropped; the remaining photos keep their order.
"""

import asyncio
from io import BytesIO
from pathlib import Path
from typing import List, Optional, Sequence

from PIL import Image

from shared.utils.logger import setup_logger, log_degraded
from unearthed.core.exceptions import UnsupportedImageException
from unearthed.core.types import Photo, PhotoSource

logger = setup_logger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SIGNATURE = b"\xff\xd8\xff"


def sniff_mime(data: bytes) -> str:
    """
    Image MIME type from the leading bytes.

    Raises:
        UnsupportedImageException: If the data is neither PNG nor JPEG
    """
    if data.startswith(PNG_SIGNATURE):
        return "image/png"
    if data.startswith(JPEG_SIGNATURE):
        return "image/jpeg"
    raise UnsupportedImageException("not a PNG or JPEG image")


def decode_photo(source: PhotoSource) -> Photo:
    """
    Read one photo and make sure Pillow can decode it.

    Args:
        source: File path or raw bytes

    Returns:
        Photo with its bytes and MIME type
    """
    if isinstance(source, bytes):
        data = source
        label = f"<{len(source)} bytes>"
    else:
        path = Path(source)
        data = path.read_bytes()
        label = path.name

    mime = sniff_mime(data)
    with Image.open(BytesIO(data)) as image:
        image.verify()

    return Photo(data=data, mime=mime, source=label)


async def _read_one(index: int, source: PhotoSource) -> Optional[Photo]:
    try:
        return await asyncio.to_thread(decode_photo, source)
    except (OSError, SyntaxError, ValueError, UnsupportedImageException) as e:
        log_degraded(logger, "resolving_location", f"photo #{index + 1}", e)
        return None


async def read_photos(sources: Sequence[PhotoSource]) -> List[Photo]:
    """
    Read all photos concurrently.

    Latency is bounded by the slowest photo rather than the sum. Photos that
    fail are dropped, so the result may be shorter than ``sources``.
    """
    if not sources:
        return []

    results = await asyncio.gather(*(_read_one(i, s) for i, s in enumerate(sources)))
    photos = [p for p in results if p is not None]
    logger.info(f"Read {len(photos)}/{len(sources)} photos")
    return photos
