"""Target-size planning and raster resizing for OCR input images."""

import math

import cv2

from docscan.utils.logger import get_logger

from .decode import PixelBuffer

logger = get_logger(__name__)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def plan_size(width: int, height: int, max_dimension: int) -> tuple[int, int]:
    """Compute a downscaled size that preserves aspect ratio.

    The longest side is brought down to ``max_dimension``; images already
    within bounds keep their size. Both returned sides are at least 1, even
    for degenerate zero-sized input.

    Args:
        width: Source width in pixels.
        height: Source height in pixels.
        max_dimension: Largest allowed side after scaling.

    Returns:
        Tuple of (target_width, target_height).
    """
    longest = max(width, height)
    ratio = 1.0 if longest <= 0 else min(1.0, max_dimension / longest)
    return (
        max(1, _round_half_up(width * ratio)),
        max(1, _round_half_up(height * ratio)),
    )


def resize(buffer: PixelBuffer, size: tuple[int, int]) -> PixelBuffer:
    """Render ``buffer`` at ``size`` (width, height) into a new buffer.

    Uses area interpolation, which suits the downscaling the planner
    produces. An unchanged size yields a copy.
    """
    width, height = size
    if (width, height) == (buffer.width, buffer.height):
        return PixelBuffer(buffer.data.copy())

    resized = cv2.resize(buffer.data, (width, height), interpolation=cv2.INTER_AREA)
    logger.debug(
        "Resized %dx%d -> %dx%d", buffer.width, buffer.height, width, height
    )
    return PixelBuffer(resized)
