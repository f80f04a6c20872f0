"""Grayscale conversion and contrast remapping for document images.

Each pixel becomes its luminance-weighted gray value, stretched around
mid-gray (128) by a factor derived from the contrast setting. Alpha is left
untouched.
"""

import numpy as np

from docscan.utils.logger import get_logger

from .decode import PixelBuffer

logger = get_logger(__name__)

LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)
CONTRAST_LIMIT = 255
MID_GRAY = 128.0


def clamp_contrast(contrast: int) -> int:
    """Clamp a contrast setting to [-255, 255]."""
    return max(-CONTRAST_LIMIT, min(CONTRAST_LIMIT, int(contrast)))


def contrast_factor(contrast: int) -> float:
    """Return the remap slope for a contrast setting.

    0 gives exactly 1.0 and -255 gives 0.0 (everything collapses to
    mid-gray). After clamping the denominator is at least 255 * 4, so
    +255 yields a finite 129.5 that pushes nearly every pixel to 0 or 255.
    """
    c = clamp_contrast(contrast)
    return (259 * (c + 255)) / (255 * (259 - c))


def to_gray(data: np.ndarray) -> np.ndarray:
    """Luminance-weighted gray values (float64) for an RGBA or RGB array."""
    return data[..., :3].astype(np.float64) @ LUMA_WEIGHTS


def normalize_contrast(buffer: PixelBuffer, contrast: int = 70) -> PixelBuffer:
    """Convert ``buffer`` to grayscale and apply the contrast remap in place.

    Args:
        buffer: RGBA buffer, modified in place.
        contrast: Contrast setting; clamped to [-255, 255].

    Returns:
        The same buffer, for chaining.
    """
    factor = contrast_factor(contrast)
    adjusted = factor * (to_gray(buffer.data) - MID_GRAY) + MID_GRAY
    values = np.clip(np.rint(adjusted), 0, 255).astype(np.uint8)

    buffer.data[..., :3] = values[..., np.newaxis]

    logger.debug(
        "Applied grayscale contrast remap (contrast=%d, factor=%.3f)",
        clamp_contrast(contrast),
        factor,
    )
    return buffer
