"""Decoding of inline-encoded images into RGBA pixel buffers.

An inline-encoded image is a ``data:image/...`` URI carrying the encoded
bytes either as base64 or percent-encoded text. Every other image reference
(paths, raw bytes, file objects) is opaque to the preprocessing stage.
"""

import base64
import binascii
import io
import os
from dataclasses import dataclass
from typing import BinaryIO, Union
from urllib.parse import unquote_to_bytes

import numpy as np
from PIL import Image, UnidentifiedImageError

from docscan.errors import DecodeError
from docscan.utils.logger import get_logger

logger = get_logger(__name__)

ImageRef = Union[str, bytes, bytearray, os.PathLike, BinaryIO]

INLINE_IMAGE_PREFIX = "data:image/"


@dataclass
class PixelBuffer:
    """Mutable RGBA raster, row-major, one ``uint8`` per channel.

    ``data`` has shape ``(height, width, 4)``.
    """

    data: np.ndarray

    def __post_init__(self) -> None:
        if self.data.dtype != np.uint8:
            raise ValueError(f"PixelBuffer requires uint8 data, got {self.data.dtype}")
        if self.data.ndim != 3 or self.data.shape[2] != 4:
            raise ValueError(
                f"PixelBuffer requires shape (height, width, 4), got {self.data.shape}"
            )
        if self.height < 1 or self.width < 1:
            raise ValueError(
                f"PixelBuffer dimensions must be positive, got {self.width}x{self.height}"
            )

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @classmethod
    def from_image(cls, image: Image.Image) -> "PixelBuffer":
        """Build a buffer from a Pillow image, converting it to RGBA."""
        rgba = image if image.mode == "RGBA" else image.convert("RGBA")
        return cls(np.array(rgba, dtype=np.uint8))

    def to_image(self) -> Image.Image:
        """Wrap the buffer contents in a Pillow RGBA image."""
        return Image.fromarray(self.data)


def is_inline_image(ref: object) -> bool:
    """Return True when ``ref`` is an inline-encoded image data URI."""
    return isinstance(ref, str) and ref.startswith(INLINE_IMAGE_PREFIX)


def decode_data_uri(uri: str) -> bytes:
    """Extract the raw payload bytes from a ``data:`` URI.

    Raises:
        DecodeError: If the URI has no payload separator or invalid base64.
    """
    header, sep, payload = uri.partition(",")
    if not sep:
        raise DecodeError("Malformed data URI: missing ',' separator")

    params = header.split(";")[1:]
    if "base64" in params:
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise DecodeError(f"Invalid base64 image payload: {exc}") from exc
    return unquote_to_bytes(payload)


def decode_image(ref: str) -> PixelBuffer:
    """Decode an inline-encoded image into a buffer at its natural size.

    Args:
        ref: A ``data:image/...`` URI.

    Returns:
        RGBA pixel buffer owned by the caller.

    Raises:
        DecodeError: If ``ref`` is not an inline image or cannot be parsed.
    """
    if not is_inline_image(ref):
        raise DecodeError("Not an inline-encoded image reference")

    raw = decode_data_uri(ref)
    if not raw:
        raise DecodeError("Inline image has an empty payload")

    try:
        with Image.open(io.BytesIO(raw)) as img:
            img.load()
            buffer = PixelBuffer.from_image(img)
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        ValueError,
    ) as exc:
        raise DecodeError(f"Failed to load image for OCR preprocessing: {exc}") from exc

    logger.debug("Decoded inline image %dx%d", buffer.width, buffer.height)
    return buffer
