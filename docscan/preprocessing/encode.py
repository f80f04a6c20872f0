"""Serialization of processed pixel buffers back into inline-encoded images."""

import base64
import io

from PIL import Image

from docscan.utils.logger import get_logger

from .decode import PixelBuffer

logger = get_logger(__name__)

_MIME_TYPES = {"jpeg": "image/jpeg", "png": "image/png"}


def flatten_alpha(image: Image.Image) -> Image.Image:
    """Composite an RGBA image over a white background as RGB.

    Fully opaque images are converted directly.
    """
    alpha = image.getchannel("A")
    if alpha.getextrema()[0] == 255:
        return image.convert("RGB")
    background = Image.new("RGB", image.size, (255, 255, 255))
    background.paste(image.convert("RGB"), mask=alpha)
    return background


def encode_image(
    buffer: PixelBuffer, output_format: str = "jpeg", quality: int = 92
) -> str:
    """Encode a buffer as a ``data:`` URI.

    JPEG has no alpha plane, so translucent pixels are composited over
    white for it; PNG keeps alpha and ignores ``quality``.

    Args:
        buffer: Processed RGBA buffer.
        output_format: ``"jpeg"`` or ``"png"``.
        quality: JPEG quality factor (1-100).

    Returns:
        Inline-encoded image string.

    Raises:
        ValueError: If ``output_format`` is not supported.
    """
    if output_format not in _MIME_TYPES:
        raise ValueError(f"Unsupported output format: {output_format}")

    image = buffer.to_image()
    out = io.BytesIO()
    if output_format == "jpeg":
        flatten_alpha(image).save(out, format="JPEG", quality=quality)
    else:
        image.save(out, format="PNG")

    payload = base64.b64encode(out.getvalue()).decode("ascii")
    logger.debug(
        "Encoded %dx%d buffer as %s (%d bytes)",
        buffer.width,
        buffer.height,
        output_format,
        out.tell(),
    )
    return f"data:{_MIME_TYPES[output_format]};base64,{payload}"
