"""Image normalization pipeline for document OCR.

Runs decode, size planning, resize, grayscale contrast remap and encode on
an inline-encoded image, producing a new inline-encoded image.
"""

from dataclasses import dataclass

from docscan.utils.config import PreprocessOptions
from docscan.utils.logger import get_logger

from .contrast import normalize_contrast
from .decode import PixelBuffer, decode_image
from .encode import encode_image
from .geometry import plan_size, resize

logger = get_logger(__name__)


@dataclass
class PreprocessStats:
    """Sizes seen by one preprocessing run."""

    source_size: tuple[int, int]
    target_size: tuple[int, int]


class PreprocessingPipeline:
    """Configurable OCR image normalization.

    Each call owns its buffers, so one instance can serve concurrent
    callers.

    Args:
        options: Contrast, size limit and output encoding settings.
    """

    def __init__(self, options: PreprocessOptions | None = None) -> None:
        self.options = options or PreprocessOptions()

    def process_buffer(self, buffer: PixelBuffer) -> tuple[PixelBuffer, PreprocessStats]:
        """Resize ``buffer`` to the planned size and remap its contrast.

        The input buffer is not modified.
        """
        target = plan_size(buffer.width, buffer.height, self.options.max_dimension)
        result = resize(buffer, target)
        normalize_contrast(result, self.options.contrast)
        return result, PreprocessStats(
            source_size=(buffer.width, buffer.height), target_size=target
        )

    def process(self, image: str) -> str:
        """Normalize an inline-encoded image.

        Args:
            image: A ``data:image/...`` URI.

        Returns:
            A new inline-encoded image.

        Raises:
            DecodeError: If the image cannot be decoded.
        """
        buffer = decode_image(image)
        result, stats = self.process_buffer(buffer)
        encoded = encode_image(
            result,
            output_format=self.options.output_format,
            quality=self.options.quality,
        )
        logger.info(
            "Preprocessing complete: %dx%d -> %dx%d (contrast=%d)",
            *stats.source_size,
            *stats.target_size,
            self.options.contrast,
        )
        return encoded
