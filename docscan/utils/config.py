"""Configuration models for preprocessing, recognition and the runtime platform.

Settings are pydantic models so that both YAML-loaded configuration and
per-call options are validated the same way.
"""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Literal

import yaml
from PIL import features
from pydantic import BaseModel, ConfigDict, Field

from docscan.errors import SurfaceUnavailable

logger = logging.getLogger(__name__)


class PreprocessOptions(BaseModel):
    """Options for the image normalization stage.

    ``contrast`` is not range-checked here; the normalizer clamps it to
    [-255, 255].
    """

    contrast: int = 70
    max_dimension: int = Field(default=1600, gt=0)
    output_format: Literal["jpeg", "png"] = "jpeg"
    quality: int = Field(default=92, ge=1, le=100)


class OcrOptions(BaseModel):
    """Per-call options for text recognition."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    lang: str = "eng"
    preprocess_image: bool = True
    on_progress: Callable[..., None] | None = None
    preprocess_options: PreprocessOptions = Field(default_factory=PreprocessOptions)
    timeout: float | None = Field(default=None, gt=0)


class OCRConfig(BaseModel):
    """Configuration for the Tesseract recognition engine."""

    tesseract_cmd: str | None = None
    default_lang: str = "eng"
    psm: int = 3


class PlatformCapabilities(BaseModel):
    """What the execution environment can do with raster images.

    Without a raster surface, preprocessing passes its input through.
    """

    model_config = ConfigDict(frozen=True)

    raster_surface: bool = True

    @classmethod
    def detect(cls) -> "PlatformCapabilities":
        """Probe the installed Pillow build for the encoders preprocessing uses."""
        available = bool(features.check_codec("jpg") and features.check_codec("zlib"))
        if not available:
            logger.info("Pillow lacks JPEG/PNG codecs; preprocessing disabled")
        return cls(raster_surface=available)

    def require_raster_surface(self) -> None:
        """Raise :class:`SurfaceUnavailable` when no raster surface exists."""
        if not self.raster_surface:
            raise SurfaceUnavailable("No raster surface available for image processing")


class AppConfig(BaseModel):
    """Top-level application configuration."""

    preprocessing: PreprocessOptions = Field(default_factory=PreprocessOptions)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    platform: PlatformCapabilities | None = None
    log_level: str = "INFO"

    def capabilities(self) -> PlatformCapabilities:
        """Configured platform capabilities, detected when not set explicitly."""
        return self.platform if self.platform is not None else PlatformCapabilities.detect()


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration; defaults when the file is absent.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
