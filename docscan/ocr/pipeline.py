"""Preprocess-then-recognize orchestration.

One :meth:`OcrPipeline.recognize` call is one asyncio task of sequential
stages: optional image normalization (best effort) followed by recognition
(fatal on failure). Invocations share nothing but the cached engine handle.
"""

import asyncio
import enum
from functools import lru_cache
from typing import Any

from docscan.preprocessing.decode import ImageRef, is_inline_image
from docscan.preprocessing.pipeline import PreprocessingPipeline
from docscan.utils.config import (
    OcrOptions,
    PlatformCapabilities,
    PreprocessOptions,
    load_config,
)
from docscan.utils.logger import get_logger

from .engine import EngineHandle, EngineLoader, OcrResult, RecognitionAdapter
from .tesseract_engine import load_tesseract_engine

logger = get_logger(__name__)


class PipelineState(enum.Enum):
    """Lifecycle of a single recognition invocation."""

    IDLE = "idle"
    PREPROCESSING = "preprocessing"
    RECOGNIZING = "recognizing"
    DONE = "done"
    FAILED = "failed"


async def preprocess(
    image: ImageRef,
    options: PreprocessOptions | None = None,
    capabilities: PlatformCapabilities | None = None,
) -> ImageRef:
    """Normalize an image for OCR.

    Inputs that are not inline-encoded images, and every input when the
    platform has no raster surface, are returned unchanged.

    Args:
        image: Any image reference.
        options: Contrast, size and encoding settings.
        capabilities: Platform capabilities; a raster surface is assumed
            when omitted.

    Returns:
        A new inline-encoded image, or ``image`` itself.

    Raises:
        DecodeError: If an inline image cannot be decoded.
    """
    if not is_inline_image(image):
        return image

    capabilities = capabilities or PlatformCapabilities()
    if not capabilities.raster_surface:
        logger.debug("No raster surface; skipping preprocessing")
        return image

    pipeline = PreprocessingPipeline(options)
    return await asyncio.to_thread(pipeline.process, image)


class OcrPipeline:
    """Preprocesses images and runs them through a recognition engine.

    Args:
        engine: An engine instance, a zero-argument loader returning one
            (called on first use), or a prepared :class:`EngineHandle`.
        capabilities: Platform capabilities used for preprocessing.
        defaults: Options applied when a call passes none.
    """

    def __init__(
        self,
        engine: Any,
        capabilities: PlatformCapabilities | None = None,
        defaults: OcrOptions | None = None,
    ) -> None:
        if isinstance(engine, EngineHandle):
            handle = engine
        elif callable(getattr(engine, "recognize", None)):
            handle = EngineHandle.of(engine)
        elif callable(engine):
            handle = EngineHandle(engine)
        else:
            # Validated on first use so the failure surfaces from recognize().
            handle = EngineHandle(lambda: engine)
        self.adapter = RecognitionAdapter(handle)
        self.capabilities = capabilities or PlatformCapabilities()
        self.defaults = defaults or OcrOptions()

    async def preprocess(
        self, image: ImageRef, options: PreprocessOptions | None = None
    ) -> ImageRef:
        """Normalize ``image`` with this pipeline's platform capabilities."""
        return await preprocess(image, options, self.capabilities)

    async def recognize(self, image: ImageRef, options: OcrOptions | None = None) -> OcrResult:
        """Recognize text in ``image``, preprocessing it first when applicable.

        Args:
            image: Inline-encoded image, bytes, path or binary file object.
            options: Language, preprocessing switch, progress sink, timeout.

        Returns:
            Recognized text and optional confidence.

        Raises:
            EngineUnavailable: If the engine cannot be bound.
            RecognitionError: If the engine fails.
            asyncio.TimeoutError: If ``options.timeout`` expires.
        """
        options = options or self.defaults
        if options.timeout is None:
            return await self._run(image, options)
        return await asyncio.wait_for(self._run(image, options), options.timeout)

    async def _run(self, image: ImageRef, options: OcrOptions) -> OcrResult:
        state = PipelineState.IDLE
        source = image

        if options.preprocess_image and is_inline_image(image):
            state = self._transition(state, PipelineState.PREPROCESSING)
            try:
                source = await self.preprocess(image, options.preprocess_options)
            except Exception as exc:
                logger.warning("Preprocessing failed, using original image: %s", exc)
                source = image

        state = self._transition(state, PipelineState.RECOGNIZING)
        try:
            result = await self.adapter.recognize(source, options.lang, options.on_progress)
        except BaseException:
            self._transition(state, PipelineState.FAILED)
            raise

        self._transition(state, PipelineState.DONE)
        return result

    @staticmethod
    def _transition(current: PipelineState, target: PipelineState) -> PipelineState:
        logger.debug("OCR pipeline %s -> %s", current.value, target.value)
        return target


@lru_cache(maxsize=1)
def default_pipeline() -> OcrPipeline:
    """Pipeline built from ``load_config()`` with a lazily bound Tesseract engine."""
    config = load_config()
    loader: EngineLoader = lambda: load_tesseract_engine(config.ocr)  # noqa: E731
    defaults = OcrOptions(
        lang=config.ocr.default_lang, preprocess_options=config.preprocessing
    )
    return OcrPipeline(loader, capabilities=config.capabilities(), defaults=defaults)


async def recognize(image: ImageRef, options: OcrOptions | None = None) -> OcrResult:
    """Recognize text in ``image`` with the default Tesseract pipeline."""
    return await default_pipeline().recognize(image, options)
