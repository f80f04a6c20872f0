"""Document image preprocessing and OCR pipeline.

Normalizes scanned document images (grayscale, contrast remap, downscale)
and drives a Tesseract recognition engine with progress reporting.
"""

from docscan.errors import (
    DecodeError,
    DocscanError,
    EngineUnavailable,
    RecognitionError,
    SurfaceUnavailable,
)
from docscan.ocr.engine import OcrProgress, OcrResult
from docscan.ocr.pipeline import OcrPipeline, PipelineState, preprocess, recognize
from docscan.utils.config import OcrOptions, PlatformCapabilities, PreprocessOptions

__all__ = [
    "DecodeError",
    "DocscanError",
    "EngineUnavailable",
    "OcrOptions",
    "OcrPipeline",
    "OcrProgress",
    "OcrResult",
    "PipelineState",
    "PlatformCapabilities",
    "PreprocessOptions",
    "RecognitionError",
    "SurfaceUnavailable",
    "preprocess",
    "recognize",
]
